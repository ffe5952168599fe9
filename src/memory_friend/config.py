"""Settings loader.

Loads settings from ~/.memory_friend/config.json, then applies environment
variable overrides.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .completion import DEFAULT_MODEL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".memory_friend" / "config.json"


@dataclass
class Settings:
    """Runtime settings for Memory Friend.

    Attributes:
        db_path: SQLite database file.
        log_dir: Directory for the JSONL activity log.
        groq_api_key: Credential for the completion endpoint.
        model: Model used for answers and summaries.
        base_url: Optional OpenAI-compatible gateway URL.
        completion_timeout: Seconds before a completion call is abandoned.
        recent_window: Memories sent with each question.
        host: Bind address for the HTTP server.
        port: Port for the HTTP server.
    """

    db_path: Path | None = None
    log_dir: Path | None = None
    groq_api_key: str | None = None
    model: str = DEFAULT_MODEL
    base_url: str | None = None
    completion_timeout: float = 30.0
    recent_window: int = 50
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        """Validate settings and set defaults."""
        if self.db_path is None:
            self.db_path = Path.home() / ".memory_friend" / "memory.db"

        if self.log_dir is None:
            self.log_dir = Path.home() / ".memory_friend" / "logs"

        if self.completion_timeout <= 0:
            raise ValueError("completion_timeout must be positive")

        if self.recent_window < 1:
            raise ValueError("recent_window must be at least 1")


def load_settings(config_path: Path | None = None) -> Settings:
    """Load Settings from a JSON file and the environment.

    The config file should have this structure:
    ```json
    {
      "database": {"path": "~/.memory_friend/memory.db"},
      "completion": {"model": "openai/gpt-oss-120b", "timeout": 30},
      "server": {"host": "127.0.0.1", "port": 8000}
    }
    ```

    Environment variables win over the file: GROQ_API_KEY, GROQ_MODEL,
    GROQ_BASE_URL, COMPLETION_TIMEOUT, MEMORY_FRIEND_DB, MEMORY_FRIEND_LOG_DIR.

    Args:
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        Settings instance with loaded values.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    data: dict[str, Any] = {}

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
    else:
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        except OSError as e:
            logger.warning("Cannot read %s: %s. Using defaults.", path, e)

    if not isinstance(data, dict):
        data = {}

    values = _parse_config(data)
    values.update(_env_overrides())
    return Settings(**values)


def _parse_config(data: dict[str, Any]) -> dict[str, Any]:
    """Turn the config file structure into Settings keyword arguments."""
    values: dict[str, Any] = {}

    database = data.get("database", {})
    if isinstance(database, dict) and database.get("path"):
        values["db_path"] = Path(database["path"]).expanduser()

    logging_section = data.get("logging", {})
    if isinstance(logging_section, dict) and logging_section.get("dir"):
        values["log_dir"] = Path(logging_section["dir"]).expanduser()

    completion = data.get("completion", {})
    if isinstance(completion, dict):
        if isinstance(completion.get("model"), str):
            values["model"] = completion["model"]
        if isinstance(completion.get("base_url"), str):
            values["base_url"] = completion["base_url"]
        timeout = completion.get("timeout")
        if isinstance(timeout, (int, float)) and timeout > 0:
            values["completion_timeout"] = float(timeout)
        window = completion.get("recent_window")
        if isinstance(window, int) and window >= 1:
            values["recent_window"] = window

    server = data.get("server", {})
    if isinstance(server, dict):
        if isinstance(server.get("host"), str):
            values["host"] = server["host"]
        if isinstance(server.get("port"), int):
            values["port"] = server["port"]

    return values


def _env_overrides() -> dict[str, Any]:
    values: dict[str, Any] = {}

    if os.getenv("GROQ_API_KEY"):
        values["groq_api_key"] = os.getenv("GROQ_API_KEY")
    if os.getenv("GROQ_MODEL"):
        values["model"] = os.getenv("GROQ_MODEL")
    if os.getenv("GROQ_BASE_URL"):
        values["base_url"] = os.getenv("GROQ_BASE_URL")
    if os.getenv("MEMORY_FRIEND_DB"):
        values["db_path"] = Path(os.environ["MEMORY_FRIEND_DB"]).expanduser()
    if os.getenv("MEMORY_FRIEND_LOG_DIR"):
        values["log_dir"] = Path(os.environ["MEMORY_FRIEND_LOG_DIR"]).expanduser()

    timeout = os.getenv("COMPLETION_TIMEOUT")
    if timeout:
        try:
            seconds = float(timeout)
        except ValueError:
            seconds = 0.0
        if seconds > 0:
            values["completion_timeout"] = seconds
        else:
            logger.warning("Ignoring invalid COMPLETION_TIMEOUT=%r", timeout)

    return values
