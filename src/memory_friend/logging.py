"""JSONL activity log for observability."""

import json
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    elder_id: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured activity events in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "activity.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".memory_friend" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._lock = threading.Lock()

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        line = json.dumps(entry.to_dict(), ensure_ascii=False) + "\n"
        with self._lock:
            self._rotate_if_needed()
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(line)

    def log(
        self,
        event: str,
        *,
        elder_id: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            elder_id=elder_id,
            duration_ms=duration_ms,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_question(
        self,
        elder_id: str,
        *,
        memories_sent: int,
        matched: int,
        recorded: bool,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Log an answered question."""
        self.log(
            "question_answered",
            elder_id=elder_id,
            duration_ms=duration_ms,
            error=error,
            memories_sent=memories_sent,
            matched=matched,
            recorded=recorded,
        )

    def log_record_failed(
        self,
        elder_id: str,
        question_text: str,
        *,
        error: str | None = None,
    ) -> None:
        """Log an answer that was shown but missing from question history."""
        self.log(
            "question_record_failed",
            elder_id=elder_id,
            error=error,
            question=question_text,
        )

    def log_summary(
        self,
        elder_id: str,
        date: str,
        *,
        memories_count: int,
        generated: bool,
        duration_ms: float | None = None,
    ) -> None:
        """Log a generated (or short-circuited) daily summary."""
        self.log(
            "summary_generated",
            elder_id=elder_id,
            duration_ms=duration_ms,
            date=date,
            memories_count=memories_count,
            generated=generated,
        )

    def log_completion_error(
        self,
        operation: str,
        error: str,
        *,
        elder_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Log a failed completion call."""
        self.log(
            "completion_error",
            elder_id=elder_id,
            error=error,
            operation=operation,
            status_code=status_code,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
