"""Shared fixtures: a temporary store and a fake completion client."""

from pathlib import Path

import pytest

from memory_friend.completion import ANSWER_FALLBACK
from memory_friend.memory import MemoryStore


class FakeCompletion:
    """CompletionClient that records calls and replays a canned reply."""

    def __init__(self, reply: str = "You left your keys on the hook by the door.") -> None:
        self.reply = reply
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []
        self.configured = True
        self.closed = False

    async def complete(self, system: str, user: str, fallback: str = ANSWER_FALLBACK) -> str:
        self.calls.append((system, user))
        if self.error is not None:
            raise self.error
        return self.reply or fallback

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    """Create a MemoryStore with a temporary database."""
    store = MemoryStore(tmp_path / "test_memory.db")
    store.init_db()
    yield store
    store.close()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()
