"""Storage interface the services depend on."""

from typing import Any, Protocol

from .models import DailySummary, Memory, MemoryType, Question


class Storage(Protocol):
    """Protocol for memory, question and summary persistence.

    Services receive an implementation explicitly so tests can swap in a fake.
    Implementations raise StorageError on backend failures.
    """

    def add_memory(self, memory: Memory) -> Memory: ...

    def get_memory(self, memory_id: int) -> Memory | None: ...

    def recent_memories(self, elder_id: str, limit: int) -> list[Memory]: ...

    def list_memories(
        self,
        elder_id: str,
        *,
        type: MemoryType | None = None,
        tag: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Memory], int]: ...

    def memories_between(self, elder_id: str, start: str, end: str) -> list[Memory]: ...

    def update_extraction(
        self, memory_id: int, structured: dict[str, Any], tags: list[str]
    ) -> Memory: ...

    def add_question(self, question: Question) -> Question: ...

    def list_questions(self, elder_id: str, limit: int) -> list[Question]: ...

    def questions_between(self, elder_id: str, start: str, end: str) -> list[Question]: ...

    def upsert_summary(self, summary: DailySummary) -> DailySummary: ...

    def get_summary(self, elder_id: str, date: str) -> DailySummary | None: ...

    def list_summaries(self, elder_id: str, limit: int) -> list[DailySummary]: ...

    def ping(self) -> None: ...
