"""Memory manager: the operations exposed by the API and CLI."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from ..errors import MemoryFriendError, NotFoundError, StorageError, ValidationError
from .base import Storage
from .extractor import MemoryExtractor
from .models import DailySummary, ExtractedMetadata, Memory, MemoryType, Question
from .prompt import build_answer_prompt
from .recorder import AnswerRecorder
from .retrieval import RECENT_WINDOW, RetrievalFilter, validate_question
from .summarizer import DailySummarizer, SummaryResult, resolve_date

if TYPE_CHECKING:
    from ..completion import CompletionClient
    from ..logging import JSONLLogger

logger = logging.getLogger(__name__)

MAX_MEMORY_LENGTH = 5000
DEFAULT_MEMORY_LIMIT = 50
MAX_MEMORY_LIMIT = 200
DEFAULT_SUMMARY_LIMIT = 7
DEFAULT_QUESTION_LIMIT = 5
MAX_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class AnswerResult:
    """An answer to a question and whether it reached the audit history.

    Attributes:
        answer: Text shown to the user.
        matched_memories: Keyword matches for display (at most 5).
        memories_sent: Size of the recent window given to the LLM.
        recorded: False if the Question row could not be written.
        record_error: Storage error detail when recorded is False.
        question_id: Id of the stored Question when recorded.
    """

    answer: str
    matched_memories: list[Memory] = field(default_factory=list)
    memories_sent: int = 0
    recorded: bool = False
    record_error: str | None = None
    question_id: int | None = None

    def to_response(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "matchedMemories": [m.to_dict() for m in self.matched_memories],
        }


@dataclass(frozen=True)
class MemoryPage:
    """One page of list-memories results."""

    data: list[Memory]
    limit: int
    offset: int
    total: int

    def to_response(self) -> dict[str, Any]:
        return {
            "data": [m.to_dict() for m in self.data],
            "pagination": {"limit": self.limit, "offset": self.offset, "total": self.total},
        }


class MemoryManager:
    """Orchestrates memory operations: recording, asking, and summarizing.

    Storage and completion are injected; nothing here reaches for a global
    handle.
    """

    def __init__(
        self,
        store: Storage,
        completion: CompletionClient,
        activity_log: JSONLLogger | None = None,
        recent_window: int = RECENT_WINDOW,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Persistence for memories, questions and summaries.
            completion: Client for the hosted LLM.
            activity_log: Optional JSONL activity log.
            recent_window: Memories sent with each question.
            today: Source of the current server-local date.
        """
        self.store = store
        self.completion = completion
        self.activity_log = activity_log
        self.retrieval = RetrievalFilter(store, window=recent_window)
        self.recorder = AnswerRecorder(store)
        self.summarizer = DailySummarizer(store, completion, today=today)
        self.extractor = MemoryExtractor(completion)

    async def ask_question(self, elder_id: Any, question: Any) -> AnswerResult:
        """Answer a question from the elder's recent memories.

        Validation and retrieval are strict; recording the answer is not.

        Raises:
            ValidationError: Invalid elder_id or question.
            StorageError: The memories could not be loaded.
            RateLimitError, QuotaExhaustedError, ConfigurationError,
            ServiceUnavailableError: From the completion call.
        """
        text = validate_question(elder_id, question)
        started = time.monotonic()

        logger.info("Answering question for elder %s", elder_id)
        retrieval = await asyncio.to_thread(self.retrieval.retrieve, elder_id, text)
        system, user = build_answer_prompt(retrieval.memories, text)

        try:
            answer = await self.completion.complete(system, user)
        except MemoryFriendError as e:
            await self._activity(
                "log_completion_error",
                "answer", e.message, elder_id=elder_id, status_code=e.status_code,
            )
            raise

        outcome = await asyncio.to_thread(
            self.recorder.record, elder_id, text, answer, retrieval.matched
        )
        duration_ms = (time.monotonic() - started) * 1000

        if not outcome.recorded:
            await self._activity(
                "log_record_failed", elder_id, text, error=outcome.error
            )
        await self._activity(
            "log_question",
            elder_id,
            memories_sent=len(retrieval.memories),
            matched=len(retrieval.matched),
            recorded=outcome.recorded,
            duration_ms=duration_ms,
            error=outcome.error,
        )

        return AnswerResult(
            answer=answer,
            matched_memories=retrieval.matched,
            memories_sent=len(retrieval.memories),
            recorded=outcome.recorded,
            record_error=outcome.error,
            question_id=outcome.question.id if outcome.question else None,
        )

    def create_memory(
        self,
        elder_id: Any,
        type: Any,
        text: Any,
        image_url: Any = None,
        tags: Any = None,
        emotional_tone: Any = None,
    ) -> Memory:
        """Validate and store a new memory.

        Raises:
            ValidationError: Any field is invalid; nothing is written.
            StorageError: The insert failed.
        """
        if not isinstance(elder_id, str) or not elder_id:
            raise ValidationError("elderId is required")

        if type not in MemoryType.values():
            raise ValidationError(
                f"type must be one of: {', '.join(MemoryType.values())}"
            )

        if not isinstance(text, str) or not text.strip():
            raise ValidationError("text is required")
        text = text.strip()
        if len(text) > MAX_MEMORY_LENGTH:
            raise ValidationError(
                f"text must be at most {MAX_MEMORY_LENGTH} characters"
            )

        if image_url is not None and not isinstance(image_url, str):
            raise ValidationError("imageUrl must be a string")

        if tags is None:
            tags = []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValidationError("tags must be a list of strings")

        if emotional_tone is not None and not isinstance(emotional_tone, str):
            raise ValidationError("emotionalTone must be a string")

        memory = self.store.add_memory(
            Memory(
                elder_id=elder_id,
                type=MemoryType(type),
                raw_text=text,
                image_url=image_url or None,
                tags=_dedupe(t.strip() for t in tags if t.strip()),
                emotional_tone=emotional_tone or None,
            )
        )

        if self.activity_log:
            self.activity_log.log(
                "memory_created", elder_id=elder_id, memory_id=memory.id, type=type
            )
        return memory

    def list_memories(
        self,
        elder_id: Any,
        type: str | None = None,
        tag: str | None = None,
        search: str | None = None,
        limit: int = DEFAULT_MEMORY_LIMIT,
        offset: int = 0,
    ) -> MemoryPage:
        """List an elder's memories, newest first.

        A limit above 200 is clamped to 200.

        Raises:
            ValidationError: Missing elder_id, unknown type, limit < 1 or offset < 0.
        """
        if not isinstance(elder_id, str) or not elder_id:
            raise ValidationError("elderId query parameter is required")

        memory_type = None
        if type:
            if type not in MemoryType.values():
                raise ValidationError(
                    f"type must be one of: {', '.join(MemoryType.values())}"
                )
            memory_type = MemoryType(type)

        if limit < 1:
            raise ValidationError(f"limit must be between 1 and {MAX_MEMORY_LIMIT}")
        limit = min(limit, MAX_MEMORY_LIMIT)

        if offset < 0:
            raise ValidationError("offset must be 0 or greater")

        memories, total = self.store.list_memories(
            elder_id,
            type=memory_type,
            tag=tag or None,
            search=search or None,
            limit=limit,
            offset=offset,
        )
        return MemoryPage(data=memories, limit=limit, offset=offset, total=total)

    def list_questions(
        self, elder_id: Any, limit: int = DEFAULT_QUESTION_LIMIT
    ) -> list[Question]:
        """Latest questions asked by an elder."""
        if not isinstance(elder_id, str) or not elder_id:
            raise ValidationError("elderId query parameter is required")
        _check_history_limit(limit)
        return self.store.list_questions(elder_id, limit)

    async def generate_daily_summary(
        self, elder_id: Any, day: str | None = None
    ) -> SummaryResult:
        """Summarize one elder's day and upsert the result."""
        started = time.monotonic()
        try:
            result = await self.summarizer.summarize(elder_id, day)
        except MemoryFriendError as e:
            if not isinstance(e, (ValidationError, StorageError)):
                await self._activity(
                    "log_completion_error",
                    "summary", e.message, elder_id=elder_id, status_code=e.status_code,
                )
            raise

        await self._activity(
            "log_summary",
            elder_id,
            result.summary.date,
            memories_count=result.memories_count,
            generated=result.generated,
            duration_ms=(time.monotonic() - started) * 1000,
        )
        return result

    def list_summaries(
        self,
        elder_id: Any,
        day: str | None = None,
        limit: int = DEFAULT_SUMMARY_LIMIT,
    ) -> list[DailySummary]:
        """Latest summaries, or the single summary of a given day.

        Raises:
            ValidationError: Missing elder_id, malformed date or limit outside 1-100.
        """
        if not isinstance(elder_id, str) or not elder_id:
            raise ValidationError("elderId query parameter is required")
        _check_history_limit(limit)

        if day:
            day = resolve_date(day)
            summary = self.store.get_summary(elder_id, day)
            return [summary] if summary else []

        return self.store.list_summaries(elder_id, limit)

    async def extract_metadata(self, raw_text: Any) -> ExtractedMetadata:
        """Classify free text without storing anything."""
        if not isinstance(raw_text, str) or not raw_text.strip():
            raise ValidationError("rawText is required")
        return await self.extractor.extract(raw_text)

    async def enrich_memory(self, memory_id: int) -> Memory:
        """Run extraction on a stored memory and save structured data and tags.

        Existing tags are kept; extracted ones are appended. The memory's
        type and text are never changed.

        Raises:
            NotFoundError: The memory does not exist.
        """
        memory = await asyncio.to_thread(self.store.get_memory, memory_id)
        if memory is None:
            raise NotFoundError(f"Memory {memory_id} not found")

        metadata = await self.extractor.extract(memory.raw_text)
        structured = {**memory.structured, **metadata.structured}
        tags = _dedupe([*memory.tags, *metadata.tags])
        return await asyncio.to_thread(
            self.store.update_extraction, memory_id, structured, tags
        )

    async def aclose(self) -> None:
        """Release the completion client's connections."""
        await self.completion.aclose()

    async def _activity(self, method: str, *args: Any, **kwargs: Any) -> None:
        """Write an activity log entry from a worker thread."""
        if self.activity_log:
            await asyncio.to_thread(getattr(self.activity_log, method), *args, **kwargs)

    def health(self) -> dict[str, Any]:
        """Probe storage and report overall status."""
        services: dict[str, dict[str, Any]] = {}

        started = time.monotonic()
        try:
            self.store.ping()
            status = "operational"
        except MemoryFriendError as e:
            logger.warning("Health check storage probe failed: %s", e.detail or e)
            status = "degraded"
        services["Memory Storage"] = {
            "status": status,
            "latency": round((time.monotonic() - started) * 1000),
        }

        configured = getattr(self.completion, "configured", True)
        services["AI Processing"] = {
            "status": "operational" if configured else "unconfigured",
        }

        healthy = all(s["status"] == "operational" for s in services.values())
        return {"status": "healthy" if healthy else "degraded", "services": services}


def _check_history_limit(limit: int) -> None:
    if limit < 1 or limit > MAX_HISTORY_LIMIT:
        raise ValidationError(f"limit must be a number between 1 and {MAX_HISTORY_LIMIT}")


def _dedupe(values) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
