"""Daily summary generation."""

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from ..completion import CompletionClient
from ..errors import ValidationError
from .base import Storage
from .models import DailySummary
from .prompt import build_summary_prompt

logger = logging.getLogger(__name__)

NO_ACTIVITY = "No activity recorded for this day."
SUMMARY_FALLBACK = "Summary could not be generated."

_DATE_FORMAT = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class SummaryResult:
    """Outcome of one summarization run."""

    summary: DailySummary
    memories_count: int
    questions_count: int
    generated: bool

    def to_response(self) -> dict[str, object]:
        return {
            "summary": self.summary.summary_text,
            "memoriesCount": self.memories_count,
        }


def resolve_date(value: str | None, today: Callable[[], date] = date.today) -> str:
    """Return value as a YYYY-MM-DD string, or today's date when absent.

    Raises:
        ValidationError: value is not a real calendar date in YYYY-MM-DD form.
    """
    if value is None or value == "":
        return today().isoformat()
    if not isinstance(value, str) or not _DATE_FORMAT.match(value):
        raise ValidationError("date must be in YYYY-MM-DD format")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value}") from e
    return value


def day_bounds(day: str) -> tuple[str, str]:
    """Inclusive [00:00:00.000, 23:59:59.999] bounds of a day in store format."""
    return f"{day}T00:00:00.000", f"{day}T23:59:59.999"


class DailySummarizer:
    """Aggregates a day's memories and questions into a short narrative.

    Each run overwrites the summary stored for (elder_id, date).
    """

    def __init__(
        self,
        store: Storage,
        completion: CompletionClient,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.completion = completion
        self.today = today

    async def summarize(self, elder_id: str, day: str | None = None) -> SummaryResult:
        """Generate and upsert the summary for one elder and day.

        Args:
            elder_id: Owner of the memories.
            day: YYYY-MM-DD, defaults to today in server-local time.

        Raises:
            ValidationError: Missing elder_id or malformed date.
            StorageError: Reading the day or saving the summary failed.
            RateLimitError, QuotaExhaustedError, ConfigurationError,
            ServiceUnavailableError: From the completion call.
        """
        if not isinstance(elder_id, str) or not elder_id:
            raise ValidationError("Missing required field: elderId")
        day = resolve_date(day, self.today)
        start, end = day_bounds(day)

        memories = await asyncio.to_thread(self.store.memories_between, elder_id, start, end)
        questions = await asyncio.to_thread(
            self.store.questions_between, elder_id, start, end
        )

        if not memories and not questions:
            logger.info("No activity for %s on %s, skipping generation", elder_id, day)
            text = NO_ACTIVITY
            generated = False
        else:
            system, user = build_summary_prompt(memories, questions)
            text = await self.completion.complete(system, user, fallback=SUMMARY_FALLBACK)
            generated = True

        saved = await asyncio.to_thread(
            self.store.upsert_summary,
            DailySummary(elder_id=elder_id, date=day, summary_text=text),
        )
        return SummaryResult(
            summary=saved,
            memories_count=len(memories),
            questions_count=len(questions),
            generated=generated,
        )
