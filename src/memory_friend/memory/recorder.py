"""Best-effort persistence of answered questions."""

import logging
from dataclasses import dataclass

from ..errors import StorageError
from .base import Storage
from .models import Memory, Question

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordOutcome:
    """Whether the audit row for an answer was written.

    A failed write does not invalidate the answer already produced, so the
    question history can miss answers that were shown to the user.
    """

    recorded: bool
    question: Question | None = None
    error: str | None = None


class AnswerRecorder:
    """Stores each answered question for history and audit."""

    def __init__(self, store: Storage) -> None:
        self.store = store

    def record(
        self,
        elder_id: str,
        question_text: str,
        answer_text: str,
        matched: list[Memory],
    ) -> RecordOutcome:
        """Insert a Question row; never raises on storage failure."""
        question = Question(
            elder_id=elder_id,
            question_text=question_text,
            answer_text=answer_text,
            matched_memory_ids=[
                m.id for m in matched if m.id is not None and m.elder_id == elder_id
            ],
        )
        try:
            saved = self.store.add_question(question)
        except StorageError as e:
            logger.error("Error storing question for %s: %s (%s)", elder_id, e, e.detail)
            return RecordOutcome(recorded=False, error=e.detail or e.message)
        return RecordOutcome(recorded=True, question=saved)
