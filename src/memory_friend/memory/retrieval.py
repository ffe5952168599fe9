"""Selecting the memories that ground an answer."""

import re
from dataclasses import dataclass, field

from ..errors import ValidationError
from .base import Storage
from .models import Memory

RECENT_WINDOW = 50
MAX_MATCHED = 5
MAX_QUESTION_LENGTH = 500
MIN_KEYWORD_LENGTH = 4

_PUNCTUATION = re.compile(r"[?.,!]")


@dataclass(frozen=True)
class Retrieval:
    """Memories selected for one question.

    Attributes:
        memories: The recent window sent to the completion endpoint.
        matched: Keyword matches shown to the user. Computed separately and
            not necessarily what informed the answer.
    """

    memories: list[Memory] = field(default_factory=list)
    matched: list[Memory] = field(default_factory=list)


def validate_question(elder_id: object, question: object) -> str:
    """Check the ask-question input and return the trimmed question.

    Raises:
        ValidationError: elder_id is missing or question is not 1-500 characters.
    """
    if not isinstance(elder_id, str) or not elder_id:
        raise ValidationError("elderId is required")
    if not isinstance(question, str):
        raise ValidationError("question is required")
    trimmed = question.strip()
    if not trimmed or len(trimmed) > MAX_QUESTION_LENGTH:
        raise ValidationError(
            f"question must be between 1 and {MAX_QUESTION_LENGTH} characters"
        )
    return trimmed


def question_keywords(question: str) -> list[str]:
    """Lowercased words of the question longer than 3 characters."""
    words = _PUNCTUATION.sub("", question.lower()).split()
    return [w for w in words if len(w) >= MIN_KEYWORD_LENGTH]


def match_memories(
    question: str, memories: list[Memory], limit: int = MAX_MATCHED
) -> list[Memory]:
    """Keep memories whose text contains any question keyword, in input order."""
    keywords = question_keywords(question)
    if not keywords:
        return []
    matched = [
        m for m in memories if any(k in m.raw_text.lower() for k in keywords)
    ]
    return matched[:limit]


class RetrievalFilter:
    """Loads the recent window of an elder's memories for a question.

    Recency is the only retrieval signal; there is no similarity ranking.
    """

    def __init__(
        self,
        store: Storage,
        window: int = RECENT_WINDOW,
        max_matched: int = MAX_MATCHED,
    ) -> None:
        self.store = store
        self.window = window
        self.max_matched = max_matched

    def retrieve(self, elder_id: str, question: str) -> Retrieval:
        """Fetch the recent window and compute the display matches.

        Args:
            elder_id: Owner of the memories.
            question: Trimmed, validated question text.

        Raises:
            StorageError: The fetch failed; no partial result is returned.
        """
        memories = self.store.recent_memories(elder_id, self.window)
        owned = [m for m in memories if m.elder_id == elder_id]
        return Retrieval(
            memories=owned,
            matched=match_memories(question, owned, self.max_matched),
        )
