"""Data models for the memory system."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class MemoryType(Enum):
    """Kind of memory an elder recorded."""

    STORY = "story"
    PERSON = "person"
    EVENT = "event"
    MEDICATION = "medication"
    ROUTINE = "routine"
    PREFERENCE = "preference"
    OTHER = "other"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


@dataclass(frozen=True)
class Memory:
    """A single recorded fact, story or note tied to an elder.

    Attributes:
        elder_id: Owner of the memory.
        type: One of MemoryType.
        raw_text: The memory as the elder told it.
        id: Database ID, None for new memories.
        image_url: Optional photo reference.
        structured: Extracted people/places/dates, empty until enriched.
        tags: Free-form labels.
        emotional_tone: Optional tone label (e.g. 'happy', 'nostalgic').
        created_at: ISO timestamp when created.
        updated_at: ISO timestamp when last enriched.
    """

    elder_id: str
    type: MemoryType
    raw_text: str
    id: int | None = None
    image_url: str | None = None
    structured: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    emotional_tone: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass(frozen=True)
class Question:
    """A question asked by an elder and the answer that was shown.

    matched_memory_ids references memories of the same elder; the memories
    themselves are not copied.
    """

    elder_id: str
    question_text: str
    answer_text: str | None = None
    matched_memory_ids: list[int] = field(default_factory=list)
    id: int | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DailySummary:
    """Narrative summary of one elder's day, unique per (elder_id, date)."""

    elder_id: str
    date: str
    summary_text: str
    id: int | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExtractedMetadata:
    """Classification of a memory text produced by the extractor."""

    type: MemoryType = MemoryType.OTHER
    tags: list[str] = field(default_factory=list)
    structured: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "tags": list(self.tags),
            "structured": dict(self.structured),
        }
