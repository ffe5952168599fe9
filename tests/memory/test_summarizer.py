"""Tests for DailySummarizer."""

from datetime import date

import pytest

from memory_friend.errors import RateLimitError, ValidationError
from memory_friend.memory import DailySummarizer, Memory, MemoryStore, MemoryType, Question
from memory_friend.memory.summarizer import (
    NO_ACTIVITY,
    SUMMARY_FALLBACK,
    day_bounds,
    resolve_date,
)


def fixed_today() -> date:
    return date(2024, 3, 2)


@pytest.fixture
def summarizer(store: MemoryStore, completion) -> DailySummarizer:
    return DailySummarizer(store, completion, today=fixed_today)


def add_memory(store: MemoryStore, text: str, created_at: str, elder_id: str = "elder-1") -> None:
    store.add_memory(
        Memory(elder_id=elder_id, type=MemoryType.STORY, raw_text=text, created_at=created_at)
    )


class TestResolveDate:
    def test_default_is_today(self):
        assert resolve_date(None, fixed_today) == "2024-03-02"

    def test_valid_date_kept(self):
        assert resolve_date("2023-12-31") == "2023-12-31"

    @pytest.mark.parametrize("value", ["2024/03/02", "yesterday", "2024-3-2", "2024-02-30"])
    def test_invalid_date(self, value):
        with pytest.raises(ValidationError):
            resolve_date(value)

    def test_day_bounds(self):
        assert day_bounds("2024-03-02") == ("2024-03-02T00:00:00.000", "2024-03-02T23:59:59.999")


class TestSummarize:
    @pytest.mark.asyncio
    async def test_no_activity_short_circuits(self, summarizer, completion, store):
        result = await summarizer.summarize("elder-1")

        assert result.to_response() == {"summary": NO_ACTIVITY, "memoriesCount": 0}
        assert result.generated is False
        assert completion.calls == []
        assert store.get_summary("elder-1", "2024-03-02").summary_text == NO_ACTIVITY

    @pytest.mark.asyncio
    async def test_generates_from_day_memories_only(self, summarizer, completion, store):
        completion.reply = "A lovely day in the park."
        add_memory(store, "Walked in the park", "2024-03-02T09:30:00.000")
        add_memory(store, "Yesterday's note", "2024-03-01T22:00:00.000")
        add_memory(store, "Someone else", "2024-03-02T10:00:00.000", elder_id="elder-2")

        result = await summarizer.summarize("elder-1", "2024-03-02")

        assert result.to_response() == {"summary": "A lovely day in the park.", "memoriesCount": 1}
        assert len(completion.calls) == 1
        _, user = completion.calls[0]
        assert "- Walked in the park" in user
        assert "Yesterday's note" not in user
        assert "Someone else" not in user

    @pytest.mark.asyncio
    async def test_questions_alone_trigger_generation(self, summarizer, completion, store):
        store.add_question(Question(elder_id="elder-1", question_text="Where are my keys?",
                                    answer_text="On the hook", created_at="2024-03-02T11:00:00.000"))

        result = await summarizer.summarize("elder-1")

        assert result.memories_count == 0
        assert result.questions_count == 1
        assert result.generated is True
        assert len(completion.calls) == 1

    @pytest.mark.asyncio
    async def test_rerun_overwrites(self, summarizer, completion, store):
        add_memory(store, "Walked in the park", "2024-03-02T09:30:00.000")

        completion.reply = "first"
        await summarizer.summarize("elder-1", "2024-03-02")
        completion.reply = "second"
        await summarizer.summarize("elder-1", "2024-03-02")

        summaries = store.list_summaries("elder-1", 10)
        assert [s.summary_text for s in summaries] == ["second"]

    @pytest.mark.asyncio
    async def test_empty_completion_uses_summary_fallback(self, summarizer, completion, store):
        completion.reply = ""
        add_memory(store, "Walked in the park", "2024-03-02T09:30:00.000")

        result = await summarizer.summarize("elder-1")
        assert result.summary.summary_text == SUMMARY_FALLBACK

    @pytest.mark.asyncio
    async def test_completion_error_propagates_without_saving(self, summarizer, completion, store):
        completion.error = RateLimitError("Rate limit exceeded. Please try again in a moment.")
        add_memory(store, "Walked in the park", "2024-03-02T09:30:00.000")

        with pytest.raises(RateLimitError):
            await summarizer.summarize("elder-1")
        assert store.get_summary("elder-1", "2024-03-02") is None

    @pytest.mark.asyncio
    async def test_missing_elder(self, summarizer):
        with pytest.raises(ValidationError):
            await summarizer.summarize("")
