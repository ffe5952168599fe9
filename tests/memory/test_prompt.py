"""Tests for the prompt builders."""

from memory_friend.memory import Memory, MemoryType, Question
from memory_friend.memory.prompt import (
    NO_MEMORIES,
    SUMMARY_SYSTEM_PROMPT,
    build_answer_prompt,
    build_summary_prompt,
    format_memory_context,
)


def make_memory(text: str, memory_type: MemoryType = MemoryType.STORY) -> Memory:
    return Memory(elder_id="elder-1", type=memory_type, raw_text=text)


class TestMemoryContext:
    def test_empty_uses_fallback(self):
        assert format_memory_context([]) == NO_MEMORIES
        assert NO_MEMORIES == "No memories recorded yet."

    def test_enumerates_with_type_and_blank_lines(self):
        context = format_memory_context([
            make_memory("Keys are on the hook"),
            make_memory("Take aspirin at 9", MemoryType.MEDICATION),
        ])
        assert context == (
            "Memory 1 (story): Keys are on the hook\n\n"
            "Memory 2 (medication): Take aspirin at 9"
        )


class TestAnswerPrompt:
    def test_system_contains_context_user_is_raw_question(self):
        system, user = build_answer_prompt([make_memory("Keys are on the hook")], "Where are my keys?")
        assert system.endswith("Here are the user's recorded memories:\nMemory 1 (story): Keys are on the hook")
        assert user == "Where are my keys?"

    def test_empty_memories(self):
        system, _ = build_answer_prompt([], "Anything?")
        assert system.endswith(NO_MEMORIES)

    def test_pure(self):
        memories = [make_memory("a"), make_memory("b", MemoryType.EVENT)]
        assert build_answer_prompt(memories, "q") == build_answer_prompt(list(memories), "q")

    def test_question_not_revalidated(self):
        _, user = build_answer_prompt([], "  padded  ")
        assert user == "  padded  "


class TestSummaryPrompt:
    def test_lists_memories_and_questions(self):
        system, user = build_summary_prompt(
            [make_memory("Walked in the park")],
            [
                Question(elder_id="elder-1", question_text="Where are my keys?", answer_text="On the hook"),
                Question(elder_id="elder-1", question_text="Who is Tom?"),
            ],
        )
        assert system == SUMMARY_SYSTEM_PROMPT
        assert "- Walked in the park" in user
        assert "Q: Where are my keys?\nA: On the hook" in user
        assert "Q: Who is Tom?\nA: No answer yet" in user

    def test_fallbacks(self):
        _, user = build_summary_prompt([], [])
        assert "No new memories today." in user
        assert "No questions today." in user

    def test_pure(self):
        memories = [make_memory("x")]
        assert build_summary_prompt(memories, []) == build_summary_prompt(memories, [])
