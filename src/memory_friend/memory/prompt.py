"""Prompt builders for answering questions and summarizing a day.

All functions here are pure: same inputs, same prompt.
"""

from collections.abc import Sequence

from .models import Memory, Question

NO_MEMORIES = "No memories recorded yet."

ANSWER_SYSTEM_PROMPT = """You are a warm, patient, and caring memory assistant for elderly users. Your role is to help answer questions based on the memories that have been shared with you.

Guidelines:
- Be warm, friendly, and reassuring in your responses
- Use simple, clear language
- If you find relevant memories, reference them naturally in your answer
- If no relevant memories exist, gently explain that and offer to help record new memories
- Keep responses concise but complete
- Always be encouraging and positive

Here are the user's recorded memories:
{memory_context}"""

SUMMARY_SYSTEM_PROMPT = (
    "You are a caring assistant creating daily summaries for elderly users. "
    "Keep summaries warm, brief, and encouraging."
)

SUMMARY_USER_PROMPT = """Generate a warm, caring daily summary for an elderly user based on their activities today.

Memories recorded today:
{memories_text}

Questions asked today:
{questions_text}

Write a brief, encouraging summary (2-3 sentences) highlighting what was shared and any patterns or important information. Use a warm, friendly tone."""


def format_memory_context(memories: Sequence[Memory]) -> str:
    """Enumerate memories as 'Memory i (type): text' separated by blank lines."""
    if not memories:
        return NO_MEMORIES
    return "\n\n".join(
        f"Memory {i} ({memory.type.value}): {memory.raw_text}"
        for i, memory in enumerate(memories, start=1)
    )


def build_answer_prompt(memories: Sequence[Memory], question: str) -> tuple[str, str]:
    """Build the (system, user) pair for answering a question.

    Args:
        memories: Memories to ground the answer, in the order to present them.
        question: The question text, already validated.

    Returns:
        System instruction with the memory context, and the raw question.
    """
    system = ANSWER_SYSTEM_PROMPT.format(memory_context=format_memory_context(memories))
    return system, question


def build_summary_prompt(
    memories: Sequence[Memory], questions: Sequence[Question]
) -> tuple[str, str]:
    """Build the (system, user) pair for a daily summary."""
    memories_text = "\n".join(f"- {m.raw_text}" for m in memories)
    questions_text = "\n\n".join(
        f"Q: {q.question_text}\nA: {q.answer_text or 'No answer yet'}"
        for q in questions
    )
    user = SUMMARY_USER_PROMPT.format(
        memories_text=memories_text or "No new memories today.",
        questions_text=questions_text or "No questions today.",
    )
    return SUMMARY_SYSTEM_PROMPT, user
