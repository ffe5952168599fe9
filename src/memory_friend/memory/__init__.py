"""Memory module: storage, retrieval, prompting and summaries."""

from .base import Storage
from .extractor import MemoryExtractor
from .manager import AnswerResult, MemoryManager, MemoryPage
from .models import DailySummary, ExtractedMetadata, Memory, MemoryType, Question
from .prompt import build_answer_prompt, build_summary_prompt
from .recorder import AnswerRecorder, RecordOutcome
from .retrieval import Retrieval, RetrievalFilter
from .store import MemoryStore
from .summarizer import DailySummarizer, SummaryResult

__all__ = [
    "AnswerRecorder",
    "AnswerResult",
    "DailySummarizer",
    "DailySummary",
    "ExtractedMetadata",
    "Memory",
    "MemoryExtractor",
    "MemoryManager",
    "MemoryPage",
    "MemoryStore",
    "MemoryType",
    "Question",
    "RecordOutcome",
    "Retrieval",
    "RetrievalFilter",
    "Storage",
    "SummaryResult",
    "build_answer_prompt",
    "build_summary_prompt",
]
