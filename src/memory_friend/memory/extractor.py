"""Classification of memory text using the LLM."""

import json
import logging
import re
from typing import Any

from ..completion import CompletionClient
from ..errors import ServiceUnavailableError
from .models import ExtractedMetadata, MemoryType

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """You are a memory classification assistant. Analyze the given text and extract:
1. The type of memory (one of: story, person, event, medication, routine, preference, other)
2. Relevant tags (keywords that describe the memory)
3. Structured data (names, dates, locations, relationships mentioned)

Respond in JSON format only:
{
  "type": "story|person|event|medication|routine|preference|other",
  "tags": ["tag1", "tag2"],
  "structured": {
    "names": [],
    "dates": [],
    "locations": [],
    "relationships": []
  }
}"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class MemoryExtractor:
    """Extracts type, tags and structured data from a memory text."""

    def __init__(self, completion: CompletionClient) -> None:
        """Initialize the extractor.

        Args:
            completion: The client used for the classification call.
        """
        self.completion = completion

    async def extract(self, raw_text: str) -> ExtractedMetadata:
        """Classify a memory text.

        Unparseable output and endpoint outages yield the default
        classification (type 'other', no tags). Rate limit, quota and
        configuration errors propagate.

        Args:
            raw_text: The memory text to analyze.

        Returns:
            The extracted metadata.
        """
        if not raw_text.strip():
            return ExtractedMetadata()

        try:
            content = await self.completion.complete(
                EXTRACTION_PROMPT, raw_text, fallback=""
            )
        except ServiceUnavailableError as e:
            logger.warning("Memory extraction failed: %s", e)
            return ExtractedMetadata()

        return self._parse_response(content)

    def _parse_response(self, content: str) -> ExtractedMetadata:
        """Parse LLM output into metadata, tolerating markdown fences."""
        match = _JSON_OBJECT.search(content)
        if not match:
            logger.warning("No JSON object in extraction response")
            return ExtractedMetadata()

        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse extraction response: %s", e)
            return ExtractedMetadata()

        if not isinstance(data, dict):
            return ExtractedMetadata()

        try:
            memory_type = MemoryType(data.get("type", "other"))
        except ValueError:
            memory_type = MemoryType.OTHER

        tags = data.get("tags", [])
        if not isinstance(tags, list):
            tags = []

        structured: Any = data.get("structured", {})
        if not isinstance(structured, dict):
            structured = {}

        return ExtractedMetadata(
            type=memory_type,
            tags=[str(t) for t in tags if str(t).strip()],
            structured=structured,
        )
