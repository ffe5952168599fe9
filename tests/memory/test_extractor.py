"""Tests for MemoryExtractor."""

from unittest.mock import AsyncMock, Mock

import pytest

from memory_friend.errors import RateLimitError, ServiceUnavailableError
from memory_friend.memory import ExtractedMetadata, MemoryExtractor, MemoryType


@pytest.fixture
def mock_completion() -> Mock:
    """Create a mock completion client."""
    client = Mock()
    client.complete = AsyncMock()
    return client


@pytest.fixture
def extractor(mock_completion: Mock) -> MemoryExtractor:
    return MemoryExtractor(mock_completion)


class TestMemoryExtractorExtract:
    """Tests for the extract method."""

    @pytest.mark.asyncio
    async def test_blank_text_skips_call(self, extractor, mock_completion):
        assert await extractor.extract("   ") == ExtractedMetadata()
        mock_completion.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_valid_extraction(self, extractor, mock_completion):
        mock_completion.complete.return_value = (
            '{"type": "person", "tags": ["family", "son"], '
            '"structured": {"names": ["Tom"], "relationships": ["son"]}}'
        )

        metadata = await extractor.extract("Tom is my son")

        assert metadata.type is MemoryType.PERSON
        assert metadata.tags == ["family", "son"]
        assert metadata.structured == {"names": ["Tom"], "relationships": ["son"]}
        system, user = mock_completion.complete.call_args.args[:2]
        assert "memory classification assistant" in system
        assert user == "Tom is my son"

    @pytest.mark.asyncio
    async def test_markdown_code_block(self, extractor, mock_completion):
        mock_completion.complete.return_value = (
            '```json\n{"type": "medication", "tags": ["aspirin"], "structured": {}}\n```'
        )
        metadata = await extractor.extract("Aspirin at 9")
        assert metadata.type is MemoryType.MEDICATION
        assert metadata.tags == ["aspirin"]

    @pytest.mark.asyncio
    async def test_invalid_json_returns_default(self, extractor, mock_completion):
        mock_completion.complete.return_value = "I think this is a story {not json}"
        assert await extractor.extract("text") == ExtractedMetadata()

    @pytest.mark.asyncio
    async def test_unknown_type_becomes_other(self, extractor, mock_completion):
        mock_completion.complete.return_value = '{"type": "recipe", "tags": "oops"}'
        metadata = await extractor.extract("text")
        assert metadata.type is MemoryType.OTHER
        assert metadata.tags == []

    @pytest.mark.asyncio
    async def test_service_outage_returns_default(self, extractor, mock_completion):
        mock_completion.complete.side_effect = ServiceUnavailableError("AI service unavailable")
        assert await extractor.extract("text") == ExtractedMetadata()

    @pytest.mark.asyncio
    async def test_rate_limit_propagates(self, extractor, mock_completion):
        mock_completion.complete.side_effect = RateLimitError("Rate limit exceeded")
        with pytest.raises(RateLimitError):
            await extractor.extract("text")
