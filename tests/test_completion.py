"""Tests for GroqCompletionClient."""

from unittest.mock import AsyncMock, MagicMock

import groq
import httpx
import pytest
from groq import AsyncGroq

from memory_friend.completion import (
    ANSWER_FALLBACK,
    QUOTA_MESSAGE,
    RATE_LIMIT_MESSAGE,
    GroqCompletionClient,
)
from memory_friend.errors import (
    ConfigurationError,
    QuotaExhaustedError,
    RateLimitError,
    ServiceUnavailableError,
)

CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"


def chat_completion(content: str | None) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }


def transport_client(handler) -> tuple[GroqCompletionClient, list[httpx.Request]]:
    """Client wired to an in-memory transport, recording every request."""
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    groq_client = AsyncGroq(
        api_key="test-key",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(record)),
    )
    return GroqCompletionClient("test-key", model="test-model", client=groq_client), requests


def status_error(status: int, text: str = "") -> groq.APIStatusError:
    response = httpx.Response(status, text=text, request=httpx.Request("POST", CHAT_URL))
    return groq.APIStatusError(f"status {status}", response=response, body=None)


class TestGroqCompletionClient:
    """Tests for the request and response handling."""

    def test_stores_model(self) -> None:
        client = GroqCompletionClient("key", model="custom-model")
        assert client.model == "custom-model"

    def test_builds_client_without_retries(self) -> None:
        client = GroqCompletionClient("key")
        assert client._get_client().max_retries == 0

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_network(self) -> None:
        mock_groq = MagicMock()
        mock_groq.chat.completions.create = AsyncMock()
        client = GroqCompletionClient(None, client=mock_groq)

        with pytest.raises(ConfigurationError):
            await client.complete("system", "user")

        mock_groq.chat.completions.create.assert_not_called()
        assert client.configured is False

    @pytest.mark.asyncio
    async def test_sends_system_and_user(self) -> None:
        mock_response = MagicMock()
        mock_response.choices = [MagicMock()]
        mock_response.choices[0].message.content = "LLM response"

        mock_groq = MagicMock()
        mock_groq.chat.completions.create = AsyncMock(return_value=mock_response)

        client = GroqCompletionClient("key", model="test-model", client=mock_groq)
        result = await client.complete("You are kind", "Where are my keys?")

        assert result == "LLM response"
        mock_groq.chat.completions.create.assert_called_once_with(
            model="test-model",
            messages=[
                {"role": "system", "content": "You are kind"},
                {"role": "user", "content": "Where are my keys?"},
            ],
        )

    @pytest.mark.asyncio
    async def test_empty_content_returns_fallback(self) -> None:
        client, _ = transport_client(lambda r: httpx.Response(200, json=chat_completion(None)))
        assert await client.complete("s", "u") == ANSWER_FALLBACK

    @pytest.mark.asyncio
    async def test_no_choices_returns_custom_fallback(self) -> None:
        body = chat_completion("x")
        body["choices"] = []
        client, _ = transport_client(lambda r: httpx.Response(200, json=body))
        assert await client.complete("s", "u", fallback="nothing") == "nothing"

    @pytest.mark.asyncio
    async def test_success_over_http(self) -> None:
        client, requests = transport_client(
            lambda r: httpx.Response(200, json=chat_completion("On the hook."))
        )
        assert await client.complete("s", "Where are my keys?") == "On the hook."
        assert len(requests) == 1
        assert requests[0].headers["authorization"] == "Bearer test-key"


class TestCompletionErrors:
    """Status codes map to distinct errors, each after a single request."""

    @pytest.mark.asyncio
    async def test_rate_limit_not_retried(self) -> None:
        client, requests = transport_client(
            lambda r: httpx.Response(429, json={"error": {"message": "slow down"}})
        )

        with pytest.raises(RateLimitError) as exc_info:
            await client.complete("s", "u")

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == RATE_LIMIT_MESSAGE
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_payment_required(self) -> None:
        client, requests = transport_client(
            lambda r: httpx.Response(402, json={"error": {"message": "no credits"}})
        )

        with pytest.raises(QuotaExhaustedError) as exc_info:
            await client.complete("s", "u")

        assert exc_info.value.status_code == 402
        assert exc_info.value.message == QUOTA_MESSAGE
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_other_status_carries_body(self) -> None:
        mock_groq = MagicMock()
        mock_groq.chat.completions.create = AsyncMock(side_effect=status_error(503, "upstream down"))
        client = GroqCompletionClient("key", client=mock_groq)

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await client.complete("s", "u")

        assert exc_info.value.detail == "upstream down"
        assert mock_groq.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, requests = transport_client(fail)

        with pytest.raises(ServiceUnavailableError):
            await client.complete("s", "u")
        assert len(requests) == 1


class TestClientLifecycle:
    """Tests for releasing the HTTP connection pool."""

    @pytest.mark.asyncio
    async def test_aclose_closes_http_client(self) -> None:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda r: httpx.Response(200, json=chat_completion("ok"))
            )
        )
        groq_client = AsyncGroq(api_key="test-key", max_retries=0, http_client=http_client)
        client = GroqCompletionClient("test-key", client=groq_client)

        assert await client.complete("s", "u") == "ok"
        await client.aclose()

        assert http_client.is_closed

    @pytest.mark.asyncio
    async def test_aclose_without_client_is_noop(self) -> None:
        client = GroqCompletionClient("key")
        await client.aclose()
        assert client._client is None
