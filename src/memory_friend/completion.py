"""Completion client for the hosted LLM endpoint.

Wraps AsyncGroq and translates its failures into Memory Friend errors.
Requests are never retried here; retrying is the caller's decision.
"""

import logging
from typing import Any, Protocol

import groq
import httpx
from groq import AsyncGroq

from .errors import (
    ConfigurationError,
    QuotaExhaustedError,
    RateLimitError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-oss-120b"
ANSWER_FALLBACK = "I apologize, but I could not generate an answer at this time."

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
QUOTA_MESSAGE = "AI credits exhausted. Please add more credits."


class CompletionClient(Protocol):
    """Protocol for the text-completion dependency of the services."""

    async def complete(
        self, system: str, user: str, fallback: str = ANSWER_FALLBACK
    ) -> str:
        """Return the generated text for a (system, user) prompt pair."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


class GroqCompletionClient:
    """CompletionClient backed by the Groq chat completions API.

    Example:
        client = GroqCompletionClient(api_key="...", model="openai/gpt-oss-120b")
        answer = await client.complete(system_prompt, "Where are my keys?")
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: AsyncGroq | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Groq API key. Checked on every call, not here, so the
                service can start without one.
            model: Model used for completions.
            base_url: Optional OpenAI-compatible gateway URL.
            timeout: Seconds before a request is abandoned.
            client: Prebuilt AsyncGroq instance (tests).
        """
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._timeout = timeout
        self._client = client

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    @property
    def configured(self) -> bool:
        """Whether an API key is available."""
        return bool(self._api_key)

    def _get_client(self) -> AsyncGroq:
        if self._client is None:
            self._client = AsyncGroq(
                api_key=self._api_key,
                base_url=self._base_url,
                max_retries=0,
                http_client=httpx.AsyncClient(timeout=self._timeout),
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client, if one was opened."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def complete(
        self, system: str, user: str, fallback: str = ANSWER_FALLBACK
    ) -> str:
        """Send one chat completion request and return the first choice's text.

        Args:
            system: System instruction.
            user: User message.
            fallback: Returned when the response carries no text.

        Returns:
            The generated text, or fallback.

        Raises:
            ConfigurationError: No API key is configured.
            RateLimitError: The endpoint answered 429.
            QuotaExhaustedError: The endpoint answered 402.
            ServiceUnavailableError: Any other failure.
        """
        if not self._api_key:
            raise ConfigurationError("GROQ_API_KEY is not configured")

        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]

        try:
            response = await self._get_client().chat.completions.create(
                model=self._model,
                messages=messages,
            )
        except groq.APIStatusError as e:
            raise _status_error(e) from e
        except groq.APIError as e:
            # Connection failures and timeouts
            logger.error("Completion request failed: %s", e)
            raise ServiceUnavailableError("AI service unavailable", detail=str(e)) from e

        return _first_content(response) or fallback


def _status_error(e: groq.APIStatusError) -> Exception:
    """Map a non-success response to the matching error."""
    if e.status_code == 429:
        return RateLimitError(RATE_LIMIT_MESSAGE)
    if e.status_code == 402:
        return QuotaExhaustedError(QUOTA_MESSAGE)
    body = e.response.text
    logger.error("AI gateway error: %s %s", e.status_code, body)
    return ServiceUnavailableError("AI service unavailable", detail=body)


def _first_content(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""
