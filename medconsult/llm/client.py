"""
OpenRouter LLM Client.

Chat completions for the expert differential model, routed through
OpenRouter's OpenAI-compatible API.
"""

import logging
import os
from typing import Optional

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, InternalServerError, RateLimitError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from medconsult.models.llm import LLMResponse


logger = logging.getLogger(__name__)


TRANSIENT_ERRORS = (APIConnectionError, APITimeoutError, InternalServerError, RateLimitError)


class LLMClient:
    """
    Async client for the OpenRouter API.

    Transient failures (connection, timeout, 5xx, rate limit) are retried
    three times with exponential backoff; anything else propagates.
    """

    OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        site_url: Optional[str] = None,
        site_name: Optional[str] = None,
    ):
        """
        Initialize the LLM client.

        Args:
            api_key: OpenRouter API key. If not provided, reads from OPENROUTER_API_KEY env var.
            timeout: Per-request timeout in seconds
            site_url: Optional site URL for OpenRouter attribution.
            site_name: Optional site name for OpenRouter attribution.
        """
        self.api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenRouter API key required. Set OPENROUTER_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.timeout = timeout
        self.site_url = site_url or os.getenv("OPENROUTER_SITE_URL", "http://localhost:8000")
        self.site_name = site_name or os.getenv("OPENROUTER_SITE_NAME", "Medical Consultation Engine")

        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.OPENROUTER_BASE_URL,
            timeout=timeout,
            max_retries=0,
            default_headers={
                "HTTP-Referer": self.site_url,
                "X-Title": self.site_name,
            },
        )

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def complete(
        self,
        model: str,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Generate a completion from the specified model.

        Args:
            model: Model identifier (e.g., "google/gemini-2.0-flash-001")
            messages: List of message dicts with "role" and "content" keys
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate (optional)

        Returns:
            LLMResponse with content and token usage
        """
        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        response = await self.client.chat.completions.create(**kwargs)

        choice = response.choices[0]
        usage = response.usage

        result = LLMResponse(
            content=choice.message.content or "",
            model=model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            finish_reason=choice.finish_reason or "stop",
        )
        logger.debug(
            f"{model}: {result.input_tokens} in / {result.output_tokens} out ({result.finish_reason})"
        )
        return result


class MockLLMClient:
    """
    Scripted LLM client for testing.

    Returns canned content per model, or raises ``error`` when set.
    """

    def __init__(self, responses: Optional[dict[str, str]] = None, error: Optional[Exception] = None):
        self.responses = responses or {}
        self.error = error
        self.calls: list[dict] = []

    async def complete(
        self,
        model: str,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        self.calls.append({
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.error is not None:
            raise self.error

        content = self.responses.get(model, f"Mock response from {model}")

        return LLMResponse(
            content=content,
            model=model,
            input_tokens=sum(len(m.get("content", "")) // 4 for m in messages),
            output_tokens=len(content) // 4,
            finish_reason="stop",
        )
