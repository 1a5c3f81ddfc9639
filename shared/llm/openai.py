"""
OpenAI Provider
===============

OpenAI chat-completions implementation. Also serves OpenAI-compatible
gateways through ``OPENAI_BASE_URL``.

Version: 0.1.0
"""

import time
from typing import Any

import openai
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.config import settings
from shared.llm.provider import LLMMessage, LLMProvider, LLMResponse, LLMUsage
from shared.logging import get_logger


logger = get_logger(__name__)

# Pricing per 1M tokens
OPENAI_PRICING = {
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4.1": {"input": 2.00, "output": 8.00},
}


def _to_openai_message(message: LLMMessage) -> dict[str, Any]:
    """Convert a message to chat-completions format with file parts."""
    if not message.attachments:
        return message.to_dict()

    parts: list[dict[str, Any]] = [{"type": "text", "text": message.content}]
    for attachment in message.attachments:
        parts.append(
            {
                "type": "file",
                "file": {
                    "filename": attachment.filename,
                    "file_data": attachment.data_url,
                },
            }
        )
    return {"role": message.role_value, "content": parts}


class OpenAIProvider(LLMProvider):
    """
    OpenAI GPT provider implementation.

    Supports GPT-4o family models and any endpoint speaking the same API.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (default from settings)
            model: Model to use (default from settings)
            base_url: Alternative API root (default from settings)
        """
        self._api_key = api_key or settings.llm.openai.api_key.get_secret_value()
        self._model = model or settings.llm.openai.model
        self._max_tokens = settings.llm.openai.max_tokens

        if not self._api_key:
            raise ValueError("OpenAI API key not configured")

        self._client = openai.AsyncOpenAI(
            api_key=self._api_key,
            base_url=base_url or settings.llm.openai.base_url,
            timeout=settings.llm.timeout_seconds,
        )

        logger.debug("openai_provider_initialized", model=self._model)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    @retry(
        retry=retry_if_exception_type((openai.RateLimitError, openai.APIConnectionError)),
        stop=stop_after_attempt(settings.llm.max_retries),
        wait=wait_exponential(multiplier=1, min=2, max=60),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "openai_retry",
            attempt=retry_state.attempt_number,
        ),
    )
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion using OpenAI.

        Args:
            messages: Conversation messages
            temperature: Sampling temperature
            max_tokens: Max tokens to generate

        Returns:
            LLMResponse with generated content
        """
        start_time = time.perf_counter()

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [_to_openai_message(m) for m in messages],
            "temperature": temperature if temperature is not None else settings.llm.temperature,
            "max_tokens": max_tokens or self._max_tokens,
        }

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.BadRequestError as e:
            logger.error("openai_bad_request", error=str(e))
            raise
        except openai.AuthenticationError as e:
            logger.error("openai_auth_error", error=str(e))
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000

        content = response.choices[0].message.content or ""

        pricing = OPENAI_PRICING.get(self._model, {"input": 2.50, "output": 10.00})
        prompt_tokens = response.usage.prompt_tokens if response.usage else 0
        completion_tokens = response.usage.completion_tokens if response.usage else 0

        input_cost = (prompt_tokens / 1_000_000) * pricing["input"]
        output_cost = (completion_tokens / 1_000_000) * pricing["output"]

        usage = LLMUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            input_cost=input_cost,
            output_cost=output_cost,
            total_cost=input_cost + output_cost,
        )

        logger.debug(
            "openai_completion",
            model=self._model,
            tokens=usage.total_tokens,
            cost=usage.total_cost,
            latency_ms=round(latency_ms, 2),
        )

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.name,
            usage=usage,
            finish_reason=response.choices[0].finish_reason,
            latency_ms=latency_ms,
        )

    async def health_check(self) -> dict[str, Any]:
        """
        Check OpenAI API health.

        Returns:
            dict with status and model info
        """
        try:
            start = time.perf_counter()
            await self._client.models.list()
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy",
                "provider": self.name,
                "model": self._model,
                "latency_ms": round(latency_ms, 2),
            }

        except openai.APIError as e:
            logger.error("openai_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "provider": self.name,
                "model": self._model,
                "error": str(e),
            }
