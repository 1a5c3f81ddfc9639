"""
Claude Provider
===============

Anthropic Claude API implementation with inline PDF document support.

Version: 0.1.0
"""

import time
from typing import Any

import anthropic
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.config import settings
from shared.llm.provider import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    LLMUsage,
    split_system_prompt,
)
from shared.logging import get_logger

logger = get_logger(__name__)

# Pricing per 1M tokens
CLAUDE_PRICING = {
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    "claude-3-5-sonnet-20241022": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
}


def _to_claude_message(message: LLMMessage) -> dict[str, Any]:
    """Convert a message to the Messages API shape, attachments first."""
    if not message.attachments:
        return message.to_dict()

    blocks: list[dict[str, Any]] = [
        {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": attachment.media_type,
                "data": attachment.base64_data,
            },
        }
        for attachment in message.attachments
    ]
    blocks.append({"type": "text", "text": message.content})
    return {"role": message.role_value, "content": blocks}


class ClaudeProvider(LLMProvider):
    """
    Anthropic Claude provider implementation.

    PDF attachments are sent as base64 document blocks, which Claude reads
    page by page (text layer and rendered images).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """
        Initialize Claude provider.

        Args:
            api_key: Anthropic API key (default from settings)
            model: Model to use (default from settings)
        """
        self._api_key = api_key or settings.llm.claude.api_key.get_secret_value()
        self._model = model or settings.llm.claude.model
        self._max_tokens = settings.llm.claude.max_tokens

        if not self._api_key:
            raise ValueError("Anthropic API key not configured")

        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            timeout=settings.llm.timeout_seconds,
        )

        logger.debug("claude_provider_initialized", model=self._model)

    @property
    def name(self) -> str:
        return "claude"

    @property
    def model(self) -> str:
        return self._model

    @retry(
        retry=retry_if_exception_type(
            (anthropic.RateLimitError, anthropic.APIConnectionError)
        ),
        stop=stop_after_attempt(settings.llm.max_retries),
        wait=wait_exponential(multiplier=1, min=2, max=60),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "claude_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep,  # type: ignore[union-attr]
        ),
    )
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion using Claude.

        Args:
            messages: Conversation messages
            temperature: Sampling temperature (default from settings)
            max_tokens: Max tokens to generate (default from settings)

        Returns:
            LLMResponse with generated content
        """
        start_time = time.perf_counter()

        system_message, turns = split_system_prompt(messages)

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [_to_claude_message(m) for m in turns],
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": temperature if temperature is not None else settings.llm.temperature,
        }

        if system_message:
            kwargs["system"] = system_message

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.BadRequestError as e:
            logger.error("claude_bad_request", error=str(e))
            raise
        except anthropic.AuthenticationError as e:
            logger.error("claude_auth_error", error=str(e))
            raise

        latency_ms = (time.perf_counter() - start_time) * 1000

        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        pricing = CLAUDE_PRICING.get(self._model, {"input": 3.00, "output": 15.00})
        input_cost = (response.usage.input_tokens / 1_000_000) * pricing["input"]
        output_cost = (response.usage.output_tokens / 1_000_000) * pricing["output"]

        usage = LLMUsage(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            input_cost=input_cost,
            output_cost=output_cost,
            total_cost=input_cost + output_cost,
        )

        logger.debug(
            "claude_completion",
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
            finish_reason=response.stop_reason,
            latency_ms=latency_ms,
        )

    async def health_check(self) -> dict[str, Any]:
        """
        Check Claude API health.

        Returns:
            dict with status and model info
        """
        try:
            start = time.perf_counter()
            await self._client.messages.create(
                model=self._model,
                messages=[{"role": "user", "content": "Hi"}],
                max_tokens=5,
            )
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy",
                "provider": self.name,
                "model": self._model,
                "latency_ms": round(latency_ms, 2),
            }

        except anthropic.APIError as e:
            logger.error("claude_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "provider": self.name,
                "model": self._model,
                "error": str(e),
            }
