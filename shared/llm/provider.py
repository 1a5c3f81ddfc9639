"""
LLM Provider Base
=================

Abstract base class and common models for LLM providers.

Version: 0.1.0
"""

import base64
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from shared.config import settings, LLMProvider as LLMProviderEnum
from shared.logging import get_logger

logger = get_logger(__name__)


class MessageRole(str, Enum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class LLMAttachment(BaseModel):
    """Binary document sent inline with a user message."""

    media_type: str = "application/pdf"
    data: bytes
    filename: str = "document.pdf"

    @property
    def base64_data(self) -> str:
        """Base64-encoded payload for transport."""
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_url(self) -> str:
        """RFC 2397 data URL of the payload."""
        return f"data:{self.media_type};base64,{self.base64_data}"


class LLMMessage(BaseModel):
    """A message in the conversation."""

    role: MessageRole | Literal["system", "user", "assistant"]
    content: str
    attachments: list[LLMAttachment] = Field(default_factory=list)

    @property
    def role_value(self) -> str:
        """Role as a plain string."""
        return self.role.value if isinstance(self.role, MessageRole) else self.role

    def to_dict(self) -> dict[str, str]:
        """Convert to dict for API calls (text only)."""
        return {"role": self.role_value, "content": self.content}


class LLMUsage(BaseModel):
    """Token usage information."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    # Cost tracking (in USD)
    input_cost: float = 0.0
    output_cost: float = 0.0
    total_cost: float = 0.0


class LLMResponse(BaseModel):
    """Response from LLM provider."""

    content: str = Field(..., description="Generated text content")
    model: str = Field(..., description="Model used for generation")
    provider: str = Field(..., description="Provider name")
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: str | None = None

    latency_ms: float = 0.0


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Implements the Strategy pattern for swappable LLM backends.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion for the given messages.

        Args:
            messages: Conversation messages, user messages may carry attachments
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with generated content
        """
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """
        Check provider health.

        Returns:
            dict with status and provider info
        """
        ...

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        attachments: list[LLMAttachment] | None = None,
        **kwargs: Any,
    ) -> str:
        """
        Simple text generation helper.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            attachments: Optional documents sent with the prompt
            **kwargs: Additional arguments for complete()

        Returns:
            Generated text content
        """
        messages = []
        if system_prompt:
            messages.append(LLMMessage(role="system", content=system_prompt))
        messages.append(
            LLMMessage(role="user", content=prompt, attachments=attachments or [])
        )

        response = await self.complete(messages, **kwargs)
        return response.content


def split_system_prompt(messages: list[LLMMessage]) -> tuple[str | None, list[LLMMessage]]:
    """Separate system messages (joined) from the conversation turns."""
    system_parts = [m.content for m in messages if m.role_value == "system"]
    turns = [m for m in messages if m.role_value != "system"]
    return ("\n\n".join(system_parts) or None), turns


# Global provider instance
_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider:
    """
    Get the configured LLM provider instance.

    Uses the provider specified in settings.llm.provider.
    Creates and caches the instance on first call.

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If the provider is unknown or has no API key
    """
    global _provider

    if _provider is None:
        provider_type = settings.llm.provider

        if provider_type == LLMProviderEnum.CLAUDE:
            from shared.llm.claude import ClaudeProvider

            _provider = ClaudeProvider()
        elif provider_type == LLMProviderEnum.OPENAI:
            from shared.llm.openai import OpenAIProvider

            _provider = OpenAIProvider()
        else:
            raise ValueError(f"Unknown LLM provider: {provider_type}")

        logger.info(
            "llm_provider_initialized",
            provider=_provider.name,
            model=_provider.model,
        )

    return _provider


def get_optional_llm_provider() -> LLMProvider | None:
    """
    Get the configured provider, or None when no credential is set.

    Returns:
        LLMProvider instance or None
    """
    if _provider is None and not settings.llm.has_credentials:
        logger.warning("llm_provider_unconfigured", provider=settings.llm.provider.value)
        return None
    return get_llm_provider()


def set_llm_provider(provider: LLMProvider) -> None:
    """
    Set a custom LLM provider.

    Useful for testing or custom implementations.

    Args:
        provider: LLMProvider instance to use
    """
    global _provider
    _provider = provider
    logger.info(
        "llm_provider_set",
        provider=provider.name,
        model=provider.model,
    )


def reset_llm_provider() -> None:
    """Reset the provider to be re-initialized on next access."""
    global _provider
    _provider = None
