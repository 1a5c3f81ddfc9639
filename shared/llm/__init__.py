"""
LLM Provider Module
===================

Abstraction layer for multiple LLM providers.

Supported providers:
- Anthropic Claude (primary)
- OpenAI GPT or any OpenAI-compatible gateway (backup)

Usage:
    from shared.llm import get_llm_provider, LLMMessage

    provider = get_llm_provider()

    response = await provider.complete(
        messages=[
            LLMMessage(role="system", content="You are a medical device regulation expert."),
            LLMMessage(role="user", content="Summarise the sterility labelling rules."),
        ]
    )
    print(response.content)
"""

from shared.llm.provider import (
    LLMAttachment,
    LLMMessage,
    LLMProvider,
    LLMResponse,
    LLMUsage,
    get_llm_provider,
    get_optional_llm_provider,
    reset_llm_provider,
    set_llm_provider,
)

__all__ = [
    "LLMProvider",
    "LLMAttachment",
    "LLMMessage",
    "LLMResponse",
    "LLMUsage",
    "get_llm_provider",
    "get_optional_llm_provider",
    "set_llm_provider",
    "reset_llm_provider",
]
