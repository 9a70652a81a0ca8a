"""
botsmith.integrations.llm - Large Language Model Providers
============================================================

Available Providers:
    - BaseLLMProvider:    Abstract base class defining the LLM contract.
    - MockLLMProvider:    Queued/echo responses for testing.
    - BedrockLLMProvider: Anthropic models on Amazon Bedrock.

Usage:
    >>> from botsmith.integrations.llm import create_llm_provider
    >>> provider = create_llm_provider(config.llm)
"""

from botsmith.integrations.llm.base import BaseLLMProvider, LLMResponse, LLMUsage
from botsmith.integrations.llm.factory import create_llm_provider
from botsmith.integrations.llm.mock import MockLLMProvider

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "LLMUsage",
    "MockLLMProvider",
    "create_llm_provider",
]
