"""
botsmith.integrations.llm.factory - LLM Provider Factory
==========================================================

Maps ``LLMConfig.provider`` to a concrete provider:

    >>> provider = create_llm_provider(LLMConfig(provider="mock"))
    >>> type(provider)  # MockLLMProvider
"""

from __future__ import annotations

from botsmith.core.config import LLMConfig
from botsmith.core.exceptions import ConfigurationError
from botsmith.integrations.llm.base import BaseLLMProvider


def create_llm_provider(config: LLMConfig) -> BaseLLMProvider:
    """Create an LLM provider instance based on configuration.

    Args:
        config: LLM configuration with provider name and model.

    Returns:
        A concrete BaseLLMProvider.

    Raises:
        ConfigurationError: If the provider name is not recognized.
    """
    provider_name = config.provider.lower()

    if provider_name == "mock":
        from botsmith.integrations.llm.mock import MockLLMProvider
        return MockLLMProvider(config)

    if provider_name == "bedrock":
        from botsmith.integrations.llm.bedrock import BedrockLLMProvider
        return BedrockLLMProvider(config)

    raise ConfigurationError(
        message=f"Unknown LLM provider: '{provider_name}'. Available providers: 'mock', 'bedrock'.",
        error_code="UNKNOWN_LLM_PROVIDER",
        details={"provider": provider_name},
    )
