"""
botsmith.integrations.platform.factory - Platform Factory
===========================================================
"""

from __future__ import annotations

from botsmith.core.config import PlatformConfig
from botsmith.core.exceptions import ConfigurationError
from botsmith.integrations.platform.base import ConversationalPlatform


def create_platform(config: PlatformConfig) -> ConversationalPlatform:
    """Create a conversational platform client from configuration.

    Provider Mapping:
        "memory" → InMemoryPlatform
        "lex"    → LexPlatform

    Raises:
        ConfigurationError: If the provider name is not recognized.
    """
    provider_name = config.provider.lower()

    if provider_name == "memory":
        from botsmith.integrations.platform.memory import InMemoryPlatform
        return InMemoryPlatform()

    if provider_name == "lex":
        from botsmith.integrations.platform.lex import LexPlatform
        return LexPlatform(
            region=config.region,
            download_timeout=config.download_timeout_seconds,
        )

    raise ConfigurationError(
        message=f"Unknown platform provider: '{provider_name}'. Available providers: 'memory', 'lex'.",
        error_code="UNKNOWN_PLATFORM_PROVIDER",
        details={"provider": provider_name},
    )
