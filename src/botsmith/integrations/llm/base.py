"""
botsmith.integrations.llm.base - Abstract LLM Provider Interface
==================================================================

The contract every LLM provider implements. The repair oracle never calls
Bedrock directly; it talks to this interface, so tests run against the mock
provider and production swaps in Bedrock with one config change.

Architecture Context:

    ┌───────────────┐      converse()      ┌──────────────────┐
    │ RepairOracle  │ ───────────────────→ │  BaseLLMProvider │
    │               │ ←── LLMResponse ──── │  (abstract)      │
    └───────────────┘                      └────────┬─────────┘
                                                    │
                                         ┌──────────┴─────────┐
                                    ┌────▼───┐         ┌──────▼──────┐
                                    │  Mock  │         │   Bedrock   │
                                    └────────┘         └─────────────┘

Conversations:
    The oracle keeps multi-turn repair conversations, so the primary call is
    ``converse(system_prompt, messages)``. ``generate_with_system()`` is the
    single-turn shortcut used for classification and targeted fixes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field

from botsmith.core.config import LLMConfig
from botsmith.core.enums import ConversationRole
from botsmith.core.messages import ConversationMessage


# =============================================================================
# LLM Response Model
# =============================================================================
class LLMUsage(BaseModel):
    """Token usage for a single LLM call."""

    prompt_tokens: int = Field(default=0, ge=0, description="Tokens in the input prompt")
    completion_tokens: int = Field(default=0, ge=0, description="Tokens in the output")
    total_tokens: int = Field(default=0, ge=0, description="Total tokens consumed")


class LLMResponse(BaseModel):
    """Standardized response from any LLM provider.

    Attributes:
        content: The generated text.
        model: The model identifier that produced this response.
        usage: Token counts.
        finish_reason: Why generation stopped ("stop", "length", "error").
        metadata: Provider-specific extras (request id, stop reason, ...).
        created_at: When this response was generated (UTC).
    """

    content: str = Field(description="The generated text content from the LLM")
    model: str = Field(description="Model identifier that produced this response")
    usage: LLMUsage = Field(default_factory=LLMUsage)
    finish_reason: str = Field(default="stop")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# Abstract Base LLM Provider
# =============================================================================
class BaseLLMProvider(ABC):
    """Abstract base class for all LLM providers.

    What subclasses must implement:
        - converse(): Multi-turn call with a system prompt

    What subclasses can optionally override:
        - validate(): Check the provider is properly configured
        - get_available_models(): List supported models
    """

    def __init__(self, config: LLMConfig) -> None:
        self._config = config

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def provider_name(self) -> str:
        """The provider identifier ('bedrock', 'mock')."""
        return self._config.provider

    @property
    def model(self) -> str:
        """The model identifier."""
        return self._config.model

    @property
    def temperature(self) -> float:
        return self._config.temperature

    @property
    def max_tokens(self) -> int:
        return self._config.max_tokens

    @property
    def config(self) -> LLMConfig:
        return self._config

    # =========================================================================
    # Abstract Methods
    # =========================================================================

    @abstractmethod
    async def converse(
        self,
        system_prompt: str,
        messages: Sequence[ConversationMessage],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Continue a conversation and return the assistant's next turn.

        Args:
            system_prompt: Role and rules for the model.
            messages: Conversation so far, oldest first. The last message
                is normally a user turn.
            temperature: Override the configured temperature.
            max_tokens: Override the configured max_tokens.

        Returns:
            LLMResponse with the generated text.

        Raises:
            Exception: Provider-specific failures (network, throttling, ...).
        """
        ...

    # =========================================================================
    # Convenience
    # =========================================================================

    async def generate_with_system(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Single-turn call: one system prompt, one user prompt."""
        return await self.converse(
            system_prompt,
            [ConversationMessage(role=ConversationRole.USER, text=user_prompt)],
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def validate(self) -> bool:
        """Validate that the provider is properly configured."""
        return True

    def get_available_models(self) -> list[str]:
        """List the models supported by this provider."""
        return [self.model]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.provider_name!r}, model={self.model!r})"
