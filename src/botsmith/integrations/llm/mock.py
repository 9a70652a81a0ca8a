"""
botsmith.integrations.llm.mock - Mock LLM Provider for Testing
================================================================

Returns configurable responses without making any API calls. It is the
default provider for tests and local runs.

How It Works:
    The mock keeps a FIFO response queue. When converse() is called:
    1. If failure simulation is on, raise RuntimeError.
    2. If responses are queued, return the next one.
    3. Otherwise return a smart default that echoes the last JSON payload
       found in the conversation back inside a ```json fence. That is the
       "I could not improve it" answer, which keeps repair loops moving
       without manual queueing.

Usage:
    >>> provider = MockLLMProvider()
    >>> provider.queue_json({"type": "intent", "resources": [{"intentName": "X"}]})
    >>> response = await provider.generate_with_system("sys", "classify this")
    >>> provider.call_count
    1
"""

from __future__ import annotations

import json
import re
from collections import deque
from typing import Any, Optional, Sequence

import structlog

from botsmith.core.config import LLMConfig
from botsmith.core.messages import ConversationMessage
from botsmith.integrations.llm.base import BaseLLMProvider, LLMResponse, LLMUsage


logger = structlog.get_logger()

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```")


class MockLLMProvider(BaseLLMProvider):
    """Mock LLM provider for testing and development.

    Features:
        - **Response Queue**: queue exact responses for controlled tests.
        - **Smart Default**: echo the payload under repair as JSON.
        - **Call History**: every call is recorded for assertions.
        - **Error Simulation**: raise on demand.

    Example:
        >>> provider = MockLLMProvider()
        >>> provider.queue_response("```json\\n{\\"slotTypeName\\": \\"Size\\"}\\n```")
        >>> response = await provider.generate_with_system("sys", "fix it")
        >>> assert "Size" in response.content
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        default_response: str = "```json\n{}\n```",
    ) -> None:
        if config is None:
            config = LLMConfig(provider="mock", model="mock-model")
        super().__init__(config)

        self._response_queue: deque[LLMResponse] = deque()

        # Each entry: {"system_prompt", "messages", "temperature", "max_tokens"}
        self._call_history: list[dict[str, Any]] = []

        self._default_response = default_response

        self._should_fail: bool = False
        self._failure_message: str = "Mock LLM API error"

        self._logger = logger.bind(component="mock_llm_provider")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """All recorded converse() calls."""
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    @property
    def queue_size(self) -> int:
        return len(self._response_queue)

    # =========================================================================
    # Queue Management
    # =========================================================================

    def queue_response(self, content: str, *, finish_reason: str = "stop") -> None:
        """Add a raw text response to the queue (FIFO)."""
        self._response_queue.append(
            LLMResponse(
                content=content,
                model=self.model,
                usage=self._estimate_usage(content),
                finish_reason=finish_reason,
            )
        )

    def queue_json(self, payload: Any, *, preamble: str = "Here is the result.") -> None:
        """Queue an answer that wraps ``payload`` in a ```json fence."""
        self.queue_response(f"{preamble}\n```json\n{json.dumps(payload)}\n```")

    def clear_queue(self) -> None:
        self._response_queue.clear()

    def clear_history(self) -> None:
        self._call_history.clear()

    # =========================================================================
    # Error Simulation
    # =========================================================================

    def set_should_fail(self, should_fail: bool, message: str = "Mock LLM API error") -> None:
        """Make every following call raise RuntimeError(message)."""
        self._should_fail = should_fail
        self._failure_message = message

    # =========================================================================
    # Core LLM Interface Implementation
    # =========================================================================

    async def converse(
        self,
        system_prompt: str,
        messages: Sequence[ConversationMessage],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Return the next queued response or the smart default."""
        self._call_history.append({
            "system_prompt": system_prompt,
            "messages": [m.model_copy() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        })

        self._logger.debug(
            "mock_converse_called",
            message_count=len(messages),
            queue_size=len(self._response_queue),
        )

        if self._should_fail:
            raise RuntimeError(self._failure_message)

        if self._response_queue:
            return self._response_queue.popleft()

        return self._generate_smart_default(messages)

    async def validate(self) -> bool:
        return True

    def get_available_models(self) -> list[str]:
        return ["mock-model"]

    # =========================================================================
    # Smart Default Generation
    # =========================================================================

    def _generate_smart_default(self, messages: Sequence[ConversationMessage]) -> LLMResponse:
        """Echo the last JSON payload seen in the conversation."""
        content = self._default_response
        for message in reversed(messages):
            match = _JSON_FENCE.search(message.text)
            if match and match.group(1).strip():
                content = f"```json\n{match.group(1).strip()}\n```"
                break

        return LLMResponse(
            content=content,
            model=self.model,
            usage=self._estimate_usage(content),
            metadata={"source": "smart_default"},
        )

    @staticmethod
    def _estimate_usage(content: str) -> LLMUsage:
        """Rough token estimate: ~4 characters per token."""
        completion_tokens = max(1, len(content) // 4)
        return LLMUsage(
            prompt_tokens=0,
            completion_tokens=completion_tokens,
            total_tokens=completion_tokens,
        )
