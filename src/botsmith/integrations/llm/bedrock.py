"""
botsmith.integrations.llm.bedrock - Anthropic Models on Amazon Bedrock
========================================================================

Calls ``bedrock-runtime.invoke_model`` with the Anthropic messages body:

    {
      "anthropic_version": "bedrock-2023-05-31",
      "system": "...",
      "messages": [{"role": "user", "content": [{"type": "text", "text": "..."}]}],
      "max_tokens": 4096,
      "temperature": 0.2
    }

The answer text is ``content[0].text``. boto3 is synchronous, so calls run
in a worker thread to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional, Sequence

import boto3
import structlog
from botocore.config import Config

from botsmith.core.config import LLMConfig
from botsmith.core.messages import ConversationMessage
from botsmith.integrations.llm.base import BaseLLMProvider, LLMResponse, LLMUsage


logger = structlog.get_logger()

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class BedrockLLMProvider(BaseLLMProvider):
    """LLM provider backed by Amazon Bedrock.

    Args:
        config: LLM configuration (model id, region, temperature, max_tokens).
        client: Optional pre-built bedrock-runtime client (tests inject one).
    """

    def __init__(self, config: LLMConfig, client: Optional[Any] = None) -> None:
        super().__init__(config)

        if client is None:
            session = boto3.Session(region_name=config.region)
            client = session.client(
                "bedrock-runtime",
                config=Config(
                    retries={"max_attempts": 3, "mode": "adaptive"},
                    read_timeout=300,
                    connect_timeout=10,
                ),
            )
        self._client = client
        self._logger = logger.bind(component="bedrock_llm_provider", model=config.model)

    async def converse(
        self,
        system_prompt: str,
        messages: Sequence[ConversationMessage],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        body = {
            "anthropic_version": ANTHROPIC_VERSION,
            "system": system_prompt,
            "messages": self._merge_turns(messages),
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
        }

        response = await asyncio.to_thread(
            self._client.invoke_model,
            modelId=self.model,
            body=json.dumps(body),
            contentType="application/json",
            accept="application/json",
        )
        payload = json.loads(response["body"].read())

        usage = payload.get("usage", {})
        input_tokens = usage.get("input_tokens", 0)
        output_tokens = usage.get("output_tokens", 0)
        self._logger.debug(
            "bedrock_invoke_completed",
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            stop_reason=payload.get("stop_reason"),
        )

        content = payload["content"][0]["text"]
        return LLMResponse(
            content=content,
            model=payload.get("model", self.model),
            usage=LLMUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            finish_reason="length" if payload.get("stop_reason") == "max_tokens" else "stop",
            metadata={"id": payload.get("id"), "stop_reason": payload.get("stop_reason")},
        )

    @staticmethod
    def _merge_turns(messages: Sequence[ConversationMessage]) -> list[dict[str, Any]]:
        """Render messages, folding consecutive same-role turns into one.

        The messages API requires alternating roles; a repair conversation
        starts with two user turns (guideline, then request).
        """
        merged: list[dict[str, Any]] = []
        for message in messages:
            wire = message.to_wire()
            if merged and merged[-1]["role"] == wire["role"]:
                merged[-1]["content"].extend(wire["content"])
            else:
                merged.append(wire)
        return merged

    def get_available_models(self) -> list[str]:
        return [self.model]
