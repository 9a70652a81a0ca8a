"""
botsmith.orchestration.repair_oracle - AI Repair Oracle Client
================================================================

The oracle is an LLM treated as a black box with three questions:

    propose_correction  The platform rejected this payload with this error.
                        What should the payload be instead?
    classify_failure    This build failure reason was reported. Which
                        intents, slots or slot types does it refer to?
    propose_fix         Here is one of those resources and its context.
                        What should it look like so the build passes?

Only propose_correction is conversational: each call appends a user turn
and the model's answer to the RepairConversation the caller passes in, so
the next attempt sees every earlier attempt. The other two are single
calls.

The oracle makes no platform calls. Any failure, from the provider raising
to an answer without a ```json block, surfaces as OracleError.

Usage:
    >>> oracle = RepairOracle(llm_provider)
    >>> corrected, conversation = await oracle.propose_correction(
    ...     ResourceOperation.create(ResourceType.SLOT_TYPE),
    ...     payload,
    ...     "slotTypeValues must have at least 1 item",
    ...     RepairConversation.seeded(guideline_for(ResourceType.SLOT_TYPE)),
    ... )
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import structlog
from pydantic import ValidationError

from botsmith.core.enums import ConversationRole
from botsmith.core.exceptions import OracleError
from botsmith.core.messages import ConversationMessage, RepairConversation
from botsmith.core.models import FailureClassification, ResourceInventory, ResourceOperation
from botsmith.integrations.llm.base import BaseLLMProvider
from botsmith.orchestration.prompts import (
    CLASSIFY_SYSTEM_PROMPT,
    FIX_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    classify_prompt,
    correction_prompt,
    extract_json,
    fix_prompt,
)


logger = structlog.get_logger()


class RepairOracle:
    """Client for the AI assistant used as an error-correcting oracle.

    Args:
        llm_provider: The model to ask.
        temperature: Sampling temperature override. None uses the
            provider's configured value.
    """

    def __init__(self, llm_provider: BaseLLMProvider, temperature: Optional[float] = None) -> None:
        self._llm = llm_provider
        self._temperature = temperature
        self._logger = logger.bind(component="repair_oracle")

    @property
    def llm_provider(self) -> BaseLLMProvider:
        return self._llm

    # =========================================================================
    # Public Operations
    # =========================================================================

    async def propose_correction(
        self,
        operation: ResourceOperation,
        payload: dict[str, Any],
        error_message: str,
        conversation: RepairConversation,
    ) -> tuple[dict[str, Any], RepairConversation]:
        """Ask for a corrected payload after a rejected platform call.

        Args:
            operation: The call that failed.
            payload: The payload that was sent.
            error_message: The platform's error text.
            conversation: History of earlier attempts. Extended in place
                with the new question and answer.

        Returns:
            (corrected payload, the same conversation)

        Raises:
            OracleError: If the model fails or its answer is not a JSON object.
        """
        conversation.add_user(correction_prompt(operation, payload, error_message))
        answer = await self._ask(SYSTEM_PROMPT, conversation.messages, purpose="correction")
        conversation.add_assistant(answer)

        corrected = self._expect_object(extract_json(answer), purpose="correction")
        self._logger.info(
            "correction_proposed",
            operation=operation.command_name,
            turns=len(conversation),
        )
        return corrected, conversation

    async def classify_failure(self, reason: str, inventory: ResourceInventory) -> FailureClassification:
        """Map a build failure reason to the resources it names.

        Raises:
            OracleError: If the answer is not a valid classification.
        """
        answer = await self._ask(
            CLASSIFY_SYSTEM_PROMPT,
            [ConversationMessage(role=ConversationRole.USER, text=classify_prompt(reason, inventory))],
            purpose="classification",
        )
        document = self._expect_object(extract_json(answer), purpose="classification")

        try:
            classification = FailureClassification.model_validate(document)
        except ValidationError as e:
            raise OracleError(
                f"Unusable failure classification: {e.error_count()} validation errors",
                error_code="ORACLE_INVALID_CLASSIFICATION",
                details={"answer": document},
            ) from e

        self._logger.info(
            "failure_classified",
            reason=reason,
            type=classification.type.value,
            resources=len(classification.resources),
        )
        return classification

    async def propose_fix(
        self,
        reason: str,
        current_resource: dict[str, Any],
        repair_context: str,
    ) -> dict[str, Any]:
        """Ask for a fixed version of a resource named by a build failure."""
        answer = await self._ask(
            FIX_SYSTEM_PROMPT,
            [ConversationMessage(role=ConversationRole.USER, text=fix_prompt(reason, current_resource, repair_context))],
            purpose="fix",
        )
        return self._expect_object(extract_json(answer), purpose="fix")

    # =========================================================================
    # Internals
    # =========================================================================

    async def _ask(self, system_prompt: str, messages: Sequence[ConversationMessage], *, purpose: str) -> str:
        try:
            response = await self._llm.converse(
                system_prompt,
                list(messages),
                temperature=self._temperature,
            )
        except Exception as e:
            self._logger.error("oracle_call_failed", purpose=purpose, error=str(e))
            raise OracleError(
                f"Oracle {purpose} call failed: {e}",
                error_code="ORACLE_CALL_FAILED",
                details={"provider": self._llm.provider_name},
            ) from e
        return response.content

    @staticmethod
    def _expect_object(document: Any, *, purpose: str) -> dict[str, Any]:
        if not isinstance(document, dict):
            raise OracleError(
                f"Oracle {purpose} answer is not a JSON object",
                error_code="ORACLE_INVALID_JSON",
                details={"answer_type": type(document).__name__},
            )
        return document
