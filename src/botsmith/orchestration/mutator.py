"""
botsmith.orchestration.mutator - Resource Mutator
===================================================

Applies one create or update of a slot type, slot or intent, and repairs
the payload with the oracle when the platform rejects its shape.

Repair Loop:

    payload ──→ normalize ──→ platform.apply ──→ success → return response
                   ↑                │
                   │          PlatformError
                   │                │
                   │     kind VALIDATION / SERIALIZATION?
                   │          │              │
                   │         yes             no → re-raise unchanged
                   │          │
                   │   attempts left? ── no → RepairBudgetExceededError
                   │          │
                   └── oracle.propose_correction(conversation)

Normalization runs before every attempt, including on payloads the oracle
rewrote:
    - intent code hooks are switched off
    - the resource id field (intentId / slotId / slotTypeId) is set when an
      id was given

With the default budget the platform sees at most 5 attempts. A rejection
of the 5th raises without asking the oracle again.
"""

from __future__ import annotations

import copy
from typing import Any, Optional

import structlog

from botsmith.core.enums import ResourceType
from botsmith.core.exceptions import PlatformError, RepairBudgetExceededError
from botsmith.core.messages import RepairConversation
from botsmith.core.models import ResourceOperation
from botsmith.integrations.platform.base import ConversationalPlatform
from botsmith.orchestration.prompts import guideline_for
from botsmith.orchestration.repair_oracle import RepairOracle


logger = structlog.get_logger()


def disable_code_hooks(payload: dict[str, Any]) -> None:
    """Switch off every code hook present on an intent payload, in place."""
    for key in ("dialogCodeHook", "fulfillmentCodeHook"):
        hook = payload.get(key)
        if isinstance(hook, dict) and hook.get("enabled"):
            hook["enabled"] = False

    for key in ("initialResponseSetting", "intentConfirmationSetting"):
        setting = payload.get(key)
        if isinstance(setting, dict) and isinstance(setting.get("codeHook"), dict):
            setting["codeHook"]["active"] = False
            setting["codeHook"]["enableCodeHookInvocation"] = False


class ResourceMutator:
    """Applies resource mutations with AI-assisted repair.

    Args:
        platform: Where resources live.
        oracle: Who to ask for corrected payloads.
        max_attempts: Platform calls allowed per ``apply``.

    Example:
        >>> mutator = ResourceMutator(platform, oracle)
        >>> response = await mutator.apply(
        ...     ResourceOperation.update(ResourceType.INTENT),
        ...     intent_payload,
        ...     resource_id="IN00000042",
        ... )
    """

    def __init__(
        self,
        platform: ConversationalPlatform,
        oracle: RepairOracle,
        max_attempts: int = 5,
    ) -> None:
        self._platform = platform
        self._oracle = oracle
        self._max_attempts = max_attempts
        self._logger = logger.bind(component="resource_mutator")

    async def apply(
        self,
        operation: ResourceOperation,
        payload: dict[str, Any],
        resource_id: Optional[str] = None,
        *,
        conversation: Optional[RepairConversation] = None,
    ) -> dict[str, Any]:
        """Send a mutation, repairing the payload on validation failures.

        Args:
            operation: Which create/update to perform.
            payload: Platform request body. Not modified.
            resource_id: Id of the resource, set on the payload when given.
            conversation: Repair history to extend. A new one seeded with
                the resource type's guidelines is used when omitted.

        Returns:
            The platform's response for the successful attempt.

        Raises:
            RepairBudgetExceededError: If the last allowed attempt is rejected.
            OracleError: If the oracle cannot produce a correction.
            PlatformError: Non-repairable platform failures, unchanged.
        """
        if conversation is None:
            conversation = RepairConversation.seeded(guideline_for(operation.resource_type))
        request = self._normalize(operation, payload, resource_id)

        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await self._platform.apply(operation, request)
            except PlatformError as e:
                if not e.kind.is_repairable:
                    raise

                self._logger.warning(
                    "mutation_rejected",
                    operation=operation.command_name,
                    attempt=attempt,
                    kind=e.kind.value,
                    error=e.message,
                )
                if attempt >= self._max_attempts:
                    raise RepairBudgetExceededError(
                        attempts=attempt,
                        details={"operation": operation.command_name, "last_error": e.message},
                    ) from e

                corrected, conversation = await self._oracle.propose_correction(
                    operation, request, e.message, conversation
                )
                request = self._normalize(operation, corrected, resource_id)
                continue

            self._logger.info(
                "mutation_applied",
                operation=operation.command_name,
                attempts=attempt,
            )
            return response

        # Unreachable with max_attempts >= 1.
        raise RepairBudgetExceededError(attempts=self._max_attempts)

    @staticmethod
    def _normalize(
        operation: ResourceOperation,
        payload: dict[str, Any],
        resource_id: Optional[str],
    ) -> dict[str, Any]:
        request = copy.deepcopy(payload)
        if resource_id:
            request[operation.resource_type.id_field] = resource_id
        if operation.resource_type == ResourceType.INTENT:
            disable_code_hooks(request)
        return request
