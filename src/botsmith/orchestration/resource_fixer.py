"""
botsmith.orchestration.resource_fixer - Build Failure Repair
==============================================================

Handles one build failure reason per invocation:

    pop reason ──→ oracle.classify_failure(reason, inventory)
                          │
                          ▼
            {type: intent | slot | slotType, resources: [...]}
                          │
            for each referenced resource:
                describe it on the platform
                assemble its repair context
                oracle.propose_fix(reason, resource, context)
                mutator.apply(Update<Type>, fixed, resource_id)

Repair Context per type:

    intent    intent schema, intent guidelines, and the intent's slots
              (id, name, description, constraint)
    slot      the owning intent, slot schema, slot guidelines. With no
              intent name, every intent that has a slot of that name is
              repaired.
    slotType  slot type guidelines and schema

A reference whose name is missing, or that names nothing registered on the
platform, is logged and skipped. Every other error propagates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from botsmith.core.enums import ArtifactStatus, ResourceType
from botsmith.core.exceptions import WorkflowError
from botsmith.core.models import (
    BotLocator,
    ResourceInventory,
    ResourceOperation,
    ResourceReference,
    ResourceSummary,
    SecurityContext,
)
from botsmith.core.state import StageEvent
from botsmith.integrations.platform.base import ConversationalPlatform
from botsmith.orchestration.mutator import ResourceMutator
from botsmith.orchestration.prompts import guideline_for, minify, schema_block
from botsmith.orchestration.repair_oracle import RepairOracle
from botsmith.orchestration.status_log import StatusLog


logger = structlog.get_logger()


@dataclass
class RepairTarget:
    """A registered resource to repair, with the context the oracle sees.

    ``pinned`` fields are applied over whatever the oracle returns.
    """

    resource_type: ResourceType
    resource_id: str
    resource: dict[str, Any]
    context: str
    pinned: dict[str, Any] = field(default_factory=dict)


def fixing_message(reason: str) -> str:
    """Status log text for the repair of one failure reason."""
    return f"Fixing built failure: {reason}."


def _find(summaries: list[ResourceSummary], name: Optional[str]) -> Optional[ResourceSummary]:
    return next((s for s in summaries if s.name == name), None)


class ResourceFixer:
    """Repairs the resources named by one build failure reason.

    Args:
        platform: Where the failing resources are read from.
        oracle: Classifies reasons and proposes fixes.
        mutator: Applies the fixes.
        status_log: Where progress is recorded.
    """

    def __init__(
        self,
        platform: ConversationalPlatform,
        oracle: RepairOracle,
        mutator: ResourceMutator,
        status_log: StatusLog,
    ) -> None:
        self._platform = platform
        self._oracle = oracle
        self._mutator = mutator
        self._status_log = status_log
        self._logger = logger.bind(component="resource_fixer")

    async def fix_next(self, event: StageEvent, context: SecurityContext) -> StageEvent:
        """Repair the last pending failure reason.

        Returns:
            A new event with ``failure_reasons_to_fix`` decreased by 1.

        Raises:
            WorkflowError: If no failure reason is pending.
            OracleError: If classification or a fix cannot be obtained.
            RepairBudgetExceededError: If a fix keeps being rejected.
            PlatformError: Any other platform failure.
        """
        bot = event.bot
        if not event.failure_reasons:
            raise WorkflowError("No failure reasons left to fix", artifact_id=bot.id)

        reason, remaining = event.pop_failure_reason()
        message = fixing_message(reason)
        await self._status_log.record(context, bot.id, message, ArtifactStatus.IN_PROGRESS)

        classification = await self._oracle.classify_failure(
            reason,
            event.resources_context or ResourceInventory(),
        )

        repaired = 0
        for reference in classification.resources:
            for target in await self._targets(bot.locator, classification.type, reference):
                fixed = await self._oracle.propose_fix(reason, target.resource, target.context)
                await self._mutator.apply(
                    ResourceOperation.update(target.resource_type),
                    {**fixed, **bot.locator.as_params(), **target.pinned},
                    resource_id=target.resource_id,
                )
                repaired += 1

        await self._status_log.record(context, bot.id, message, ArtifactStatus.SUCCESS)
        self._logger.info(
            "failure_reason_fixed",
            artifact_id=bot.id,
            reason=reason,
            type=classification.type.value,
            repaired=repaired,
            remaining=remaining.failure_reasons_to_fix,
        )
        return remaining

    # =========================================================================
    # Target Assembly
    # =========================================================================

    async def _targets(
        self,
        locator: BotLocator,
        resource_type: ResourceType,
        reference: ResourceReference,
    ) -> list[RepairTarget]:
        if resource_type == ResourceType.INTENT:
            target = await self._intent_target(locator, reference.intent_name)
            return [target] if target else []
        if resource_type == ResourceType.SLOT:
            return await self._slot_targets(locator, reference.slot_name, reference.intent_name)
        target = await self._slot_type_target(locator, reference.slot_type_name)
        return [target] if target else []

    async def _intent_target(self, locator: BotLocator, intent_name: Optional[str]) -> Optional[RepairTarget]:
        summary = _find(await self._platform.list_intents(locator), intent_name)
        if summary is None:
            self._logger.warning("fix_target_not_found", type="intent", name=intent_name)
            return None

        intent = await self._platform.describe_intent(locator, summary.id)
        slots = [
            await self._platform.describe_slot(locator, summary.id, s.id)
            for s in await self._platform.list_slots(locator, summary.id)
        ]
        available = "\n".join(
            f" - slotId:{s.get('slotId')}, slotName:{s.get('slotName')}, "
            f"slotDescription:{s.get('description')}, "
            f"slotConstraint: {(s.get('valueElicitationSetting') or {}).get('slotConstraint')}"
            for s in slots
        )
        context = (
            f"{schema_block(ResourceType.INTENT)}\n\n"
            f"<Instruction>\n{guideline_for(ResourceType.INTENT)}\n</Instruction>\n\n"
            f"<AvailableSlots>\n{available}\n</AvailableSlots>\n"
        )
        return RepairTarget(ResourceType.INTENT, summary.id, intent, context)

    async def _slot_targets(
        self,
        locator: BotLocator,
        slot_name: Optional[str],
        intent_name: Optional[str],
    ) -> list[RepairTarget]:
        if not slot_name:
            self._logger.warning("fix_target_not_found", type="slot", name=slot_name)
            return []

        intents = await self._platform.list_intents(locator)
        if intent_name:
            summary = _find(intents, intent_name)
            intents = [summary] if summary else []

        targets = []
        for intent_summary in intents:
            slot = _find(await self._platform.list_slots(locator, intent_summary.id), slot_name)
            if slot is None:
                continue
            intent = await self._platform.describe_intent(locator, intent_summary.id)
            resource = await self._platform.describe_slot(locator, intent_summary.id, slot.id)
            context = (
                f"## Intent\n```json\n{minify(intent)}\n```\n\n"
                f"{schema_block(ResourceType.SLOT)}\n\n"
                f"<Guideline>\n{guideline_for(ResourceType.SLOT)}\n</Guideline>\n"
            )
            targets.append(RepairTarget(
                ResourceType.SLOT,
                slot.id,
                resource,
                context,
                pinned={"intentId": intent_summary.id},
            ))

        if not targets:
            self._logger.warning(
                "fix_target_not_found",
                type="slot",
                name=slot_name,
                intent=intent_name,
            )
        return targets

    async def _slot_type_target(self, locator: BotLocator, slot_type_name: Optional[str]) -> Optional[RepairTarget]:
        summary = _find(await self._platform.list_slot_types(locator), slot_type_name)
        if summary is None:
            self._logger.warning("fix_target_not_found", type="slotType", name=slot_type_name)
            return None

        slot_type = await self._platform.describe_slot_type(locator, summary.id)
        context = (
            "## Syntax Validation\n"
            f"{guideline_for(ResourceType.SLOT_TYPE)}\n\n"
            f"{schema_block(ResourceType.SLOT_TYPE)}\n"
        )
        return RepairTarget(ResourceType.SLOT_TYPE, summary.id, slot_type, context)
