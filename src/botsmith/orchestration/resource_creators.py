"""
botsmith.orchestration.resource_creators - Slot Type and Intent Creation
==========================================================================

Two stages, each creating exactly one resource per invocation:

    SlotTypeCreator.create_next   pop a slot-type name → CreateSlotType
    IntentCreator.create_next     pop an intent name   → CreateIntent,
                                  CreateSlot for each of its slots,
                                  UpdateIntent with the slot priorities

Both return a new StageEvent whose work-list is one shorter. All slot types
are created before any intent, so by the time an intent's slots are
created every custom slot type name can be resolved to its platform id.

Slot type references:
    "AMAZON.Number"     → used verbatim as the slotTypeId
    "PizzaSize"         → looked up in ListSlotTypes by name
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from botsmith.core.enums import ArtifactStatus, ResourceType
from botsmith.core.exceptions import WorkflowError
from botsmith.core.models import BotLocator, ResourceOperation, SecurityContext, is_built_in
from botsmith.core.state import StageEvent
from botsmith.integrations.platform.base import ConversationalPlatform
from botsmith.orchestration.mutator import ResourceMutator
from botsmith.orchestration.status_log import StatusLog


logger = structlog.get_logger()


def find_definition(
    definitions: dict[str, dict[str, Any]],
    name: str,
    name_field: str,
) -> Optional[dict[str, Any]]:
    """Find a bundle definition by its name field, falling back to its key."""
    for key, definition in definitions.items():
        if definition.get(name_field, key) == name:
            return definition
    return definitions.get(name)


def resolve_slot_type(name: Optional[str], slot_type_ids: dict[str, str]) -> Optional[str]:
    """Platform id for a slot type name; built-in names are their own id."""
    if is_built_in(name):
        return name
    return slot_type_ids.get(name)


# =============================================================================
# Slot Type Creator
# =============================================================================
class SlotTypeCreator:
    """Creates one pending slot type per invocation."""

    def __init__(self, mutator: ResourceMutator, status_log: StatusLog) -> None:
        self._mutator = mutator
        self._status_log = status_log
        self._logger = logger.bind(component="slot_type_creator")

    async def create_next(self, event: StageEvent, context: SecurityContext) -> StageEvent:
        """Create the last pending slot type.

        Returns:
            A new event with ``input.slot_types_to_process`` decreased by 1.

        Raises:
            WorkflowError: If no slot type is pending or its definition is
                missing from the bundle.
        """
        bot = event.bot
        if not event.input.slot_types:
            raise WorkflowError("No slot types left to create", artifact_id=bot.id)

        name, remaining = event.input.pop_slot_type()
        definition = find_definition(event.output.slot_types, name, "slotTypeName")
        if definition is None:
            raise WorkflowError(
                f"Slot type {name} is not in the resource bundle",
                artifact_id=bot.id,
                error_code="MISSING_DEFINITION",
            )

        message = f"Creating slot type {name}."
        await self._status_log.record(context, bot.id, message, ArtifactStatus.IN_PROGRESS)

        response = await self._mutator.apply(
            ResourceOperation.create(ResourceType.SLOT_TYPE),
            {**definition, **bot.locator.as_params()},
        )

        await self._status_log.record(context, bot.id, message, ArtifactStatus.SUCCESS)
        self._logger.info(
            "slot_type_created",
            artifact_id=bot.id,
            name=name,
            slot_type_id=response.get("slotTypeId"),
            remaining=remaining.slot_types_to_process,
        )
        return event.model_copy(update={"input": remaining})


# =============================================================================
# Intent Creator
# =============================================================================
class IntentCreator:
    """Creates one pending intent, with its slots, per invocation."""

    def __init__(
        self,
        platform: ConversationalPlatform,
        mutator: ResourceMutator,
        status_log: StatusLog,
    ) -> None:
        self._platform = platform
        self._mutator = mutator
        self._status_log = status_log
        self._logger = logger.bind(component="intent_creator")

    async def create_next(self, event: StageEvent, context: SecurityContext) -> StageEvent:
        """Create the last pending intent and every slot it defines.

        Returns:
            A new event with ``input.intents_to_process`` decreased by 1.

        Raises:
            WorkflowError: If no intent is pending or its definition is
                missing from the bundle.
        """
        bot = event.bot
        if not event.input.intents:
            raise WorkflowError("No intents left to create", artifact_id=bot.id)

        name, remaining = event.input.pop_intent()
        definition = find_definition(event.output.intents, name, "intentName")
        if definition is None:
            raise WorkflowError(
                f"Intent {name} is not in the resource bundle",
                artifact_id=bot.id,
                error_code="MISSING_DEFINITION",
            )

        message = f"Creating intent {name}."
        await self._status_log.record(context, bot.id, message, ArtifactStatus.IN_PROGRESS)

        locator = bot.locator
        intent_payload = {
            k: v for k, v in definition.items() if k not in ("slots", "slotPriorities")
        }
        created = await self._mutator.apply(
            ResourceOperation.create(ResourceType.INTENT),
            {**intent_payload, **locator.as_params()},
        )
        intent_id = created["intentId"]

        slots = list((definition.get("slots") or {}).values())
        if slots:
            slot_ids = await self._create_slots(locator, intent_id, slots)
            priorities = [
                {"slotId": slot_ids.get(p.get("slotName")), "priority": p.get("priority")}
                for p in definition.get("slotPriorities") or []
            ]
            await self._mutator.apply(
                ResourceOperation.update(ResourceType.INTENT),
                {
                    **created,
                    **locator.as_params(),
                    "slotPriorities": [p for p in priorities if p["slotId"] is not None],
                },
                resource_id=intent_id,
            )

        await self._status_log.record(context, bot.id, message, ArtifactStatus.SUCCESS)
        self._logger.info(
            "intent_created",
            artifact_id=bot.id,
            name=name,
            intent_id=intent_id,
            slots=len(slots),
            remaining=remaining.intents_to_process,
        )
        return event.model_copy(update={"input": remaining})

    async def _create_slots(
        self,
        locator: BotLocator,
        intent_id: str,
        slots: list[dict[str, Any]],
    ) -> dict[str, str]:
        """Create each slot; returns slot name → slot id."""
        slot_type_ids = {s.name: s.id for s in await self._platform.list_slot_types(locator)}

        slot_ids: dict[str, str] = {}
        for slot in slots:
            payload = {
                **slot,
                **locator.as_params(),
                "intentId": intent_id,
                "slotTypeId": resolve_slot_type(slot.get("slotTypeName"), slot_type_ids),
            }
            sub_slot_setting = self._resolve_sub_slots(slot.get("subSlotSetting"), slot_type_ids)
            if sub_slot_setting is not None:
                payload["subSlotSetting"] = sub_slot_setting
            if payload["slotTypeId"] is None:
                self._logger.warning(
                    "slot_type_unresolved",
                    slot=slot.get("slotName"),
                    slot_type=slot.get("slotTypeName"),
                )
                del payload["slotTypeId"]

            response = await self._mutator.apply(ResourceOperation.create(ResourceType.SLOT), payload)
            slot_ids[slot.get("slotName")] = response["slotId"]
        return slot_ids

    @staticmethod
    def _resolve_sub_slots(
        setting: Optional[dict[str, Any]],
        slot_type_ids: dict[str, str],
    ) -> Optional[dict[str, Any]]:
        if not setting or not setting.get("slotSpecifications"):
            return setting

        specifications = {}
        for sub_slot, specification in setting["slotSpecifications"].items():
            resolved = {k: v for k, v in specification.items() if k != "slotTypeName"}
            if "slotTypeName" in specification:
                resolved["slotTypeId"] = resolve_slot_type(specification["slotTypeName"], slot_type_ids)
            specifications[sub_slot] = resolved
        return {**setting, "slotSpecifications": specifications}
