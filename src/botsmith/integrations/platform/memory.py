"""
botsmith.integrations.platform.memory - In-Memory Conversational Platform
===========================================================================

A scriptable fake of the platform for tests and local runs. It keeps
slot types, intents and slots per bot locale, assigns ids the way the
real service does, and lets a test decide how calls fail:

    - ``fail_next(operation, kind, message)`` queues a one-shot failure
      for the next call of that create/update operation.
    - ``add_validator(operation, check)`` rejects payloads with a
      VALIDATION error while ``check(payload)`` returns a message.
    - ``fail_next_build(reasons)`` makes the next build fail with the
      given failure reasons.
    - ``add_build_check(check)`` fails every build for which
      ``check(platform, locator)`` returns reasons.

Builds move through a small status machine ("Building" for
``build_polls`` polls, then "Built" or "Failed") so waiters are exercised
the same way as against the real service.

Example:
    >>> platform = InMemoryPlatform()
    >>> platform.fail_next(
    ...     ResourceOperation.create(ResourceType.SLOT_TYPE),
    ...     PlatformErrorKind.VALIDATION,
    ...     "slotTypeValues must have at least 1 item",
    ... )
"""

from __future__ import annotations

import copy
import io
import itertools
import json
import zipfile
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from botsmith.core.enums import PlatformErrorKind, ResourceType
from botsmith.core.exceptions import BuildFailedError, PlatformError
from botsmith.core.models import (
    FALLBACK_INTENT_NAME,
    BotLocator,
    ResourceOperation,
    ResourceSummary,
    is_built_in,
)
from botsmith.integrations.platform.base import ConversationalPlatform, poll_until


logger = structlog.get_logger()

PayloadCheck = Callable[[dict[str, Any]], Optional[str]]
BuildCheck = Callable[["InMemoryPlatform", BotLocator], list[str]]

_ID_PREFIXES = {
    ResourceType.SLOT_TYPE: "ST",
    ResourceType.SLOT: "SL",
    ResourceType.INTENT: "IN",
}


@dataclass
class LocaleState:
    """Resources and build status of one bot locale."""

    slot_types: dict[str, dict[str, Any]] = field(default_factory=dict)
    intents: dict[str, dict[str, Any]] = field(default_factory=dict)
    slots: dict[str, dict[str, Any]] = field(default_factory=dict)
    status: str = "NotBuilt"
    polls_remaining: int = 0
    pending_reasons: list[str] = field(default_factory=list)


class InMemoryPlatform(ConversationalPlatform):
    """Dict-backed ConversationalPlatform with scriptable failures.

    Args:
        build_polls: Number of status polls a build stays "Building".
        seed_fallback_intent: Create the platform's FallbackIntent in every
            new locale, as the real service does.

    Attributes:
        calls: Command names in call order, e.g. ["CreateSlotType", ...].
        build_count: Number of builds triggered.
    """

    def __init__(self, build_polls: int = 1, seed_fallback_intent: bool = False) -> None:
        self._locales: dict[tuple[str, str, str], LocaleState] = {}
        self._exports: dict[str, tuple[str, str, str]] = {}
        self._ids = itertools.count(1)
        self._failures: dict[ResourceOperation, deque[PlatformError]] = defaultdict(deque)
        self._validators: dict[ResourceOperation, list[PayloadCheck]] = defaultdict(list)
        self._build_failures: deque[list[str]] = deque()
        self._build_checks: list[BuildCheck] = []
        self._build_polls = build_polls
        self._seed_fallback_intent = seed_fallback_intent
        self._logger = logger.bind(component="in_memory_platform")

        self.calls: list[str] = []
        self.build_count = 0

    # =========================================================================
    # Scripting
    # =========================================================================

    def fail_next(
        self,
        operation: ResourceOperation,
        kind: PlatformErrorKind,
        message: str,
        times: int = 1,
    ) -> None:
        """Queue ``times`` failures for the next calls of ``operation``."""
        for _ in range(times):
            self._failures[operation].append(
                PlatformError(message=message, kind=kind, operation=operation.command_name)
            )

    def add_validator(self, operation: ResourceOperation, check: PayloadCheck) -> None:
        """Reject payloads of ``operation`` while ``check`` returns a message."""
        self._validators[operation].append(check)

    def fail_next_build(self, reasons: list[str]) -> None:
        """Make the next triggered build fail with ``reasons``."""
        self._build_failures.append(list(reasons))

    def add_build_check(self, check: BuildCheck) -> None:
        """Fail every build for which ``check`` returns failure reasons."""
        self._build_checks.append(check)

    def count(self, command_name: str) -> int:
        """How many times a command was called."""
        return self.calls.count(command_name)

    # =========================================================================
    # Lookups used by tests and build checks
    # =========================================================================

    def locale(self, locator: BotLocator) -> LocaleState:
        """State of a bot locale, created on first access."""
        key = (locator.bot_id, locator.bot_version, locator.locale_id)
        if key not in self._locales:
            state = LocaleState()
            if self._seed_fallback_intent:
                fallback_id = self._next_id(ResourceType.INTENT)
                state.intents[fallback_id] = {
                    **locator.as_params(),
                    "intentId": fallback_id,
                    "intentName": FALLBACK_INTENT_NAME,
                    "parentIntentSignature": "AMAZON.FallbackIntent",
                }
            self._locales[key] = state
        return self._locales[key]

    def find_intent(self, locator: BotLocator, name: str) -> Optional[dict[str, Any]]:
        """Stored intent with the given name, or None."""
        for intent in self.locale(locator).intents.values():
            if intent.get("intentName") == name:
                return intent
        return None

    def find_slot_type(self, locator: BotLocator, name: str) -> Optional[dict[str, Any]]:
        """Stored slot type with the given name, or None."""
        for slot_type in self.locale(locator).slot_types.values():
            if slot_type.get("slotTypeName") == name:
                return slot_type
        return None

    def slots_of(self, locator: BotLocator, intent_id: str) -> list[dict[str, Any]]:
        """Stored slots attached to an intent."""
        return [s for s in self.locale(locator).slots.values() if s.get("intentId") == intent_id]

    # =========================================================================
    # Resource Mutations
    # =========================================================================

    async def create_resource(self, resource_type: ResourceType, payload: dict[str, Any]) -> dict[str, Any]:
        operation = ResourceOperation.create(resource_type)
        self._check_call(operation, payload)

        locator = self._locator_of(payload, operation)
        state = self.locale(locator)
        store = self._store(state, resource_type)
        name_field = f"{resource_type.value}Name"
        name = payload.get(name_field)
        if not name:
            raise PlatformError(
                message=f"{name_field} is required",
                kind=PlatformErrorKind.VALIDATION,
                operation=operation.command_name,
            )

        if resource_type == ResourceType.SLOT:
            self._check_slot_refs(state, payload, operation)
            siblings = self.slots_of(locator, payload["intentId"])
            duplicate = any(s.get("slotName") == name for s in siblings)
        else:
            duplicate = any(r.get(name_field) == name for r in store.values())
        if duplicate:
            raise PlatformError(
                message=f"A {resource_type.value} named {name} already exists",
                kind=PlatformErrorKind.OTHER,
                operation=operation.command_name,
                error_code="CONFLICT",
            )

        resource_id = self._next_id(resource_type)
        stored = {**copy.deepcopy(payload), resource_type.id_field: resource_id}
        store[resource_id] = stored
        state.status = "NotBuilt"
        self._logger.debug("resource_created", type=resource_type.value, name=name, id=resource_id)
        return copy.deepcopy(stored)

    async def update_resource(self, resource_type: ResourceType, payload: dict[str, Any]) -> dict[str, Any]:
        operation = ResourceOperation.update(resource_type)
        self._check_call(operation, payload)

        locator = self._locator_of(payload, operation)
        state = self.locale(locator)
        store = self._store(state, resource_type)
        resource_id = payload.get(resource_type.id_field)
        if resource_id not in store:
            raise PlatformError(
                message=f"{resource_type.value} {resource_id} not found",
                kind=PlatformErrorKind.OTHER,
                operation=operation.command_name,
                error_code="RESOURCE_NOT_FOUND",
            )
        if resource_type == ResourceType.SLOT:
            self._check_slot_refs(state, payload, operation)

        store[resource_id] = copy.deepcopy(payload)
        state.status = "NotBuilt"
        self._logger.debug("resource_updated", type=resource_type.value, id=resource_id)
        return copy.deepcopy(payload)

    # =========================================================================
    # Listing, Describing, Deleting
    # =========================================================================

    async def list_intents(self, locator: BotLocator) -> list[ResourceSummary]:
        self.calls.append("ListIntents")
        return [
            ResourceSummary(id=intent_id, name=intent["intentName"])
            for intent_id, intent in self.locale(locator).intents.items()
        ]

    async def list_slot_types(self, locator: BotLocator) -> list[ResourceSummary]:
        self.calls.append("ListSlotTypes")
        return [
            ResourceSummary(id=slot_type_id, name=slot_type["slotTypeName"])
            for slot_type_id, slot_type in self.locale(locator).slot_types.items()
        ]

    async def list_slots(self, locator: BotLocator, intent_id: str) -> list[ResourceSummary]:
        self.calls.append("ListSlots")
        return [
            ResourceSummary(id=slot["slotId"], name=slot["slotName"])
            for slot in self.slots_of(locator, intent_id)
        ]

    async def describe_intent(self, locator: BotLocator, intent_id: str) -> dict[str, Any]:
        self.calls.append("DescribeIntent")
        return self._describe(self.locale(locator).intents, intent_id, "DescribeIntent")

    async def describe_slot(self, locator: BotLocator, intent_id: str, slot_id: str) -> dict[str, Any]:
        self.calls.append("DescribeSlot")
        return self._describe(self.locale(locator).slots, slot_id, "DescribeSlot")

    async def describe_slot_type(self, locator: BotLocator, slot_type_id: str) -> dict[str, Any]:
        self.calls.append("DescribeSlotType")
        return self._describe(self.locale(locator).slot_types, slot_type_id, "DescribeSlotType")

    async def delete_intent(self, locator: BotLocator, intent_id: str) -> None:
        self.calls.append("DeleteIntent")
        state = self.locale(locator)
        self._describe(state.intents, intent_id, "DeleteIntent")
        del state.intents[intent_id]
        for slot_id in [s["slotId"] for s in self.slots_of(locator, intent_id)]:
            del state.slots[slot_id]

    async def delete_slot_type(self, locator: BotLocator, slot_type_id: str) -> None:
        self.calls.append("DeleteSlotType")
        state = self.locale(locator)
        self._describe(state.slot_types, slot_type_id, "DeleteSlotType")
        del state.slot_types[slot_type_id]

    # =========================================================================
    # Build and Export
    # =========================================================================

    async def trigger_build(self, locator: BotLocator) -> None:
        self.calls.append("BuildBotLocale")
        self.build_count += 1
        state = self.locale(locator)

        if self._build_failures:
            reasons = self._build_failures.popleft()
        else:
            reasons = []
            for check in self._build_checks:
                reasons.extend(check(self, locator))

        state.status = "Building"
        state.polls_remaining = self._build_polls
        state.pending_reasons = reasons
        self._logger.debug("build_triggered", bot_id=locator.bot_id, failing=bool(reasons))

    async def wait_for_built(self, locator: BotLocator, *, timeout: float, poll_interval: float) -> None:
        state = self.locale(locator)

        async def check() -> Optional[bool]:
            if state.status == "Building":
                if state.polls_remaining > 0:
                    state.polls_remaining -= 1
                    return None
                state.status = "Failed" if state.pending_reasons else "Built"

            if state.status == "Built":
                return True
            if state.status in ("Failed", "NotBuilt"):
                raise BuildFailedError(
                    message=json.dumps({
                        "state": "FAILURE",
                        "reason": {
                            "botLocaleStatus": state.status,
                            "failureReasons": state.pending_reasons,
                        },
                    })
                )
            return None

        await poll_until(check, waiter="BotLocaleBuilt", timeout=timeout, interval=poll_interval)

    async def create_export(self, locator: BotLocator) -> str:
        self.calls.append("CreateExport")
        if self.locale(locator).status != "Built":
            raise PlatformError(
                message=f"Bot locale {locator.locale_id} is not built",
                kind=PlatformErrorKind.OTHER,
                operation="CreateExport",
                error_code="PRECONDITION_FAILED",
            )
        export_id = f"EX{next(self._ids):08d}"
        self._exports[export_id] = (locator.bot_id, locator.bot_version, locator.locale_id)
        return export_id

    async def wait_for_exported(self, export_id: str, *, timeout: float, poll_interval: float) -> None:
        self._export_key(export_id)

    async def download_export(self, export_id: str) -> bytes:
        self.calls.append("DownloadExport")
        state = self._locales[self._export_key(export_id)]

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for name, resources in (
                ("slotTypes.json", state.slot_types),
                ("intents.json", state.intents),
                ("slots.json", state.slots),
            ):
                archive.writestr(name, json.dumps(list(resources.values()), indent=2))
        return buffer.getvalue()

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_call(self, operation: ResourceOperation, payload: dict[str, Any]) -> None:
        self.calls.append(operation.command_name)

        queued = self._failures.get(operation)
        if queued:
            raise queued.popleft()

        for check in self._validators.get(operation, []):
            problem = check(payload)
            if problem:
                raise PlatformError(
                    message=problem,
                    kind=PlatformErrorKind.VALIDATION,
                    operation=operation.command_name,
                )

    def _check_slot_refs(self, state: LocaleState, payload: dict[str, Any], operation: ResourceOperation) -> None:
        if payload.get("intentId") not in state.intents:
            raise PlatformError(
                message=f"Intent {payload.get('intentId')} not found",
                kind=PlatformErrorKind.OTHER,
                operation=operation.command_name,
                error_code="RESOURCE_NOT_FOUND",
            )
        slot_type_id = payload.get("slotTypeId")
        if not slot_type_id:
            raise PlatformError(
                message="slotTypeId is required",
                kind=PlatformErrorKind.VALIDATION,
                operation=operation.command_name,
            )
        if not is_built_in(slot_type_id) and slot_type_id not in state.slot_types:
            raise PlatformError(
                message=f"Slot type {slot_type_id} not found",
                kind=PlatformErrorKind.OTHER,
                operation=operation.command_name,
                error_code="RESOURCE_NOT_FOUND",
            )

    @staticmethod
    def _locator_of(payload: dict[str, Any], operation: ResourceOperation) -> BotLocator:
        try:
            return BotLocator(
                bot_id=payload["botId"],
                bot_version=payload["botVersion"],
                locale_id=payload["localeId"],
            )
        except KeyError as e:
            raise PlatformError(
                message=f"Missing required parameter {e.args[0]}",
                kind=PlatformErrorKind.SERIALIZATION,
                operation=operation.command_name,
            ) from e

    @staticmethod
    def _store(state: LocaleState, resource_type: ResourceType) -> dict[str, dict[str, Any]]:
        return {
            ResourceType.SLOT_TYPE: state.slot_types,
            ResourceType.SLOT: state.slots,
            ResourceType.INTENT: state.intents,
        }[resource_type]

    @staticmethod
    def _describe(store: dict[str, dict[str, Any]], resource_id: str, operation: str) -> dict[str, Any]:
        if resource_id not in store:
            raise PlatformError(
                message=f"Resource {resource_id} not found",
                kind=PlatformErrorKind.OTHER,
                operation=operation,
                error_code="RESOURCE_NOT_FOUND",
            )
        return copy.deepcopy(store[resource_id])

    def _export_key(self, export_id: str) -> tuple[str, str, str]:
        if export_id not in self._exports:
            raise PlatformError(
                message=f"Export {export_id} not found",
                kind=PlatformErrorKind.OTHER,
                operation="DescribeExport",
                error_code="RESOURCE_NOT_FOUND",
            )
        return self._exports[export_id]

    def _next_id(self, resource_type: ResourceType) -> str:
        return f"{_ID_PREFIXES[resource_type]}{next(self._ids):08d}"
