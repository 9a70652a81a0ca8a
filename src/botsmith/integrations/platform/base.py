"""
botsmith.integrations.platform.base - Conversational Platform Interface
=========================================================================

The external platform (Amazon Lex V2 in production) owns the bot's
sub-resources. This module defines the narrow surface the workflow uses:

    Resource CRUD           create/update of {SlotType, Slot, Intent},
                            list, describe, delete
    Build                   trigger_build → wait_for_built
    Export                  create_export → wait_for_exported → download_export

Failures are reported as PlatformError with a closed PlatformErrorKind.
A rejected build is reported as BuildFailedError whose message is a JSON
document carrying ``reason.failureReasons``.

Implementations:
    - InMemoryPlatform: scriptable fake for tests and local runs
    - LexPlatform:      Amazon Lex V2 via boto3 ``lexv2-models``
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

from botsmith.core.enums import OperationKind, ResourceType
from botsmith.core.exceptions import WaiterTimeoutError
from botsmith.core.models import BotLocator, ResourceOperation, ResourceSummary


T = TypeVar("T")


# =============================================================================
# Bounded Polling
# =============================================================================
# Build and export waits poll with a fixed delay and a hard deadline.
# ``check`` returns None while the operation is still running, a value when
# it is done, and raises when the platform reports a terminal failure.
# =============================================================================
async def poll_until(
    check: Callable[[], Awaitable[Optional[T]]],
    *,
    waiter: str,
    timeout: float,
    interval: float,
) -> T:
    """Poll ``check`` until it returns a value or ``timeout`` elapses.

    Raises:
        WaiterTimeoutError: If the deadline passes first.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = await check()
        if result is not None:
            return result
        if loop.time() >= deadline:
            raise WaiterTimeoutError(
                message=f"Waiter {waiter} timed out after {timeout} seconds",
                waiter=waiter,
                timeout_seconds=timeout,
            )
        await asyncio.sleep(interval)


# =============================================================================
# Abstract Platform
# =============================================================================
class ConversationalPlatform(ABC):
    """Abstract interface to the external conversational platform.

    Payloads are platform request dicts (camelCase keys, including the
    botId/botVersion/localeId parameters). Responses are plain dicts.
    """

    # =========================================================================
    # Resource Mutations
    # =========================================================================

    @abstractmethod
    async def create_resource(self, resource_type: ResourceType, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a resource; the response carries the new ``<type>Id``.

        Raises:
            PlatformError: VALIDATION / SERIALIZATION for payload problems,
                OTHER for everything else.
        """
        ...

    @abstractmethod
    async def update_resource(self, resource_type: ResourceType, payload: dict[str, Any]) -> dict[str, Any]:
        """Replace an existing resource; the payload carries its ``<type>Id``."""
        ...

    async def apply(self, operation: ResourceOperation, payload: dict[str, Any]) -> dict[str, Any]:
        """Dispatch a create or update by operation kind."""
        if operation.kind == OperationKind.CREATE:
            return await self.create_resource(operation.resource_type, payload)
        return await self.update_resource(operation.resource_type, payload)

    # =========================================================================
    # Listing, Describing, Deleting
    # =========================================================================
    # List calls return every page.
    # =========================================================================

    @abstractmethod
    async def list_intents(self, locator: BotLocator) -> list[ResourceSummary]:
        ...

    @abstractmethod
    async def list_slot_types(self, locator: BotLocator) -> list[ResourceSummary]:
        ...

    @abstractmethod
    async def list_slots(self, locator: BotLocator, intent_id: str) -> list[ResourceSummary]:
        ...

    @abstractmethod
    async def describe_intent(self, locator: BotLocator, intent_id: str) -> dict[str, Any]:
        ...

    @abstractmethod
    async def describe_slot(self, locator: BotLocator, intent_id: str, slot_id: str) -> dict[str, Any]:
        ...

    @abstractmethod
    async def describe_slot_type(self, locator: BotLocator, slot_type_id: str) -> dict[str, Any]:
        ...

    @abstractmethod
    async def delete_intent(self, locator: BotLocator, intent_id: str) -> None:
        ...

    @abstractmethod
    async def delete_slot_type(self, locator: BotLocator, slot_type_id: str) -> None:
        ...

    # =========================================================================
    # Build and Export
    # =========================================================================

    @abstractmethod
    async def trigger_build(self, locator: BotLocator) -> None:
        """Start compiling the bot locale."""
        ...

    @abstractmethod
    async def wait_for_built(self, locator: BotLocator, *, timeout: float, poll_interval: float) -> None:
        """Block until the locale is built.

        Raises:
            BuildFailedError: If the platform reports the build failed.
            WaiterTimeoutError: If ``timeout`` elapses first.
        """
        ...

    @abstractmethod
    async def create_export(self, locator: BotLocator) -> str:
        """Request an export of the built locale; returns the export id."""
        ...

    @abstractmethod
    async def wait_for_exported(self, export_id: str, *, timeout: float, poll_interval: float) -> None:
        """Block until the export is ready to download."""
        ...

    @abstractmethod
    async def download_export(self, export_id: str) -> bytes:
        """Fetch the exported definition (a zip archive)."""
        ...
