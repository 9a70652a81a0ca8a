"""
botsmith.integrations.platform.lex - Amazon Lex V2 Platform
=============================================================

ConversationalPlatform backed by boto3's ``lexv2-models`` client. boto3 is
synchronous, so every call runs in a worker thread via
``asyncio.to_thread``.

Error Mapping:
    botocore ClientError "ValidationException"    → PlatformErrorKind.VALIDATION
    botocore ParamValidationError                  → PlatformErrorKind.SERIALIZATION
    ClientError "SerializationException"           → PlatformErrorKind.SERIALIZATION
    Any other ClientError                          → PlatformErrorKind.OTHER

Request Filtering:
    Payloads often come from a Describe* response (with timestamps and
    status fields) or from the AI oracle. Before each create/update the
    payload is reduced to the members the operation's input shape declares,
    so unknown keys never reach botocore's parameter validation.

Usage:
    >>> platform = LexPlatform(region="us-east-1")
    >>> await platform.trigger_build(locator)
    >>> await platform.wait_for_built(locator, timeout=60, poll_interval=1)
"""

from __future__ import annotations

import asyncio
import json
import math
from typing import Any, Callable, Optional

import boto3
import httpx
import structlog
from botocore.config import Config
from botocore.exceptions import ClientError, ParamValidationError, WaiterError

from botsmith.core.enums import PlatformErrorKind, ResourceType
from botsmith.core.exceptions import BuildFailedError, PlatformError, WaiterTimeoutError
from botsmith.core.models import BotLocator, ResourceSummary
from botsmith.integrations.platform.base import ConversationalPlatform


logger = structlog.get_logger()

_ERROR_KINDS = {
    "ValidationException": PlatformErrorKind.VALIDATION,
    "SerializationException": PlatformErrorKind.SERIALIZATION,
}

# Statuses the lexv2-models waiters treat as terminal failures.
_BUILD_FAILED_STATUSES = ("Failed", "Deleting", "NotBuilt")
_EXPORT_FAILED_STATUSES = ("Failed", "Deleting")


def _error_kind(error: Exception) -> PlatformErrorKind:
    """Map a botocore exception to the closed PlatformErrorKind set."""
    if isinstance(error, ParamValidationError):
        return PlatformErrorKind.SERIALIZATION
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        return _ERROR_KINDS.get(code, PlatformErrorKind.OTHER)
    return PlatformErrorKind.OTHER


def _strip_metadata(response: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in response.items() if k != "ResponseMetadata"}


class LexPlatform(ConversationalPlatform):
    """Amazon Lex V2 model-building API.

    Args:
        region: AWS region. None uses the default credential chain's region.
        download_timeout: Seconds allowed for fetching an export archive.
        client: Optional pre-built ``lexv2-models`` client (tests inject a stub).
    """

    def __init__(
        self,
        region: Optional[str] = None,
        download_timeout: float = 60.0,
        client: Optional[Any] = None,
    ) -> None:
        if client is None:
            session = boto3.Session(region_name=region)
            client = session.client(
                "lexv2-models",
                config=Config(retries={"max_attempts": 5, "mode": "standard"}),
            )
        self._client = client
        self._download_timeout = download_timeout
        self._logger = logger.bind(component="lex_platform", region=region)

    # =========================================================================
    # Call Wrapper
    # =========================================================================

    async def _call(self, operation: str, method: Callable[..., dict[str, Any]], **params: Any) -> dict[str, Any]:
        """Run one client method in a thread and translate its errors."""
        try:
            response = await asyncio.to_thread(method, **params)
        except (ClientError, ParamValidationError) as e:
            kind = _error_kind(e)
            self._logger.warning("lex_call_failed", operation=operation, kind=kind.value, error=str(e))
            raise PlatformError(
                message=str(e),
                kind=kind,
                operation=operation,
            ) from e
        return _strip_metadata(response)

    def _input_members(self, operation: str) -> set[str]:
        """Member names of an operation's request shape."""
        operation_model = self._client.meta.service_model.operation_model(operation)
        return set(operation_model.input_shape.members)

    async def _mutate(self, operation: str, method_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        members = self._input_members(operation)
        params = {k: v for k, v in payload.items() if k in members}
        return await self._call(operation, getattr(self._client, method_name), **params)

    # =========================================================================
    # Resource Mutations
    # =========================================================================

    async def create_resource(self, resource_type: ResourceType, payload: dict[str, Any]) -> dict[str, Any]:
        noun = resource_type.command_noun
        return await self._mutate(f"Create{noun}", f"create_{_snake(noun)}", payload)

    async def update_resource(self, resource_type: ResourceType, payload: dict[str, Any]) -> dict[str, Any]:
        noun = resource_type.command_noun
        return await self._mutate(f"Update{noun}", f"update_{_snake(noun)}", payload)

    # =========================================================================
    # Listing
    # =========================================================================
    # Lex pages list results with nextToken; every page is read.
    # =========================================================================

    async def _list_all(
        self,
        operation: str,
        method: Callable[..., dict[str, Any]],
        items_key: str,
        id_key: str,
        name_key: str,
        **params: Any,
    ) -> list[ResourceSummary]:
        summaries: list[ResourceSummary] = []
        next_token: Optional[str] = None
        while True:
            page_params = dict(params)
            if next_token:
                page_params["nextToken"] = next_token
            response = await self._call(operation, method, **page_params)
            summaries.extend(
                ResourceSummary(id=item[id_key], name=item[name_key])
                for item in response.get(items_key, [])
            )
            next_token = response.get("nextToken")
            if not next_token:
                return summaries

    async def list_intents(self, locator: BotLocator) -> list[ResourceSummary]:
        return await self._list_all(
            "ListIntents", self._client.list_intents,
            "intentSummaries", "intentId", "intentName",
            **locator.as_params(),
        )

    async def list_slot_types(self, locator: BotLocator) -> list[ResourceSummary]:
        return await self._list_all(
            "ListSlotTypes", self._client.list_slot_types,
            "slotTypeSummaries", "slotTypeId", "slotTypeName",
            **locator.as_params(),
        )

    async def list_slots(self, locator: BotLocator, intent_id: str) -> list[ResourceSummary]:
        return await self._list_all(
            "ListSlots", self._client.list_slots,
            "slotSummaries", "slotId", "slotName",
            intentId=intent_id, **locator.as_params(),
        )

    # =========================================================================
    # Describing and Deleting
    # =========================================================================

    async def describe_intent(self, locator: BotLocator, intent_id: str) -> dict[str, Any]:
        return await self._call(
            "DescribeIntent", self._client.describe_intent,
            intentId=intent_id, **locator.as_params(),
        )

    async def describe_slot(self, locator: BotLocator, intent_id: str, slot_id: str) -> dict[str, Any]:
        return await self._call(
            "DescribeSlot", self._client.describe_slot,
            slotId=slot_id, intentId=intent_id, **locator.as_params(),
        )

    async def describe_slot_type(self, locator: BotLocator, slot_type_id: str) -> dict[str, Any]:
        return await self._call(
            "DescribeSlotType", self._client.describe_slot_type,
            slotTypeId=slot_type_id, **locator.as_params(),
        )

    async def delete_intent(self, locator: BotLocator, intent_id: str) -> None:
        await self._call(
            "DeleteIntent", self._client.delete_intent,
            intentId=intent_id, **locator.as_params(),
        )

    async def delete_slot_type(self, locator: BotLocator, slot_type_id: str) -> None:
        await self._call(
            "DeleteSlotType", self._client.delete_slot_type,
            slotTypeId=slot_type_id, skipResourceInUseCheck=True, **locator.as_params(),
        )

    # =========================================================================
    # Waiters
    # =========================================================================
    # Build and export waits use the lexv2-models waiters botocore ships.
    # A WaiterError is sorted by its last response: an API error, a
    # terminal failure status, or the attempt limit running out.
    # =========================================================================

    async def _wait(
        self,
        waiter_name: str,
        operation: str,
        *,
        timeout: float,
        poll_interval: float,
        **params: Any,
    ) -> dict[str, Any]:
        """Run a botocore waiter in a thread; returns the last response on failure.

        Returns an empty dict when the waiter reached its success state.

        Raises:
            PlatformError: If the describe call itself was rejected.
            WaiterTimeoutError: If the attempts run out first.
        """
        waiter = self._client.get_waiter(waiter_name)
        config = {"Delay": poll_interval, "MaxAttempts": _max_attempts(timeout, poll_interval)}
        try:
            await asyncio.to_thread(waiter.wait, WaiterConfig=config, **params)
        except ParamValidationError as e:
            raise PlatformError(message=str(e), kind=_error_kind(e), operation=operation) from e
        except WaiterError as e:
            response = e.last_response or {}
            if "Error" in response:
                code = response["Error"].get("Code", "")
                raise PlatformError(
                    message=str(e),
                    kind=_ERROR_KINDS.get(code, PlatformErrorKind.OTHER),
                    operation=operation,
                ) from e
            if "Max attempts exceeded" in str(e):
                raise WaiterTimeoutError(
                    message=f"Waiter {waiter.name} timed out after {timeout} seconds",
                    waiter=waiter.name,
                    timeout_seconds=timeout,
                ) from e
            return _strip_metadata(response)
        return {}

    # =========================================================================
    # Build
    # =========================================================================

    async def trigger_build(self, locator: BotLocator) -> None:
        await self._call("BuildBotLocale", self._client.build_bot_locale, **locator.as_params())
        self._logger.info("build_triggered", bot_id=locator.bot_id, locale_id=locator.locale_id)

    async def wait_for_built(self, locator: BotLocator, *, timeout: float, poll_interval: float) -> None:
        response = await self._wait(
            "bot_locale_built", "DescribeBotLocale",
            timeout=timeout, poll_interval=poll_interval, **locator.as_params(),
        )
        if not response:
            return

        status = response.get("botLocaleStatus")
        self._logger.warning("build_failed", bot_id=locator.bot_id, status=status)
        raise BuildFailedError(
            message=json.dumps({
                "state": "FAILURE",
                "reason": {
                    "botLocaleStatus": status,
                    "failureReasons": response.get("failureReasons", []),
                },
            })
        )

    # =========================================================================
    # Export
    # =========================================================================

    async def create_export(self, locator: BotLocator) -> str:
        response = await self._call(
            "CreateExport",
            self._client.create_export,
            resourceSpecification={
                "botLocaleExportSpecification": {
                    "botId": locator.bot_id,
                    "botVersion": locator.bot_version,
                    "localeId": locator.locale_id,
                }
            },
            fileFormat="LexJson",
        )
        return response["exportId"]

    async def wait_for_exported(self, export_id: str, *, timeout: float, poll_interval: float) -> None:
        response = await self._wait(
            "bot_export_completed", "DescribeExport",
            timeout=timeout, poll_interval=poll_interval, exportId=export_id,
        )
        if not response:
            return

        status = response.get("exportStatus")
        raise PlatformError(
            message=f"Export {export_id} ended with status {status}",
            kind=PlatformErrorKind.OTHER,
            operation="DescribeExport",
            details={"failure_reasons": response.get("failureReasons", [])},
        )

    async def download_export(self, export_id: str) -> bytes:
        response = await self._call("DescribeExport", self._client.describe_export, exportId=export_id)
        url = response.get("downloadUrl")
        if not url:
            raise PlatformError(
                message=f"Export {export_id} has no download URL",
                kind=PlatformErrorKind.OTHER,
                operation="DescribeExport",
            )

        try:
            async with httpx.AsyncClient(timeout=self._download_timeout) as client:
                result = await client.get(url)
                result.raise_for_status()
        except httpx.HTTPError as e:
            raise PlatformError(
                message=f"Failed to download export {export_id}: {e}",
                kind=PlatformErrorKind.OTHER,
                operation="DownloadExport",
            ) from e

        self._logger.info("export_downloaded", export_id=export_id, size=len(result.content))
        return result.content


def _snake(noun: str) -> str:
    """Convert "SlotType" to "slot_type"."""
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in noun).lstrip("_")


def _max_attempts(timeout: float, poll_interval: float) -> int:
    """Waiter attempts that fit in ``timeout`` at one poll per interval."""
    return max(1, math.ceil(timeout / max(poll_interval, 1.0)))
