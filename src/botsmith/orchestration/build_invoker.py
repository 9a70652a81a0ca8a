"""
botsmith.orchestration.build_invoker - Build, Export and Failure Capture
==========================================================================

Builds the bot locale and, on success, persists the exported definition.
On a rejected build it turns the platform's failure into input for the
repair loop.

Retry Accounting (runs before anything else):

    num_of_retry      after accounting
    ─────────────     ────────────────
    None              0            first build
    0                 1            first rebuild
    1                 2            second rebuild
    2                 3 → BuildRetriesExceededError
                      "Failed to build bot after 3 retries."

So one run triggers at most three builds.

Success Path:
    trigger_build → wait_for_built → create_export → wait_for_exported
    → download_export → put_object(output/{id}/{name}_DRAFT_LexJson.zip)
    → artifact status "built" with definition_location

Failure Path (BuildFailedError only):
    failure reasons  ← JSON message's reason.failureReasons, deduplicated
    artifact status  ← "error", plus a "Build attempt N failed." entry
    inventory        ← every intent with its slot names, every slot type
"""

from __future__ import annotations

import json
from typing import Any, Optional

import structlog

from botsmith.core.enums import ArtifactStatus
from botsmith.core.exceptions import BuildFailedError, BuildRetriesExceededError, WorkflowError
from botsmith.core.models import Artifact, BotLocator, ResourceInventory, SecurityContext, StorageLocation
from botsmith.core.state import StageEvent
from botsmith.integrations.platform.base import ConversationalPlatform
from botsmith.integrations.storage.base import ObjectStore
from botsmith.orchestration.status_log import StatusLog


logger = structlog.get_logger()

BUILDING_MESSAGE = "Building bot."
EXPORT_CONTENT_TYPE = "application/zip"


def parse_failure_reasons(message: str) -> list[str]:
    """Extract ``reason.failureReasons`` from a build failure message.

    Duplicates are dropped keeping the first occurrence. A message that is
    not JSON, or carries no reasons, yields an empty list.
    """
    try:
        document: Any = json.loads(message)
    except (TypeError, json.JSONDecodeError):
        return []
    if not isinstance(document, dict):
        return []

    reason = document.get("reason")
    reasons = reason.get("failureReasons") if isinstance(reason, dict) else None
    return list(dict.fromkeys(str(r) for r in reasons or []))


def export_key(bot: Artifact) -> str:
    """Object key of a bot's exported definition."""
    return f"output/{bot.id}/{bot.name}_{bot.version}_LexJson.zip"


class BuildInvoker:
    """Runs one build attempt.

    Args:
        platform: Where the build runs.
        object_store: Where the export is persisted.
        status_log: Where progress is recorded.
        max_build_retries: Rebuilds allowed after the first build.
        build_timeout: Seconds to wait for the build.
        export_timeout: Seconds to wait for the export.
        poll_interval: Seconds between status polls.
    """

    def __init__(
        self,
        platform: ConversationalPlatform,
        object_store: ObjectStore,
        status_log: StatusLog,
        *,
        max_build_retries: int = 2,
        build_timeout: float = 60.0,
        export_timeout: float = 60.0,
        poll_interval: float = 1.0,
    ) -> None:
        self._platform = platform
        self._object_store = object_store
        self._status_log = status_log
        self._max_build_retries = max_build_retries
        self._build_timeout = build_timeout
        self._export_timeout = export_timeout
        self._poll_interval = poll_interval
        self._logger = logger.bind(component="build_invoker")

    def next_retry(self, num_of_retry: Optional[int]) -> int:
        """Advance the build retry counter.

        Raises:
            BuildRetriesExceededError: If the new value exceeds the limit.
        """
        if num_of_retry is None:
            return 0
        num_of_retry += 1
        if num_of_retry > self._max_build_retries:
            raise BuildRetriesExceededError(num_of_retry)
        return num_of_retry

    async def build(self, event: StageEvent, context: SecurityContext) -> StageEvent:
        """Build the bot, export it on success, capture failures otherwise.

        Returns:
            A new event. On success ``built`` is True and no failure reasons
            are pending. On failure ``failure_reasons`` and
            ``resources_context`` describe what to repair.

        Raises:
            BuildRetriesExceededError: If the retry budget is spent.
            WaiterTimeoutError: If the build or export does not finish in time.
            PlatformError: Any other platform failure.
        """
        bot = event.bot
        num_of_retry = self.next_retry(event.num_of_retry)
        locator = bot.locator

        current = await self._status_log.record(
            context, bot.id, BUILDING_MESSAGE, ArtifactStatus.IN_PROGRESS
        )

        try:
            await self._platform.trigger_build(locator)
            await self._platform.wait_for_built(
                locator,
                timeout=self._build_timeout,
                poll_interval=self._poll_interval,
            )
        except BuildFailedError as e:
            return await self._capture_failure(event, context, num_of_retry, e)

        location = await self._persist_export(current, locator)
        updated = await self._status_log.record(
            context,
            bot.id,
            BUILDING_MESSAGE,
            ArtifactStatus.BUILT,
            artifact_status=ArtifactStatus.BUILT,
            definition_location=location,
        )
        self._logger.info(
            "bot_built",
            artifact_id=bot.id,
            num_of_retry=num_of_retry,
            bucket=location.bucket,
            key=location.key,
        )
        return event.model_copy(update={
            "bot": updated,
            "num_of_retry": num_of_retry,
            "failure_reasons": [],
            "failure_reasons_to_fix": 0,
            "built": True,
        })

    async def inventory(self, locator: BotLocator) -> ResourceInventory:
        """Every registered intent (with its slot names) and slot type."""
        slot_types = [s.name for s in await self._platform.list_slot_types(locator)]

        intents: dict[str, list[str]] = {}
        for intent in await self._platform.list_intents(locator):
            slots = await self._platform.list_slots(locator, intent.id)
            intents[intent.name] = [s.name for s in slots]

        return ResourceInventory(intents=intents, slot_types=slot_types)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _capture_failure(
        self,
        event: StageEvent,
        context: SecurityContext,
        num_of_retry: int,
        error: BuildFailedError,
    ) -> StageEvent:
        bot = event.bot
        reasons = parse_failure_reasons(error.message)

        await self._status_log.record(
            context,
            bot.id,
            BUILDING_MESSAGE,
            ArtifactStatus.IN_PROGRESS,
            artifact_status=ArtifactStatus.ERROR,
        )
        await self._status_log.record(
            context,
            bot.id,
            f"Build attempt {num_of_retry + 1} failed.",
            ArtifactStatus.ERROR,
            artifact_status=ArtifactStatus.ERROR,
        )
        inventory = await self.inventory(bot.locator)

        self._logger.warning(
            "build_failed",
            artifact_id=bot.id,
            num_of_retry=num_of_retry,
            reasons=len(reasons),
        )
        return event.model_copy(update={
            "num_of_retry": num_of_retry,
            "failure_reasons": reasons,
            "failure_reasons_to_fix": len(reasons),
            "resources_context": inventory,
            "built": False,
        })

    async def _persist_export(self, bot: Artifact, locator: BotLocator) -> StorageLocation:
        export_id = await self._platform.create_export(locator)
        await self._platform.wait_for_exported(
            export_id,
            timeout=self._export_timeout,
            poll_interval=self._poll_interval,
        )
        archive = await self._platform.download_export(export_id)

        if bot.definition_raw_location is None:
            raise WorkflowError(
                "Artifact has no resource bundle location to export next to",
                artifact_id=bot.id,
                error_code="MISSING_BUNDLE_LOCATION",
            )
        location = StorageLocation(bucket=bot.definition_raw_location.bucket, key=export_key(bot))
        await self._object_store.put_object(
            location.bucket,
            location.key,
            archive,
            content_type=EXPORT_CONTENT_TYPE,
        )
        return location
