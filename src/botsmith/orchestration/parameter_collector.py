"""
botsmith.orchestration.parameter_collector - First Workflow Stage
===================================================================

Prepares a clean slate for a build run:

    1. Record "Deleting existing resources in Amazon Lex." (in-progress)
    2. Delete every intent except FallbackIntent, then every slot type
    3. Load the generated ResourceBundle from object storage
    4. Drop sample utterances already used by an earlier intent
    5. Record the step as success
    6. Emit the slot-type and intent work-lists

Running the collector twice is safe: the reset pass removes whatever the
previous run created, and the bundle is re-read from storage.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Iterable

import structlog
from pydantic import ValidationError

from botsmith.core.enums import ArtifactStatus
from botsmith.core.exceptions import WorkflowError
from botsmith.core.models import (
    BUILT_IN_PREFIX,
    FALLBACK_INTENT_NAME,
    Artifact,
    BotLocator,
    ResourceBundle,
    SecurityContext,
)
from botsmith.core.state import StageEvent, WorkList
from botsmith.integrations.platform.base import ConversationalPlatform
from botsmith.integrations.storage.base import ObjectStore
from botsmith.orchestration.status_log import StatusLog


logger = structlog.get_logger()

DELETING_RESOURCES_MESSAGE = "Deleting existing resources in Amazon Lex."


def deduplicate_utterances(bundle: ResourceBundle) -> ResourceBundle:
    """Keep each sample utterance only in the first intent that uses it.

    Returns a new bundle; the input is not modified.
    """
    seen: set[str] = set()
    intents: dict[str, dict[str, Any]] = {}
    for key, intent in bundle.intents.items():
        kept = []
        for item in intent.get("sampleUtterances") or []:
            utterance = item.get("utterance")
            if utterance not in seen:
                kept.append(item)
            seen.add(utterance)
        intents[key] = {**intent, "sampleUtterances": kept}
    return bundle.model_copy(update={"intents": intents})


class ParameterCollector:
    """Resets the platform locale and produces the work-lists.

    Args:
        platform: Where existing resources are deleted.
        object_store: Where the generated bundle is read from.
        status_log: Where progress is recorded.
    """

    def __init__(
        self,
        platform: ConversationalPlatform,
        object_store: ObjectStore,
        status_log: StatusLog,
    ) -> None:
        self._platform = platform
        self._object_store = object_store
        self._status_log = status_log
        self._logger = logger.bind(component="parameter_collector")

    async def collect(self, event: StageEvent, context: SecurityContext) -> StageEvent:
        """Run the collection stage for ``event.bot``.

        Returns:
            A new event carrying the bundle in ``output`` and the pending
            names in ``input``.

        Raises:
            WorkflowError: If the artifact has no bundle location or the
                bundle cannot be parsed.
            StorageError: If the bundle cannot be read.
            PlatformError: If listing or deleting resources fails.
        """
        bot = event.bot
        await self._status_log.record(
            context, bot.id, DELETING_RESOURCES_MESSAGE, ArtifactStatus.IN_PROGRESS
        )

        await self.reset(bot.locator)
        bundle = deduplicate_utterances(await self._load_bundle(bot))

        await self._status_log.record(
            context, bot.id, DELETING_RESOURCES_MESSAGE, ArtifactStatus.SUCCESS
        )

        work_list = WorkList(
            slot_types=[
                name
                for name in (d.get("slotTypeName") or key for key, d in bundle.slot_types.items())
                if not name.startswith(f"{BUILT_IN_PREFIX}.")
            ],
            intents=[d.get("intentName") or key for key, d in bundle.intents.items()],
        )
        self._logger.info(
            "parameters_collected",
            artifact_id=bot.id,
            slot_types=work_list.slot_types_to_process,
            intents=work_list.intents_to_process,
        )
        return event.model_copy(update={"input": work_list, "output": bundle})

    async def reset(self, locator: BotLocator) -> None:
        """Delete every intent except FallbackIntent, then every slot type."""
        intents = await self._platform.list_intents(locator)
        await self._settle(
            self._platform.delete_intent(locator, intent.id)
            for intent in intents
            if intent.name != FALLBACK_INTENT_NAME
        )

        slot_types = await self._platform.list_slot_types(locator)
        await self._settle(
            self._platform.delete_slot_type(locator, slot_type.id)
            for slot_type in slot_types
        )
        self._logger.info(
            "resources_reset",
            bot_id=locator.bot_id,
            intents=len(intents),
            slot_types=len(slot_types),
        )

    async def _settle(self, deletions: Iterable[Awaitable[None]]) -> None:
        """Run deletions concurrently and re-raise the first failure once all finish."""
        results = await asyncio.gather(*deletions, return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            self._logger.warning("reset_delete_failed", failed=len(failures), total=len(results))
            raise failures[0]

    async def _load_bundle(self, bot: Artifact) -> ResourceBundle:
        location = bot.definition_raw_location
        if location is None:
            raise WorkflowError(
                "Artifact has no resource bundle location",
                artifact_id=bot.id,
                error_code="MISSING_BUNDLE_LOCATION",
            )

        text = await self._object_store.get_text(location.bucket, location.key)
        try:
            return ResourceBundle.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            raise WorkflowError(
                f"Resource bundle s3://{location.bucket}/{location.key} is invalid: {e}",
                artifact_id=bot.id,
                error_code="INVALID_BUNDLE",
            ) from e
