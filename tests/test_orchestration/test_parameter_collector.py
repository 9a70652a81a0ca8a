"""
Tests for botsmith.orchestration.parameter_collector
======================================================

What's Being Tested:
    - Existing intents (except FallbackIntent) and slot types are deleted
    - The bundle is loaded and its utterances deduplicated across intents
    - Work-lists list custom slot types and every intent
    - Status entries for the reset step
    - A failed delete is raised only after the other deletes finish
    - Missing or malformed bundles fail with WorkflowError
"""

import asyncio

import pytest

from botsmith.core.enums import ArtifactStatus, PlatformErrorKind, ResourceType
from botsmith.core.exceptions import PlatformError, StorageError, WorkflowError
from botsmith.core.models import Artifact, ResourceBundle, StorageLocation
from botsmith.core.state import StageEvent
from botsmith.integrations.platform.memory import InMemoryPlatform
from botsmith.orchestration.parameter_collector import (
    DELETING_RESOURCES_MESSAGE,
    ParameterCollector,
    deduplicate_utterances,
)


class FailingDeletePlatform(InMemoryPlatform):
    """Rejects deleting one intent; every other delete yields once first."""

    failing_id: str = ""

    async def delete_intent(self, locator, intent_id: str) -> None:
        if intent_id == self.failing_id:
            raise PlatformError(message="throttled", kind=PlatformErrorKind.OTHER, operation="DeleteIntent")
        await asyncio.sleep(0)
        await super().delete_intent(locator, intent_id)


class TestCollect:
    """Tests for ParameterCollector.collect()."""

    async def test_work_lists(self, collector: ParameterCollector, artifact, context) -> None:
        event = await collector.collect(StageEvent(bot=artifact), context)

        assert event.input.slot_types == ["PizzaSize", "Crust"]
        assert event.input.slot_types_to_process == 2
        assert event.input.intents == ["OrderPizza", "CheckStatus", "Greeting"]
        assert event.input.intents_to_process == 3
        assert set(event.output.intents) == {"OrderPizza", "CheckStatus", "Greeting"}

    async def test_duplicate_utterances_dropped(self, collector: ParameterCollector, artifact, context) -> None:
        """'I want a pizza' stays only in the first intent that uses it."""
        event = await collector.collect(StageEvent(bot=artifact), context)

        check_status = event.output.intents["CheckStatus"]["sampleUtterances"]
        assert check_status == [{"utterance": "where is my order"}]
        order = event.output.intents["OrderPizza"]["sampleUtterances"]
        assert {"utterance": "I want a pizza"} in order

    async def test_existing_resources_deleted(self, object_store, status_log, artifact, context) -> None:
        """Everything goes except the platform's FallbackIntent."""
        platform = InMemoryPlatform(seed_fallback_intent=True)
        collector = ParameterCollector(platform, object_store, status_log)
        params = artifact.locator.as_params()
        await platform.create_resource(ResourceType.SLOT_TYPE, {"slotTypeName": "Old", **params})
        await platform.create_resource(ResourceType.INTENT, {"intentName": "Stale", **params})

        await collector.collect(StageEvent(bot=artifact), context)

        assert [s.name for s in await platform.list_intents(artifact.locator)] == ["FallbackIntent"]
        assert await platform.list_slot_types(artifact.locator) == []

    async def test_status_entry(self, collector: ParameterCollector, artifact, context, status_log) -> None:
        await collector.collect(StageEvent(bot=artifact), context)

        current = await status_log.current(context, artifact.id)
        assert [(m.message, m.status) for m in current.status_messages] == [
            (DELETING_RESOURCES_MESSAGE, ArtifactStatus.SUCCESS),
        ]
        assert current.status == ArtifactStatus.IN_PROGRESS

    async def test_running_twice_is_safe(
        self, collector: ParameterCollector, platform: InMemoryPlatform, artifact, context
    ) -> None:
        await collector.collect(StageEvent(bot=artifact), context)
        params = artifact.locator.as_params()
        await platform.create_resource(ResourceType.SLOT_TYPE, {"slotTypeName": "PizzaSize", **params})

        event = await collector.collect(StageEvent(bot=artifact), context)

        assert await platform.list_slot_types(artifact.locator) == []
        assert event.input.slot_types_to_process == 2

    async def test_built_in_slot_types_skipped(
        self, collector: ParameterCollector, object_store, repository, context
    ) -> None:
        bundle = ResourceBundle(slot_types={
            "AMAZON.Number": {"slotTypeName": "AMAZON.Number"},
            "Size": {"slotTypeName": "Size"},
        })
        location = StorageLocation(bucket="bots", key="input/B2/resources.json")
        await object_store.put_object(location.bucket, location.key, bundle.model_dump_json(by_alias=True).encode())
        bot = await repository.create(context, Artifact(id="B2", name="B", definition_raw_location=location))

        event = await collector.collect(StageEvent(bot=bot), context)

        assert event.input.slot_types == ["Size"]


class TestReset:
    """Tests for ParameterCollector.reset()."""

    async def test_failed_delete_waits_for_the_rest(self, object_store, status_log, artifact) -> None:
        platform = FailingDeletePlatform()
        params = artifact.locator.as_params()
        created = [
            await platform.create_resource(ResourceType.INTENT, {"intentName": name, **params})
            for name in ("First", "Second", "Third")
        ]
        await platform.create_resource(ResourceType.SLOT_TYPE, {"slotTypeName": "Old", **params})
        platform.failing_id = created[0]["intentId"]
        collector = ParameterCollector(platform, object_store, status_log)

        with pytest.raises(PlatformError, match="throttled"):
            await collector.reset(artifact.locator)

        assert [s.name for s in await platform.list_intents(artifact.locator)] == ["First"]
        assert [s.name for s in await platform.list_slot_types(artifact.locator)] == ["Old"]


class TestCollectFailures:
    """Missing or malformed bundles."""

    async def test_no_bundle_location(self, collector: ParameterCollector, repository, context) -> None:
        bot = await repository.create(context, Artifact(id="B3", name="B"))
        with pytest.raises(WorkflowError) as exc_info:
            await collector.collect(StageEvent(bot=bot), context)
        assert exc_info.value.error_code == "MISSING_BUNDLE_LOCATION"

    async def test_bundle_not_stored(self, collector: ParameterCollector, repository, context) -> None:
        location = StorageLocation(bucket="bots", key="missing.json")
        bot = await repository.create(context, Artifact(id="B4", name="B", definition_raw_location=location))
        with pytest.raises(StorageError):
            await collector.collect(StageEvent(bot=bot), context)

    async def test_invalid_bundle(self, collector: ParameterCollector, object_store, repository, context) -> None:
        location = StorageLocation(bucket="bots", key="bad.json")
        await object_store.put_object("bots", "bad.json", b"{not json")
        bot = await repository.create(context, Artifact(id="B5", name="B", definition_raw_location=location))

        with pytest.raises(WorkflowError) as exc_info:
            await collector.collect(StageEvent(bot=bot), context)
        assert exc_info.value.error_code == "INVALID_BUNDLE"


class TestDeduplicateUtterances:
    def test_input_not_modified(self, bundle: ResourceBundle) -> None:
        deduplicate_utterances(bundle)
        assert len(bundle.intents["CheckStatus"]["sampleUtterances"]) == 2

    def test_intent_without_utterances(self) -> None:
        bundle = ResourceBundle(intents={"X": {"intentName": "X"}})
        assert deduplicate_utterances(bundle).intents["X"]["sampleUtterances"] == []
