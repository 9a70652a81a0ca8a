"""
Tests for botsmith.orchestration.workflow_engine
==================================================

What's Being Tested:
    - after_creation(): slot types first, then intents, then the build
    - step(): one stage per call and the transition it returns
    - Build outcomes: built → SUCCEEDED, reasons → FIX_RESOURCE,
      neither → NO_FAILURE_REASONS
    - Terminal stages cannot be stepped
    - Stage errors are recorded on the artifact and re-raised unchanged,
      even when recording them fails
    - run(): a full build of the sample bundle
"""

import pytest

from botsmith.core.enums import ArtifactStatus, WorkflowStage
from botsmith.core.exceptions import ArtifactNotFoundError, WorkflowError
from botsmith.core.models import Artifact
from botsmith.core.state import StageEvent, WorkList
from botsmith.integrations.llm.mock import MockLLMProvider
from botsmith.integrations.platform.memory import InMemoryPlatform
from botsmith.orchestration.workflow_engine import WorkflowEngine, after_creation


# =============================================================================
# Helpers
# =============================================================================
class StubBuildInvoker:
    """Reports a failed build that carries no failure reasons."""

    async def build(self, event: StageEvent, context) -> StageEvent:
        return event.model_copy(update={"built": False, "num_of_retry": 0})


class FailingErrorHandler:
    """An error handler whose own write fails."""

    def __init__(self) -> None:
        self.calls = 0

    async def handle(self, context, artifact_id, error):
        self.calls += 1
        raise RuntimeError("repository unavailable")


def engine_with(parts: dict, **overrides) -> WorkflowEngine:
    return WorkflowEngine(**{**parts, **overrides})


def pending(work: WorkList) -> StageEvent:
    return StageEvent(bot=Artifact(id="B1", name="Bot"), input=work)


@pytest.fixture
def parts(repository, collector, slot_type_creator, intent_creator, build_invoker, fixer, error_handler) -> dict:
    return {
        "repository": repository,
        "collector": collector,
        "slot_type_creator": slot_type_creator,
        "intent_creator": intent_creator,
        "build_invoker": build_invoker,
        "fixer": fixer,
        "error_handler": error_handler,
    }


# =============================================================================
# Test: after_creation()
# =============================================================================
class TestAfterCreation:
    def test_slot_types_first(self) -> None:
        event_input = WorkList(slot_types=["Size"], intents=["Order"])
        assert after_creation(pending(event_input)) == WorkflowStage.CREATE_SLOT_TYPE

    def test_then_intents(self) -> None:
        event_input = WorkList(intents=["Order"])
        assert after_creation(pending(event_input)) == WorkflowStage.CREATE_INTENT

    def test_then_build(self) -> None:
        assert after_creation(pending(WorkList())) == WorkflowStage.BUILD_ARTIFACT


# =============================================================================
# Test: step()
# =============================================================================
class TestStep:
    """Tests for WorkflowEngine.step()."""

    async def test_collection(self, engine: WorkflowEngine, artifact, context) -> None:
        transition = await engine.step(WorkflowStage.PARAMETER_COLLECTION, StageEvent(bot=artifact), context)

        assert transition.stage == WorkflowStage.CREATE_SLOT_TYPE
        assert transition.event.input.slot_types_to_process == 2
        assert transition.event.input.intents_to_process == 3

    async def test_stage_sequence(self, engine: WorkflowEngine, artifact, context) -> None:
        """Each step handles one item; the caller can persist every transition."""
        stage, event = WorkflowStage.PARAMETER_COLLECTION, StageEvent(bot=artifact)
        visited = []
        while not stage.is_terminal:
            transition = await engine.step(stage, event, context)
            stage, event = transition.stage, transition.event
            visited.append(stage)

        assert visited == [
            WorkflowStage.CREATE_SLOT_TYPE,
            WorkflowStage.CREATE_SLOT_TYPE,
            WorkflowStage.CREATE_INTENT,
            WorkflowStage.CREATE_INTENT,
            WorkflowStage.CREATE_INTENT,
            WorkflowStage.BUILD_ARTIFACT,
            WorkflowStage.SUCCEEDED,
        ]
        assert event.built is True

    async def test_build_success(self, engine: WorkflowEngine, artifact, context) -> None:
        transition = await engine.step(WorkflowStage.BUILD_ARTIFACT, StageEvent(bot=artifact), context)
        assert transition.stage == WorkflowStage.SUCCEEDED

    async def test_build_failure_goes_to_fix(
        self, engine: WorkflowEngine, platform: InMemoryPlatform, artifact, context
    ) -> None:
        platform.fail_next_build(["Intent OrderPizza bad"])

        transition = await engine.step(WorkflowStage.BUILD_ARTIFACT, StageEvent(bot=artifact), context)

        assert transition.stage == WorkflowStage.FIX_RESOURCE
        assert transition.event.failure_reasons == ["Intent OrderPizza bad"]

    async def test_build_failure_without_reasons(self, parts: dict, status_log, artifact, context) -> None:
        engine = engine_with(parts, build_invoker=StubBuildInvoker())

        with pytest.raises(WorkflowError) as exc_info:
            await engine.step(WorkflowStage.BUILD_ARTIFACT, StageEvent(bot=artifact), context)

        assert exc_info.value.error_code == "NO_FAILURE_REASONS"
        assert (await status_log.current(context, artifact.id)).status == ArtifactStatus.ERROR

    async def test_fix_with_reasons_left(
        self, engine: WorkflowEngine, mock_llm_provider: MockLLMProvider, artifact, context
    ) -> None:
        mock_llm_provider.queue_json({"type": "intent", "resources": []})
        event = StageEvent(bot=artifact, failure_reasons=["a", "b"])

        transition = await engine.step(WorkflowStage.FIX_RESOURCE, event, context)

        assert transition.stage == WorkflowStage.FIX_RESOURCE
        assert transition.event.failure_reasons == ["a"]

    async def test_fix_last_reason_goes_to_build(
        self, engine: WorkflowEngine, mock_llm_provider: MockLLMProvider, artifact, context
    ) -> None:
        mock_llm_provider.queue_json({"type": "intent", "resources": []})
        event = StageEvent(bot=artifact, failure_reasons=["a"], num_of_retry=0)

        transition = await engine.step(WorkflowStage.FIX_RESOURCE, event, context)

        assert transition.stage == WorkflowStage.BUILD_ARTIFACT
        assert transition.event.num_of_retry == 0

    async def test_terminal_stage(self, engine: WorkflowEngine, artifact, context) -> None:
        with pytest.raises(WorkflowError) as exc_info:
            await engine.step(WorkflowStage.SUCCEEDED, StageEvent(bot=artifact), context)
        assert exc_info.value.error_code == "TERMINAL_STAGE"


# =============================================================================
# Test: Stage Errors
# =============================================================================
class TestStageErrors:
    """Errors are recorded, then re-raised unchanged."""

    async def test_error_recorded(self, engine: WorkflowEngine, status_log, artifact, context) -> None:
        with pytest.raises(WorkflowError):
            await engine.step(WorkflowStage.CREATE_SLOT_TYPE, StageEvent(bot=artifact), context)

        current = await status_log.current(context, artifact.id)
        assert current.status == ArtifactStatus.ERROR
        assert current.status_messages[-1].status == ArtifactStatus.ERROR
        assert "Error: WorkflowError. Cause: " in current.status_messages[-1].message

    async def test_original_error_survives_handler_failure(self, parts: dict, artifact, context) -> None:
        handler = FailingErrorHandler()
        engine = engine_with(parts, error_handler=handler)

        with pytest.raises(WorkflowError):
            await engine.step(WorkflowStage.CREATE_INTENT, StageEvent(bot=artifact), context)

        assert handler.calls == 1


# =============================================================================
# Test: run()
# =============================================================================
class TestRun:
    """Tests for WorkflowEngine.run()."""

    async def test_full_build(
        self, engine: WorkflowEngine, platform: InMemoryPlatform, status_log, artifact, context
    ) -> None:
        event = await engine.run(artifact.id, context)

        assert event.built is True
        assert event.bot.status == ArtifactStatus.BUILT
        locator = artifact.locator
        assert platform.find_slot_type(locator, "PizzaSize") is not None
        assert platform.find_slot_type(locator, "Crust") is not None
        for name in ("OrderPizza", "CheckStatus", "Greeting"):
            assert platform.find_intent(locator, name) is not None
        assert platform.build_count == 1

        current = await status_log.current(context, artifact.id)
        assert current.status == ArtifactStatus.BUILT
        assert current.definition_location is not None

    async def test_unknown_artifact(self, engine: WorkflowEngine, context) -> None:
        with pytest.raises(ArtifactNotFoundError):
            await engine.run("missing", context)
