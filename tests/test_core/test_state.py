"""
Tests for botsmith.core.state
===============================

What's Being Tested:
    - WorkList counters always match list lengths
    - Popping returns a new cursor and leaves the original untouched
    - StageEvent failure reason bookkeeping
    - camelCase serialization of events for external schedulers
"""

import pytest

from botsmith.core.enums import WorkflowStage
from botsmith.core.models import Artifact
from botsmith.core.state import StageEvent, StageTransition, WorkList


# =============================================================================
# Helpers
# =============================================================================
def make_event(**fields) -> StageEvent:
    return StageEvent(bot=Artifact(id="BOT1", name="PizzaBot"), **fields)


# =============================================================================
# Test: WorkList
# =============================================================================
class TestWorkList:
    """Tests for the pending-name cursor."""

    def test_counters_follow_lists(self) -> None:
        work_list = WorkList(slot_types=["A", "B"], intents=["X"])
        assert work_list.slot_types_to_process == 2
        assert work_list.intents_to_process == 1

    def test_counters_cannot_drift(self) -> None:
        """A stale counter from the wire is recomputed."""
        work_list = WorkList.model_validate({"slotTypes": ["A"], "slotTypesToProcess": 7})
        assert work_list.slot_types_to_process == 1

    def test_pop_slot_type_takes_last(self) -> None:
        work_list = WorkList(slot_types=["A", "B"], intents=["X"])
        name, remaining = work_list.pop_slot_type()

        assert name == "B"
        assert remaining.slot_types == ["A"]
        assert remaining.slot_types_to_process == 1
        assert remaining.intents == ["X"]

    def test_pop_does_not_mutate(self) -> None:
        work_list = WorkList(intents=["X", "Y"])
        work_list.pop_intent()
        assert work_list.intents == ["X", "Y"]
        assert work_list.intents_to_process == 2

    def test_pop_empty_raises(self) -> None:
        with pytest.raises(IndexError):
            WorkList().pop_slot_type()
        with pytest.raises(IndexError):
            WorkList().pop_intent()


# =============================================================================
# Test: StageEvent
# =============================================================================
class TestStageEvent:
    """Tests for the event passed between stages."""

    def test_defaults(self) -> None:
        event = make_event()
        assert event.num_of_retry is None
        assert event.failure_reasons_to_fix == 0
        assert event.resources_context is None
        assert event.built is False

    def test_failure_counter_follows_reasons(self) -> None:
        event = make_event(failure_reasons=["a", "b"], failure_reasons_to_fix=9)
        assert event.failure_reasons_to_fix == 2

    def test_pop_failure_reason(self) -> None:
        event = make_event(failure_reasons=["a", "b"])
        reason, remaining = event.pop_failure_reason()

        assert reason == "b"
        assert remaining.failure_reasons == ["a"]
        assert remaining.failure_reasons_to_fix == 1
        assert event.failure_reasons == ["a", "b"]

    def test_pop_failure_reason_empty_raises(self) -> None:
        with pytest.raises(IndexError):
            make_event().pop_failure_reason()

    def test_wire_format(self) -> None:
        """Events serialize with the keys an external scheduler chains on."""
        event = make_event(input=WorkList(slot_types=["A"]), num_of_retry=0)
        wire = event.model_dump(by_alias=True, mode="json")

        assert wire["input"]["slotTypesToProcess"] == 1
        assert wire["numOfRetry"] == 0
        assert wire["failureReasonsToFix"] == 0
        assert StageEvent.model_validate(wire).input.slot_types == ["A"]


class TestStageTransition:
    def test_transition_carries_stage_and_event(self) -> None:
        transition = StageTransition(stage=WorkflowStage.BUILD_ARTIFACT, event=make_event())
        assert transition.stage == WorkflowStage.BUILD_ARTIFACT
        assert not transition.stage.is_terminal
