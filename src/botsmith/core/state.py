"""
botsmith.core.state - Stage Events and Work-List Cursors
==========================================================

Every workflow stage consumes a StageEvent and returns a new one. The event
is the only state carried between invocations, which makes each stage a
pure "event in, event out" step an external scheduler can chain:

    {
      "bot":    {...artifact...},
      "input":  {"slotTypes": [...], "slotTypesToProcess": 2,
                 "intents": [...],   "intentsToProcess": 3},
      "output": {"slots": {}, "slotTypes": {...}, "intents": {...}},
      "numOfRetry": 0,
      "failureReasons": [...], "failureReasonsToFix": 1,
      "resourcesContext": {"intents": {...}, "slotTypes": [...]},
      "built": false
    }

Work-lists are cursors passed by value. Popping returns the popped name
and a NEW WorkList; the input event is never mutated:

    >>> name, remaining = event.input.pop_slot_type()
    >>> remaining.slot_types_to_process == event.input.slot_types_to_process - 1
    True
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator

from botsmith.core.enums import WorkflowStage
from botsmith.core.models import Artifact, CamelModel, ResourceBundle, ResourceInventory


# =============================================================================
# Work-List Cursor
# =============================================================================
class WorkList(CamelModel):
    """Pending slot-type and intent names.

    The ``*_to_process`` counters always equal the list lengths; they are
    recomputed on every construction so a scheduler can branch on them
    without counting.
    """

    slot_types: list[str] = Field(default_factory=list)
    slot_types_to_process: int = 0
    intents: list[str] = Field(default_factory=list)
    intents_to_process: int = 0

    @model_validator(mode="after")
    def _sync_counters(self) -> WorkList:
        self.slot_types_to_process = len(self.slot_types)
        self.intents_to_process = len(self.intents)
        return self

    def pop_slot_type(self) -> tuple[str, WorkList]:
        """Take the last pending slot type.

        Returns:
            (name, remaining work-list)

        Raises:
            IndexError: If no slot types are pending.
        """
        if not self.slot_types:
            raise IndexError("pop from empty slot type work-list")
        return self.slot_types[-1], WorkList(
            slot_types=self.slot_types[:-1],
            intents=list(self.intents),
        )

    def pop_intent(self) -> tuple[str, WorkList]:
        """Take the last pending intent.

        Raises:
            IndexError: If no intents are pending.
        """
        if not self.intents:
            raise IndexError("pop from empty intent work-list")
        return self.intents[-1], WorkList(
            slot_types=list(self.slot_types),
            intents=self.intents[:-1],
        )


# =============================================================================
# Stage Event
# =============================================================================
class StageEvent(CamelModel):
    """Input and output of every workflow stage.

    Attributes:
        bot: Snapshot of the artifact the run is working on. Stages re-read
            the repository before writing, so this copy may be stale.
        input: Pending work-lists.
        output: The resource bundle loaded by the parameter collector.
        num_of_retry: Build retry counter. None until the first build.
        failure_reasons: Reasons from the last failed build still to fix.
        failure_reasons_to_fix: Always ``len(failure_reasons)``.
        resources_context: Inventory captured after the last failed build.
        built: True once a build and export completed.
    """

    bot: Artifact
    input: WorkList = Field(default_factory=WorkList)
    output: ResourceBundle = Field(default_factory=ResourceBundle)
    num_of_retry: Optional[int] = None
    failure_reasons: list[str] = Field(default_factory=list)
    failure_reasons_to_fix: int = 0
    resources_context: Optional[ResourceInventory] = None
    built: bool = False

    @model_validator(mode="after")
    def _sync_failure_counter(self) -> StageEvent:
        self.failure_reasons_to_fix = len(self.failure_reasons)
        return self

    def pop_failure_reason(self) -> tuple[str, StageEvent]:
        """Take the last failure reason; returns it and the updated event.

        Raises:
            IndexError: If no failure reasons are pending.
        """
        if not self.failure_reasons:
            raise IndexError("pop from empty failure reason list")
        return self.failure_reasons[-1], self.model_copy(
            update={
                "failure_reasons": self.failure_reasons[:-1],
                "failure_reasons_to_fix": len(self.failure_reasons) - 1,
            }
        )


class StageTransition(CamelModel):
    """Result of one orchestrator step: where to go next and with what."""

    stage: WorkflowStage
    event: StageEvent
