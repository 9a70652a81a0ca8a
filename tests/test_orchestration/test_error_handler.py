"""
Tests for botsmith.orchestration.error_handler
================================================

What's Being Tested:
    - The last status entry is replaced by "<step>. Error: <type>. Cause: <msg>"
    - The artifact status becomes "error"
    - Artifacts without entries get a bare error entry
    - describe_error() for botsmith and plain exceptions
"""

import pytest

from botsmith.core.enums import ArtifactStatus
from botsmith.core.exceptions import ArtifactNotFoundError, RepairBudgetExceededError, WorkflowError
from botsmith.core.models import Artifact
from botsmith.orchestration.error_handler import WorkflowErrorHandler, describe_error


# =============================================================================
# Test: handle()
# =============================================================================
class TestHandle:
    """Tests for WorkflowErrorHandler.handle()."""

    async def test_replaces_last_entry(
        self, error_handler: WorkflowErrorHandler, status_log, artifact, context
    ) -> None:
        await status_log.record(context, artifact.id, "Deleting resources.", ArtifactStatus.SUCCESS)
        await status_log.record(context, artifact.id, "Creating intent Pay.", ArtifactStatus.IN_PROGRESS)

        updated = await error_handler.handle(context, artifact.id, RepairBudgetExceededError(attempts=5))

        assert updated.status == ArtifactStatus.ERROR
        assert [(m.message, m.status) for m in updated.status_messages] == [
            ("Deleting resources.", ArtifactStatus.SUCCESS),
            (
                "Creating intent Pay. Error: RepairBudgetExceededError. Cause: Retry too many times.",
                ArtifactStatus.ERROR,
            ),
        ]

    async def test_persisted(self, error_handler: WorkflowErrorHandler, status_log, artifact, context) -> None:
        await status_log.record(context, artifact.id, "Building bot.", ArtifactStatus.IN_PROGRESS)

        await error_handler.handle(context, artifact.id, ValueError("boom"))

        current = await status_log.current(context, artifact.id)
        assert current.status == ArtifactStatus.ERROR
        assert current.status_messages[-1].message == "Building bot. Error: ValueError. Cause: boom"

    async def test_no_entries(self, error_handler: WorkflowErrorHandler, artifact, context) -> None:
        error = WorkflowError("nothing to do", artifact_id=artifact.id)

        updated = await error_handler.handle(context, artifact.id, error)

        assert len(updated.status_messages) == 1
        assert updated.status_messages[0].message == "Error: WorkflowError. Cause: nothing to do"
        assert updated.status_messages[0].status == ArtifactStatus.ERROR

    async def test_unknown_artifact(self, error_handler: WorkflowErrorHandler, context) -> None:
        with pytest.raises(ArtifactNotFoundError):
            await error_handler.handle(context, "missing", ValueError("x"))

    async def test_other_artifacts_untouched(
        self, error_handler: WorkflowErrorHandler, repository, artifact, context
    ) -> None:
        other = await repository.create(context, Artifact(id="OTHER", name="Other"))

        await error_handler.handle(context, artifact.id, ValueError("x"))

        assert (await repository.get(context, other.id)).status == other.status


# =============================================================================
# Test: describe_error()
# =============================================================================
class TestDescribeError:
    def test_botsmith_error_uses_message(self) -> None:
        assert describe_error(RepairBudgetExceededError(attempts=5)) == (
            "Error: RepairBudgetExceededError. Cause: Retry too many times."
        )

    def test_plain_exception(self) -> None:
        assert describe_error(KeyError("slotTypeId")) == "Error: KeyError. Cause: 'slotTypeId'"
