"""
botsmith.orchestration.error_handler - Shared Workflow Error Handler
======================================================================

Every error that escapes a workflow stage lands here before it is handed
back to the scheduler. The handler does not retry or recover; bounded
retries already happened inside the stages. It only makes the failure
visible on the artifact:

    status_messages before               status_messages after
    ───────────────────────────         ─────────────────────────────────────
    Creating intent Pay.  in-progress   Creating intent Pay. Error:
                                        RepairBudgetExceededError. Cause:
                                        Retried too many times ...  error

The last entry names the step that was running, so it is replaced by one
entry carrying the step, the error type and its cause. The artifact status
becomes "error".
"""

from __future__ import annotations

import structlog

from botsmith.core.enums import ArtifactStatus
from botsmith.core.models import Artifact, SecurityContext, StatusMessage
from botsmith.orchestration.status_log import StatusLog


logger = structlog.get_logger()


def describe_error(error: BaseException) -> str:
    """``Error: <type>. Cause: <message>`` for any exception."""
    cause = getattr(error, "message", None) or str(error)
    return f"Error: {type(error).__name__}. Cause: {cause}"


class WorkflowErrorHandler:
    """Records a fatal stage error on the artifact.

    Args:
        status_log: Gives access to the artifact repository.

    Example:
        >>> handler = WorkflowErrorHandler(status_log)
        >>> try:
        ...     await stage(event, context)
        ... except Exception as e:
        ...     await handler.handle(context, event.bot.id, e)
        ...     raise
    """

    def __init__(self, status_log: StatusLog) -> None:
        self._status_log = status_log
        self._logger = logger.bind(component="error_handler")

    async def handle(self, context: SecurityContext, artifact_id: str, error: BaseException) -> Artifact:
        """Replace the last status entry with an error entry and mark the artifact.

        Returns:
            The updated artifact.
        """
        artifact = await self._status_log.current(context, artifact_id)
        messages = list(artifact.status_messages)

        if messages:
            last = messages.pop()
            text = f"{last.message.rstrip('.')}. {describe_error(error)}"
        else:
            text = describe_error(error)
        messages.append(StatusMessage(status=ArtifactStatus.ERROR, message=text))

        self._logger.error(
            "workflow_stage_failed",
            artifact_id=artifact_id,
            error_type=type(error).__name__,
            error_code=getattr(error, "error_code", None),
            error=str(error),
        )
        return await self._status_log.repository.update(
            context,
            artifact_id,
            {"status": ArtifactStatus.ERROR, "status_messages": messages},
        )
