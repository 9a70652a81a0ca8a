"""
botsmith.orchestration.status_log - Artifact Status Log Writer
================================================================

Every workflow stage reports progress by writing StatusMessage entries onto
the artifact. The log has one rule: message text is the dedupe key. A new
entry first removes any older entry with the same text, then appends
itself, so re-running a step moves its entry to the end instead of
duplicating it.

    Building bot.               in-progress
    Building bot.               success      ← replaces the line above

Writes are read-modify-write against the repository with no locking.
"""

from __future__ import annotations

from typing import Any

import structlog

from botsmith.core.enums import ArtifactStatus
from botsmith.core.models import Artifact, SecurityContext, StatusMessage
from botsmith.infrastructure.artifact_repository import ArtifactRepository


logger = structlog.get_logger()


class StatusLog:
    """Appends deduplicated status entries to an artifact.

    Args:
        repository: Where artifacts live.

    Example:
        >>> status_log = StatusLog(repository)
        >>> await status_log.record(context, bot.id, "Building bot.", ArtifactStatus.IN_PROGRESS)
    """

    def __init__(self, repository: ArtifactRepository) -> None:
        self._repository = repository
        self._logger = logger.bind(component="status_log")

    @property
    def repository(self) -> ArtifactRepository:
        return self._repository

    async def current(self, context: SecurityContext, artifact_id: str) -> Artifact:
        """Read the artifact as it is now."""
        return await self._repository.get(context, artifact_id)

    async def record(
        self,
        context: SecurityContext,
        artifact_id: str,
        message: str,
        status: ArtifactStatus,
        *,
        artifact_status: ArtifactStatus = ArtifactStatus.IN_PROGRESS,
        **changes: Any,
    ) -> Artifact:
        """Append ``{status, message}`` and set the artifact's status.

        Args:
            context: Caller identity for the repository.
            artifact_id: Artifact to write to.
            message: Entry text; replaces any older entry with this text.
            status: Status of the entry itself.
            artifact_status: New lifecycle status of the whole artifact.
            **changes: Further artifact fields to update in the same write.

        Returns:
            The updated artifact.
        """
        artifact = await self.current(context, artifact_id)
        messages = [m for m in artifact.status_messages if m.message != message]
        messages.append(StatusMessage(status=status, message=message))

        self._logger.debug(
            "status_recorded",
            artifact_id=artifact_id,
            message=message,
            status=status.value,
        )
        return await self._repository.update(
            context,
            artifact_id,
            {"status": artifact_status, "status_messages": messages, **changes},
        )
