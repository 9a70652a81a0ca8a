"""
botsmith.infrastructure.artifact_repository - Artifact Persistence Layer
==========================================================================

The artifact repository owns every Artifact. Workflow stages never hold a
long-lived reference: they read the current copy with ``get()`` and write
partial updates with ``update()``.

Architecture Context:

    ┌────────────────────┐                      ┌──────────────────────┐
    │ ParameterCollector │ ── status entries ─→ │  ArtifactRepository  │
    │ Slot/IntentCreator │ ── status entries ─→ │                      │
    │ BuildInvoker       │ ── status, export ─→ │  ┌────────────────┐  │
    │ ResourceFixer      │ ── status entries ─→ │  │   Artifacts    │  │
    │ ErrorHandler       │ ── error entry ────→ │  └────────────────┘  │
    └────────────────────┘                      └──────────────────────┘

Update Semantics:
    ``update(context, artifact_id, changes)`` merges ``changes`` (a dict of
    field name → new value) over the stored artifact and bumps
    ``updated_at``. Concurrent writers are last-write-wins; each stage
    re-reads immediately before writing to keep the window small.

Security Context:
    Every call carries a SecurityContext naming the caller. The in-memory
    implementation only logs it; a real backend would authorize with it.

Usage:
    >>> repository = InMemoryArtifactRepository()
    >>> await repository.create(context, Artifact(name="PizzaBot"))
    >>> await repository.update(context, artifact.id, {"status": ArtifactStatus.IN_PROGRESS})
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import structlog

from botsmith.core.exceptions import ArtifactNotFoundError, BotsmithError
from botsmith.core.models import Artifact, SecurityContext


logger = structlog.get_logger()

# Fields the repository manages itself.
_PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})


# =============================================================================
# Abstract Base Class
# =============================================================================
class ArtifactRepository(ABC):
    """Abstract interface for artifact persistence.

    Methods:
        create(context, artifact): Store a new artifact.
        get(context, artifact_id): Read the current copy.
        update(context, artifact_id, changes): Merge a partial update.
    """

    @abstractmethod
    async def create(self, context: SecurityContext, artifact: Artifact) -> Artifact:
        """Store a new artifact.

        Raises:
            BotsmithError: If an artifact with the same id already exists.
        """
        ...

    @abstractmethod
    async def get(self, context: SecurityContext, artifact_id: str) -> Artifact:
        """Read the current copy of an artifact.

        Raises:
            ArtifactNotFoundError: If no artifact has that id.
        """
        ...

    @abstractmethod
    async def update(
        self,
        context: SecurityContext,
        artifact_id: str,
        changes: dict[str, Any],
    ) -> Artifact:
        """Merge ``changes`` into the stored artifact and return the result.

        Args:
            context: Caller identity.
            artifact_id: Artifact to update.
            changes: Field name → new value. Unspecified fields keep their
                stored values.

        Raises:
            ArtifactNotFoundError: If no artifact has that id.
            BotsmithError: If ``changes`` names an unknown or managed field.
        """
        ...


# =============================================================================
# In-Memory Implementation
# =============================================================================
class InMemoryArtifactRepository(ArtifactRepository):
    """Dict-backed artifact repository for tests and local runs.

    Stored artifacts are copied on the way in and out, so callers never
    share a mutable instance with the repository.
    """

    def __init__(self) -> None:
        self._store: dict[str, Artifact] = {}
        self._logger = logger.bind(component="in_memory_artifact_repository")

    async def create(self, context: SecurityContext, artifact: Artifact) -> Artifact:
        if artifact.id in self._store:
            raise BotsmithError(
                message=f"Artifact already exists: {artifact.id}",
                error_code="ARTIFACT_EXISTS",
                details={"artifact_id": artifact.id},
            )
        self._store[artifact.id] = artifact.model_copy(deep=True)
        self._logger.debug("artifact_created", artifact_id=artifact.id, by=context.sub)
        return artifact.model_copy(deep=True)

    async def get(self, context: SecurityContext, artifact_id: str) -> Artifact:
        try:
            return self._store[artifact_id].model_copy(deep=True)
        except KeyError:
            raise ArtifactNotFoundError(artifact_id) from None

    async def update(
        self,
        context: SecurityContext,
        artifact_id: str,
        changes: dict[str, Any],
    ) -> Artifact:
        if artifact_id not in self._store:
            raise ArtifactNotFoundError(artifact_id)

        invalid = set(changes) - (set(Artifact.model_fields) - _PROTECTED_FIELDS)
        if invalid:
            raise BotsmithError(
                message=f"Cannot update artifact fields: {sorted(invalid)}",
                error_code="INVALID_ARTIFACT_UPDATE",
                details={"artifact_id": artifact_id, "fields": sorted(invalid)},
            )

        merged = self._store[artifact_id].model_dump()
        merged.update(changes)
        merged["updated_at"] = datetime.now(timezone.utc)
        updated = Artifact.model_validate(merged)
        self._store[artifact_id] = updated

        self._logger.debug(
            "artifact_updated",
            artifact_id=artifact_id,
            fields=sorted(changes),
            by=context.sub,
        )
        return updated.model_copy(deep=True)

    async def count(self) -> int:
        """Number of stored artifacts."""
        return len(self._store)
