"""
botsmith.infrastructure - Persistence
=======================================
"""

from botsmith.infrastructure.artifact_repository import (
    ArtifactRepository,
    InMemoryArtifactRepository,
)

__all__ = ["ArtifactRepository", "InMemoryArtifactRepository"]
