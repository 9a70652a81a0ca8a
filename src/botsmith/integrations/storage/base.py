"""
botsmith.integrations.storage.base - Object Storage Interface
===============================================================

Durable storage for the generated resource bundle (read by the parameter
collector) and the exported bot definition (written by the build invoker).

Implementations:
    - InMemoryObjectStore: dict-backed, for development/testing
    - S3ObjectStore:       Amazon S3 via boto3
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class ObjectStore(ABC):
    """Abstract interface for bucket/key object storage."""

    @abstractmethod
    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        """Store ``body`` under bucket/key, replacing any existing object."""
        ...

    @abstractmethod
    async def get_object(self, bucket: str, key: str) -> bytes:
        """Read an object.

        Raises:
            StorageError: If the object does not exist or cannot be read.
        """
        ...

    async def get_text(self, bucket: str, key: str, encoding: str = "utf-8") -> str:
        """Read an object and decode it as text."""
        return (await self.get_object(bucket, key)).decode(encoding)
