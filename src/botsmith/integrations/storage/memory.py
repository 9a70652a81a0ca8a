"""
botsmith.integrations.storage.memory - In-Memory Object Store
===============================================================

Dict-backed ObjectStore for tests and local runs. Data is lost when the
process exits.
"""

from __future__ import annotations

from typing import Optional

import structlog

from botsmith.core.exceptions import StorageError
from botsmith.integrations.storage.base import ObjectStore


logger = structlog.get_logger()


class InMemoryObjectStore(ObjectStore):
    """In-memory object store keyed by (bucket, key).

    Example:
        >>> store = InMemoryObjectStore()
        >>> await store.put_object("bots", "raw/b1.json", b"{}")
        >>> await store.get_object("bots", "raw/b1.json")
        b'{}'
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], bytes] = {}
        self._content_types: dict[tuple[str, str], Optional[str]] = {}
        self._logger = logger.bind(component="in_memory_object_store")

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        self._objects[(bucket, key)] = bytes(body)
        self._content_types[(bucket, key)] = content_type
        self._logger.debug("object_stored", bucket=bucket, key=key, size=len(body))

    async def get_object(self, bucket: str, key: str) -> bytes:
        try:
            return self._objects[(bucket, key)]
        except KeyError:
            raise StorageError(
                message=f"Object not found: s3://{bucket}/{key}",
                bucket=bucket,
                key=key,
                error_code="OBJECT_NOT_FOUND",
            ) from None

    def content_type(self, bucket: str, key: str) -> Optional[str]:
        """Content type recorded when the object was stored."""
        return self._content_types.get((bucket, key))

    def keys(self, bucket: str) -> list[str]:
        """All keys stored in ``bucket``, sorted."""
        return sorted(k for b, k in self._objects if b == bucket)
