"""
botsmith.integrations.storage.factory - Object Store Factory
==============================================================
"""

from __future__ import annotations

from botsmith.core.config import StorageConfig
from botsmith.core.exceptions import ConfigurationError
from botsmith.integrations.storage.base import ObjectStore


def create_object_store(config: StorageConfig) -> ObjectStore:
    """Create an object store from configuration.

    Raises:
        ConfigurationError: If the provider name is not recognized.
    """
    provider_name = config.provider.lower()

    if provider_name == "memory":
        from botsmith.integrations.storage.memory import InMemoryObjectStore
        return InMemoryObjectStore()

    if provider_name == "s3":
        from botsmith.integrations.storage.s3 import S3ObjectStore
        return S3ObjectStore(region=config.region)

    raise ConfigurationError(
        message=f"Unknown storage provider: '{provider_name}'. Available providers: 'memory', 's3'.",
        error_code="UNKNOWN_STORAGE_PROVIDER",
        details={"provider": provider_name},
    )
