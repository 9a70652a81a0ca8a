"""
botsmith.integrations.storage - Durable Object Storage
========================================================
"""

from botsmith.integrations.storage.base import ObjectStore
from botsmith.integrations.storage.factory import create_object_store
from botsmith.integrations.storage.memory import InMemoryObjectStore

__all__ = ["InMemoryObjectStore", "ObjectStore", "create_object_store"]
