"""Object storage adapters."""

from .base import ObjectStorage, StorageError
from .memory_storage import InMemoryObjectStorage
from .r2_storage import R2ObjectStorage

__all__ = ["InMemoryObjectStorage", "ObjectStorage", "R2ObjectStorage", "StorageError"]
