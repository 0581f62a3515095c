"""Object storage interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageError(Exception):
    """An object storage call failed."""


class ObjectStorage(ABC):
    """Delete-oriented view of the media bucket."""

    def __init__(self, public_url: str) -> None:
        self.public_url = public_url.rstrip("/")

    def key_from_url(self, file_url: str) -> str | None:
        """Map a public media URL back to its bucket key; ``None`` when it is not ours."""
        prefix = f"{self.public_url}/"
        if not file_url or not file_url.startswith(prefix):
            return None
        key = file_url[len(prefix):]
        return key or None

    @abstractmethod
    def delete_object(self, key: str) -> None:
        """Delete one object; deleting a missing key is not an error."""

    @abstractmethod
    def list_keys(self, prefix: str) -> list[str]:
        """Return every key under ``prefix``."""


__all__ = ["ObjectStorage", "StorageError"]
