"""In-process object storage for local development and tests."""

from __future__ import annotations

from streamhub.adapters.storage.base import ObjectStorage, StorageError


class InMemoryObjectStorage(ObjectStorage):
    def __init__(self, public_url: str = "https://media.local") -> None:
        super().__init__(public_url)
        self.objects: set[str] = set()
        self.deleted: list[str] = []
        self.failing_keys: set[str] = set()

    def put(self, key: str) -> str:
        self.objects.add(key)
        return f"{self.public_url}/{key}"

    def delete_object(self, key: str) -> None:
        if key in self.failing_keys:
            raise StorageError(f"Injected delete failure for {key}")
        self.objects.discard(key)
        self.deleted.append(key)

    def list_keys(self, prefix: str) -> list[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))
