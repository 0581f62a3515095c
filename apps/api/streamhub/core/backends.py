"""Construction of the store, queue and storage backends from settings."""

from __future__ import annotations

from streamhub.adapters.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from streamhub.adapters.storage import InMemoryObjectStorage, ObjectStorage, R2ObjectStorage
from streamhub.core.config import Settings
from streamhub.repositories.memory import InMemoryStore
from streamhub.repositories.sqlite import SqliteStore


def build_store(settings: Settings) -> InMemoryStore | SqliteStore:
    if settings.store_backend == "sqlite":
        store = SqliteStore(settings.sqlite_path, timeout_seconds=settings.sqlite_timeout_seconds)
        store.init_db()
        return store
    return InMemoryStore()


def build_queue(settings: Settings) -> JobQueue:
    if settings.queue_backend == "redis":
        return RedisJobQueue.from_url(settings.redis_url, timeout_seconds=settings.queue_timeout_seconds)
    return InMemoryJobQueue()


def build_storage(settings: Settings) -> ObjectStorage:
    if settings.storage_backend != "r2":
        return InMemoryObjectStorage(public_url=settings.r2_public_url)

    missing = [
        name
        for name in ("r2_endpoint", "r2_access_key_id", "r2_secret_access_key")
        if not getattr(settings, name)
    ]
    if missing:
        raise ValueError(f"R2 storage requires settings: {', '.join(missing)}")
    return R2ObjectStorage(
        endpoint_url=settings.r2_endpoint,
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket=settings.r2_bucket,
        public_url=settings.r2_public_url,
    )
