"""Job queue adapters."""

from .base import (
    IMAGE_QUEUE,
    VIDEO_QUEUE,
    JobQueue,
    QueueError,
    QueueUnavailableError,
    TaskValidationError,
)
from .memory_queue import InMemoryJobQueue
from .redis_queue import RedisJobQueue

__all__ = [
    "IMAGE_QUEUE",
    "InMemoryJobQueue",
    "JobQueue",
    "QueueError",
    "QueueUnavailableError",
    "RedisJobQueue",
    "TaskValidationError",
    "VIDEO_QUEUE",
]
