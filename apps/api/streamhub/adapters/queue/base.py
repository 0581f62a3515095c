"""Job queue interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from streamhub.schemas.tasks import (
    AvatarTask,
    PosterTask,
    ProcessingTask,
    TaskEnvelope,
    VideoTask,
    processing_task_adapter,
)

VIDEO_QUEUE = "video-processing"
IMAGE_QUEUE = "image-processing"

# kind -> (queue name, task name, priority); higher priority is served first by the broker.
_ROUTES: dict[str, tuple[str, str, int]] = {
    "video": (VIDEO_QUEUE, "process-video", 1),
    "avatar": (IMAGE_QUEUE, "process-avatar", 10),
    "poster": (IMAGE_QUEUE, "process-poster", 5),
}


class QueueError(Exception):
    """Base class for job queue failures."""


class TaskValidationError(QueueError):
    """The task payload is malformed; retrying the same payload cannot succeed."""


class QueueUnavailableError(QueueError):
    """The broker could not accept the task (connection, timeout, auth)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


def coerce_task(task: Any) -> ProcessingTask:
    """Return ``task`` as one of the typed task models or raise ``TaskValidationError``."""
    if isinstance(task, (VideoTask, AvatarTask, PosterTask)):
        return task
    try:
        return processing_task_adapter.validate_python(task)
    except ValidationError as exc:
        raise TaskValidationError(f"Invalid processing task: {exc.error_count()} error(s)") from exc


def build_envelope(task: ProcessingTask) -> tuple[str, TaskEnvelope]:
    queue_name, task_name, priority = _ROUTES[task.kind]
    envelope = TaskEnvelope(
        queue_task_id=str(uuid4()),
        name=task_name,
        priority=priority,
        task=task,
    )
    return queue_name, envelope


class JobQueue(ABC):
    """Typed, at-least-once publisher of processing tasks.

    Implementations never retry internally; broker failures surface as
    ``QueueUnavailableError`` and bad payloads as ``TaskValidationError``.
    """

    @abstractmethod
    def enqueue(self, task: ProcessingTask) -> str:
        """Publish the task and return its queue correlation id."""

    @abstractmethod
    def dequeue(self, queue_names: list[str], *, timeout_seconds: float = 2.0) -> TaskEnvelope | None:
        """Pop the next envelope from any of ``queue_names`` or ``None`` on timeout."""


__all__ = [
    "IMAGE_QUEUE",
    "JobQueue",
    "QueueError",
    "QueueUnavailableError",
    "TaskValidationError",
    "VIDEO_QUEUE",
    "build_envelope",
    "coerce_task",
]
