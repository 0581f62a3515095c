"""Redis list-backed job queue."""

from __future__ import annotations

import logging

import redis
from pydantic import ValidationError

from streamhub.adapters.queue.base import (
    JobQueue,
    QueueUnavailableError,
    TaskValidationError,
    build_envelope,
    coerce_task,
)
from streamhub.core.logging_safety import safe_log_identifier
from streamhub.schemas.tasks import ProcessingTask, TaskEnvelope

logger = logging.getLogger(__name__)


class RedisJobQueue(JobQueue):
    """Publishes JSON task envelopes with ``LPUSH`` and consumes with ``BRPOP``.

    A message popped by a worker that then crashes is lost from the list; the
    reconciliation sweep re-enqueues jobs left in ``uploaded`` and fails jobs
    left in ``processing``, which gives at-least-once delivery per job.
    """

    def __init__(self, client: "redis.Redis", *, key_prefix: str = "streamhub:queue:") -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, timeout_seconds: float = 5.0) -> "RedisJobQueue":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        return cls(client)

    def _key(self, queue_name: str) -> str:
        return f"{self._key_prefix}{queue_name}"

    def enqueue(self, task: ProcessingTask) -> str:
        typed_task = coerce_task(task)
        queue_name, envelope = build_envelope(typed_task)
        safe_job_id = safe_log_identifier(typed_task.job_id, prefix="jid")
        try:
            self._client.lpush(self._key(queue_name), envelope.model_dump_json())
        except redis.exceptions.RedisError as exc:
            logger.warning(
                "queue.enqueue_failed backend=redis queue=%s job_id=%s reason=%s",
                queue_name,
                safe_job_id,
                type(exc).__name__,
            )
            raise QueueUnavailableError(f"Redis rejected task for {queue_name}", cause=exc) from exc

        logger.info(
            "queue.enqueued backend=redis queue=%s job_id=%s queue_task_id=%s",
            queue_name,
            safe_job_id,
            envelope.queue_task_id,
        )
        return envelope.queue_task_id

    def dequeue(self, queue_names: list[str], *, timeout_seconds: float = 2.0) -> TaskEnvelope | None:
        keys = [self._key(name) for name in queue_names]
        try:
            item = self._client.brpop(keys, timeout=max(1, int(timeout_seconds)))
        except redis.exceptions.RedisError as exc:
            raise QueueUnavailableError("Redis dequeue failed", cause=exc) from exc
        if item is None:
            return None

        _, raw = item
        try:
            return TaskEnvelope.model_validate_json(raw)
        except ValidationError as exc:
            raise TaskValidationError("Discarded malformed task envelope") from exc
