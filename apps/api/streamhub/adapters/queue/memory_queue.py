"""In-process job queue for local development and tests."""

from __future__ import annotations

from collections import deque
import logging
import threading

from streamhub.adapters.queue.base import JobQueue, QueueUnavailableError, build_envelope, coerce_task
from streamhub.core.logging_safety import safe_log_identifier
from streamhub.schemas.tasks import ProcessingTask, TaskEnvelope

logger = logging.getLogger(__name__)


class InMemoryJobQueue(JobQueue):
    def __init__(self) -> None:
        self.queues: dict[str, deque[TaskEnvelope]] = {}
        self.enqueued: list[TaskEnvelope] = []
        # One-shot failpoint: the next enqueue raises QueueUnavailableError with this message.
        self.failure_message: str | None = None
        self._cond = threading.Condition()

    def enqueue(self, task: ProcessingTask) -> str:
        typed_task = coerce_task(task)
        with self._cond:
            if self.failure_message is not None:
                message = self.failure_message
                self.failure_message = None
                raise QueueUnavailableError(message)

            queue_name, envelope = build_envelope(typed_task)
            self.queues.setdefault(queue_name, deque()).append(envelope)
            self.enqueued.append(envelope)
            self._cond.notify_all()

        logger.info(
            "queue.enqueued backend=memory queue=%s job_id=%s queue_task_id=%s",
            queue_name,
            safe_log_identifier(typed_task.job_id, prefix="jid"),
            envelope.queue_task_id,
        )
        return envelope.queue_task_id

    def dequeue(self, queue_names: list[str], *, timeout_seconds: float = 2.0) -> TaskEnvelope | None:
        with self._cond:
            found = self._cond.wait_for(lambda: self._pop_first(queue_names, peek=True), timeout=timeout_seconds)
            if not found:
                return None
            return self._pop_first(queue_names)

    def _pop_first(self, queue_names: list[str], *, peek: bool = False) -> TaskEnvelope | None:
        for name in queue_names:
            queue = self.queues.get(name)
            if queue:
                return queue[0] if peek else queue.popleft()
        return None
