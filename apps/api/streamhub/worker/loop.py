"""Polling loop that feeds queued tasks to a ``TaskHandler``."""

from __future__ import annotations

import logging
import threading

from streamhub.adapters.queue import IMAGE_QUEUE, VIDEO_QUEUE, JobQueue, QueueUnavailableError, TaskValidationError
from streamhub.errors import StoreUnavailableError
from streamhub.worker.handler import HandleOutcome, TaskHandler

logger = logging.getLogger(__name__)

# Images are small and user-facing, so they are drained first.
DEFAULT_QUEUE_NAMES = (IMAGE_QUEUE, VIDEO_QUEUE)


class WorkerLoop:
    def __init__(
        self,
        queue: JobQueue,
        handler: TaskHandler,
        *,
        queue_names: tuple[str, ...] = DEFAULT_QUEUE_NAMES,
        poll_seconds: float = 2.0,
        backoff_seconds: float = 5.0,
    ) -> None:
        self._queue = queue
        self._handler = handler
        self._queue_names = list(queue_names)
        self._poll_seconds = poll_seconds
        self._backoff_seconds = backoff_seconds

    def run_once(self) -> HandleOutcome | None:
        """Handle at most one task; ``None`` when the queue stayed empty."""
        envelope = self._queue.dequeue(self._queue_names, timeout_seconds=self._poll_seconds)
        if envelope is None:
            return None
        logger.info("worker.received queue_task_id=%s name=%s", envelope.queue_task_id, envelope.name)
        return self._handler.handle(envelope)

    def run(self, stop_event: threading.Event) -> None:
        logger.info("worker.started queues=%s", ",".join(self._queue_names))
        while not stop_event.is_set():
            try:
                self.run_once()
            except TaskValidationError as exc:
                logger.warning("worker.dropped_invalid_task reason=%s", exc)
            except QueueUnavailableError as exc:
                logger.warning("worker.queue_unavailable reason=%s backoff_seconds=%s", exc, self._backoff_seconds)
                stop_event.wait(self._backoff_seconds)
            except StoreUnavailableError as exc:
                # The popped task is lost; the sweep re-enqueues or times out its job.
                logger.warning("worker.store_unavailable reason=%s backoff_seconds=%s", exc, self._backoff_seconds)
                stop_event.wait(self._backoff_seconds)
        logger.info("worker.stopped")
