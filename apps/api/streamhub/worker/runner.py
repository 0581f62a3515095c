"""Command-line entrypoint for the reference processing worker."""

from __future__ import annotations

from datetime import timedelta
import logging
import signal
import threading

from streamhub.core.backends import build_queue, build_storage, build_store
from streamhub.core.config import get_settings
from streamhub.services.processing_results import ProcessingResultService
from streamhub.worker.handler import PassthroughProcessor, TaskHandler
from streamhub.worker.loop import WorkerLoop

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    settings = get_settings()
    if settings.store_backend == "memory" or settings.queue_backend == "memory":
        logger.warning("worker.non_shared_backends store=%s queue=%s", settings.store_backend, settings.queue_backend)

    store = build_store(settings)
    handler = TaskHandler(
        ProcessingResultService(
            store,
            store,
            reclaim_after=timedelta(seconds=settings.reclaim_processing_seconds),
        ),
        PassthroughProcessor(),
        storage=build_storage(settings),
    )
    loop = WorkerLoop(build_queue(settings), handler, poll_seconds=settings.queue_timeout_seconds / 2)

    stop_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop_event.set())
    signal.signal(signal.SIGINT, lambda *_: stop_event.set())
    loop.run(stop_event)


if __name__ == "__main__":
    main()
