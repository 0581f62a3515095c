"""Task handling for the processing worker."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
import logging

from streamhub.adapters.queue.base import coerce_task
from streamhub.adapters.storage import ObjectStorage, StorageError
from streamhub.core.logging_safety import safe_log_identifier
from streamhub.repositories.base import TransitionResult
from streamhub.schemas.tasks import AvatarTask, ProcessingTask, TaskEnvelope
from streamhub.services.processing_results import ProcessingResultService

logger = logging.getLogger(__name__)

ProgressReporter = Callable[[int], None]


class ProcessingError(Exception):
    """The media could not be processed; the job is failed with this message."""


class MediaProcessor(ABC):
    """External transcoder/resizer interface."""

    @abstractmethod
    def process(self, task: ProcessingTask, report_progress: ProgressReporter) -> str:
        """Process the uploaded object and return the public URL of the result."""


class PassthroughProcessor(MediaProcessor):
    """Reference processor: images are served as uploaded, videos from the HLS path."""

    def process(self, task: ProcessingTask, report_progress: ProgressReporter) -> str:
        report_progress(50)
        if task.kind != "video":
            return task.upload_url
        return task.upload_url.replace("/videos/", "/hls/").rsplit(".", 1)[0] + ".m3u8"


class HandleOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TaskHandler:
    """Runs one task through claim, processing and result reporting.

    Safe to call again with a re-delivered task: a terminal job is skipped and
    the catalog is written only by the report that wins the completion.
    """

    def __init__(
        self,
        results: ProcessingResultService,
        processor: MediaProcessor,
        storage: ObjectStorage | None = None,
    ) -> None:
        self._results = results
        self._processor = processor
        self._storage = storage

    def handle(self, task: ProcessingTask | TaskEnvelope | dict) -> HandleOutcome:
        if isinstance(task, TaskEnvelope):
            task = task.task
        elif isinstance(task, dict):
            task = coerce_task(task)

        safe_job_id = safe_log_identifier(task.job_id, prefix="jid")
        if not self._results.claim(task.job_id):
            return HandleOutcome.SKIPPED

        def report_progress(percent: int) -> None:
            self._results.report_progress(task.job_id, percent)

        try:
            processed_url = self._processor.process(task, report_progress)
        except ProcessingError as exc:
            logger.warning("worker.processing_failed job_id=%s reason=%s", safe_job_id, exc)
            self._results.report_failed(task.job_id, str(exc))
            return HandleOutcome.FAILED
        except Exception as exc:
            logger.exception("worker.processing_crashed job_id=%s", safe_job_id)
            self._results.report_failed(task.job_id, f"unexpected processing error: {type(exc).__name__}")
            return HandleOutcome.FAILED

        result = self._results.report_completed(task.job_id, processed_url)
        if result is not TransitionResult.APPLIED:
            return HandleOutcome.SKIPPED

        if isinstance(task, AvatarTask):
            self._delete_previous_avatar(task, processed_url)
        return HandleOutcome.COMPLETED

    def _delete_previous_avatar(self, task: AvatarTask, processed_url: str) -> None:
        if self._storage is None or not task.old_avatar_url or task.old_avatar_url == processed_url:
            return
        key = self._storage.key_from_url(task.old_avatar_url)
        if key is None:
            # Default avatars are served by the web app, not the bucket.
            return
        try:
            self._storage.delete_object(key)
        except StorageError as exc:
            logger.warning(
                "worker.old_avatar_delete_failed job_id=%s reason=%s",
                safe_log_identifier(task.job_id, prefix="jid"),
                exc,
            )
