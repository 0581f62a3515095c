"""Reconciliation sweep for uploads stranded between systems."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
import logging

from streamhub.adapters.queue import JobQueue, QueueUnavailableError, TaskValidationError
from streamhub.errors import StoreUnavailableError
from streamhub.core.logging_safety import safe_log_identifier
from streamhub.repositories.base import CatalogRepository, TransitionResult, UploadJobRepository
from streamhub.schemas.upload import UploadStatus
from streamhub.services.upload_completion import build_processing_task

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "processing timed out"


@dataclass(slots=True)
class SweepReport:
    requeued: list[str] = field(default_factory=list)
    timed_out: list[str] = field(default_factory=list)
    requeue_failed: list[str] = field(default_factory=list)


class UploadSweeper:
    """Re-enqueues ``uploaded`` jobs that never got dispatched and fails stale ``processing`` jobs.

    Both passes are safe to run concurrently with workers: a re-enqueued job
    is claimed at most once, and a timed-out job rejects late worker reports.
    """

    def __init__(
        self,
        store: UploadJobRepository,
        catalog: CatalogRepository,
        queue: JobQueue,
        *,
        stranded_after: timedelta,
        stale_after: timedelta,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._queue = queue
        self._stranded_after = stranded_after
        self._stale_after = stale_after

    def run(self, *, now: datetime | None = None) -> SweepReport:
        now = now or datetime.now(UTC)
        report = SweepReport()
        self.requeue_stranded(report, older_than=now - self._stranded_after)
        self.fail_stale(report, older_than=now - self._stale_after)
        logger.info(
            "sweep.finished requeued=%s timed_out=%s requeue_failed=%s",
            len(report.requeued),
            len(report.timed_out),
            len(report.requeue_failed),
        )
        return report

    def requeue_stranded(self, report: SweepReport, *, older_than: datetime) -> None:
        for job in self._store.list_upload_jobs_by_status(UploadStatus.UPLOADED, updated_before=older_than):
            safe_job_id = safe_log_identifier(job.job_id, prefix="jid")
            try:
                task = build_processing_task(job, self._catalog)
                queue_task_id = self._queue.enqueue(task)
            except TaskValidationError as exc:
                logger.warning("sweep.requeue_invalid job_id=%s reason=%s", safe_job_id, exc)
                report.requeue_failed.append(job.job_id)
                continue
            except QueueUnavailableError:
                logger.warning("sweep.requeue_aborted job_id=%s code=QUEUE_UNAVAILABLE", safe_job_id)
                report.requeue_failed.append(job.job_id)
                break

            report.requeued.append(job.job_id)
            try:
                self._store.record_queue_task(job.job_id, queue_task_id)
            except StoreUnavailableError as exc:
                logger.warning("sweep.queue_task_unrecorded job_id=%s reason=%s", safe_job_id, exc)
                continue
            logger.info("sweep.requeued job_id=%s queue_task_id=%s", safe_job_id, queue_task_id)

    def fail_stale(self, report: SweepReport, *, older_than: datetime) -> None:
        for job in self._store.list_upload_jobs_by_status(UploadStatus.PROCESSING, updated_before=older_than):
            result = self._store.transition_upload_job(
                job.job_id,
                from_status=UploadStatus.PROCESSING,
                to_status=UploadStatus.FAILED,
                fields={"error_message": TIMEOUT_REASON},
            )
            if result is TransitionResult.APPLIED:
                report.timed_out.append(job.job_id)
                logger.info("sweep.timed_out job_id=%s", safe_log_identifier(job.job_id, prefix="jid"))
