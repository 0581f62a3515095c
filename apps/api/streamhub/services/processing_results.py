"""Worker-facing job lifecycle operations: claim, progress, terminal result."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import logging

from streamhub.core.logging_safety import safe_log_identifier
from streamhub.repositories.base import CatalogRepository, TransitionResult, UploadJobRepository
from streamhub.schemas.upload import UploadStatus
from streamhub.services.reconciliation import CatalogReconciler

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "processing failed"
DEFAULT_RECLAIM_AFTER = timedelta(minutes=30)


class ProcessingResultService:
    """Applies worker reports to the job store, then to the catalog.

    Every mutation is a compare-and-set, so duplicate or late reports from
    re-delivered tasks resolve to no-ops instead of errors.
    """

    def __init__(
        self,
        store: UploadJobRepository,
        catalog: CatalogRepository,
        *,
        reclaim_after: timedelta = DEFAULT_RECLAIM_AFTER,
    ) -> None:
        self._store = store
        self._reconciler = CatalogReconciler(catalog)
        self._reclaim_after = reclaim_after

    def claim(self, job_id: str) -> bool:
        """Move ``uploaded -> processing``.

        A job already ``processing`` is reclaimed only once it has had no
        progress for ``reclaim_after``, which covers a worker that crashed
        mid-task. A fresher job belongs to a live worker and is skipped.
        """
        safe_job_id = safe_log_identifier(job_id, prefix="jid")
        result = self._store.transition_upload_job(
            job_id,
            from_status=UploadStatus.UPLOADED,
            to_status=UploadStatus.PROCESSING,
        )
        if result is TransitionResult.APPLIED:
            logger.info("worker.claimed job_id=%s", safe_job_id)
            return True

        current = self._store.get_upload_job(job_id)
        if current is not None and current.status is UploadStatus.PROCESSING:
            if current.updated_at > datetime.now(UTC) - self._reclaim_after:
                logger.info("worker.skipped_in_flight job_id=%s", safe_job_id)
                return False
            # The self-transition refreshes updated_at so a concurrent copy sees the job as live.
            reclaimed = self._store.transition_upload_job(
                job_id,
                from_status=UploadStatus.PROCESSING,
                to_status=UploadStatus.PROCESSING,
            )
            if reclaimed is TransitionResult.APPLIED:
                logger.info("worker.reclaimed job_id=%s", safe_job_id)
                return True
            current = self._store.get_upload_job(job_id)

        logger.info(
            "worker.skipped job_id=%s status=%s",
            safe_job_id,
            current.status.value if current is not None else "missing",
        )
        return False

    def report_progress(self, job_id: str, percent: int) -> bool:
        applied = self._store.set_upload_progress(job_id, percent)
        if not applied:
            logger.debug(
                "worker.progress_ignored job_id=%s percent=%s",
                safe_log_identifier(job_id, prefix="jid"),
                percent,
            )
        return applied

    def report_completed(self, job_id: str, processed_url: str) -> TransitionResult:
        safe_job_id = safe_log_identifier(job_id, prefix="jid")
        result = self._store.transition_upload_job(
            job_id,
            from_status=UploadStatus.PROCESSING,
            to_status=UploadStatus.COMPLETED,
            fields={"processed_url": processed_url, "progress": 100},
        )
        if result is TransitionResult.CONFLICT:
            logger.info("worker.completion_ignored job_id=%s", safe_job_id)
            return result

        # Only the caller that won the transition writes the catalog.
        job = self._store.get_upload_job(job_id)
        if job is not None:
            self._reconciler.apply_processed_url(job, processed_url)
        logger.info("worker.completed job_id=%s", safe_job_id)
        return result

    def report_failed(self, job_id: str, error_message: str) -> TransitionResult:
        reason = error_message.strip() or DEFAULT_FAILURE_REASON
        result = self._store.transition_upload_job(
            job_id,
            from_status=UploadStatus.PROCESSING,
            to_status=UploadStatus.FAILED,
            fields={"error_message": reason},
        )
        logger.info(
            "worker.%s job_id=%s",
            "failed" if result is TransitionResult.APPLIED else "failure_ignored",
            safe_log_identifier(job_id, prefix="jid"),
        )
        return result
