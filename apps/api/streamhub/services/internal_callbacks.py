"""Internal callback service layer for out-of-process workers."""

from dataclasses import dataclass
from datetime import timedelta
import logging

from streamhub.core.logging_safety import safe_log_identifier
from streamhub.errors import not_found
from streamhub.repositories.base import CatalogRepository, TransitionResult, UploadJobRepository
from streamhub.schemas.internal import ResultCallbackRequest
from streamhub.schemas.upload import UploadStatus
from streamhub.services.processing_results import DEFAULT_RECLAIM_AFTER, ProcessingResultService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CallbackProcessResult:
    applied: bool
    current_status: UploadStatus
    progress: int


class InternalCallbackService:
    def __init__(
        self,
        store: UploadJobRepository,
        catalog: CatalogRepository,
        *,
        reclaim_after: timedelta = DEFAULT_RECLAIM_AFTER,
    ) -> None:
        self._store = store
        self._results = ProcessingResultService(store, catalog, reclaim_after=reclaim_after)

    def process_claim(self, *, job_id: str, correlation_id: str) -> CallbackProcessResult:
        self._require_job(job_id, correlation_id=correlation_id, kind="claim")
        claimed = self._results.claim(job_id)
        return self._result(job_id, applied=claimed)

    def process_progress(self, *, job_id: str, progress: int, correlation_id: str) -> CallbackProcessResult:
        self._require_job(job_id, correlation_id=correlation_id, kind="progress")
        applied = self._results.report_progress(job_id, progress)
        return self._result(job_id, applied=applied)

    def process_result(
        self,
        *,
        job_id: str,
        payload: ResultCallbackRequest,
        correlation_id: str,
    ) -> CallbackProcessResult:
        self._require_job(job_id, correlation_id=correlation_id, kind="result")
        if payload.status == "completed":
            outcome = self._results.report_completed(job_id, payload.processed_url or "")
        else:
            outcome = self._results.report_failed(job_id, payload.error_message or "")

        result = self._result(job_id, applied=outcome is TransitionResult.APPLIED)
        logger.info(
            "callback.%s correlation_id=%s job_id=%s reported=%s current_status=%s",
            "applied" if result.applied else "ignored",
            safe_log_identifier(correlation_id, prefix="cid"),
            safe_log_identifier(job_id, prefix="jid"),
            payload.status,
            result.current_status.value,
        )
        return result

    def _require_job(self, job_id: str, *, correlation_id: str, kind: str) -> None:
        if self._store.get_upload_job(job_id) is None:
            logger.warning(
                "callback.rejected correlation_id=%s job_id=%s kind=%s code=RESOURCE_NOT_FOUND",
                safe_log_identifier(correlation_id, prefix="cid"),
                safe_log_identifier(job_id, prefix="jid"),
                kind,
            )
            raise not_found()

    def _result(self, job_id: str, *, applied: bool) -> CallbackProcessResult:
        job = self._store.get_upload_job(job_id)
        if job is None:
            raise not_found()
        return CallbackProcessResult(applied=applied, current_status=job.status, progress=job.progress)
