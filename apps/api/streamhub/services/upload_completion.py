"""Upload completion orchestration: the single gate between upload and processing."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from streamhub.adapters.queue import JobQueue, QueueUnavailableError, TaskValidationError
from streamhub.adapters.queue.base import coerce_task
from streamhub.core.logging_safety import safe_log_identifier, safe_log_url
from streamhub.errors import ApiError, StoreUnavailableError, not_found
from streamhub.repositories.base import (
    CatalogRepository,
    TransitionResult,
    UploadJobRecord,
    UploadJobRepository,
)
from streamhub.schemas.auth import AuthPrincipal
from streamhub.schemas.tasks import ProcessingTask
from streamhub.schemas.upload import FileKind, UploadStatus
from streamhub.services.uploads import ensure_can_act

logger = logging.getLogger(__name__)

# Progress shown to pollers as soon as the bytes are confirmed.
UPLOADED_PROGRESS = 5


@dataclass(slots=True)
class CompleteUploadOutcome:
    job_id: str
    status: UploadStatus
    queue_task_id: str | None = None
    already_processed: bool = False


def build_processing_task(record: UploadJobRecord, catalog: CatalogRepository) -> ProcessingTask:
    """Build the kind-specific task for a job; raises ``TaskValidationError`` on a bad target."""
    payload: dict[str, object] = {
        "kind": record.file_type.value,
        "job_id": record.job_id,
        "user_id": record.user_id,
        "original_filename": record.original_filename,
        "file_size": record.file_size,
        "upload_url": record.upload_url,
    }
    if record.file_type is FileKind.VIDEO:
        payload["content_id"] = record.content_id
        payload["episode_id"] = record.episode_id
    elif record.file_type is FileKind.POSTER:
        payload["content_id"] = record.content_id
    elif record.file_type is FileKind.AVATAR:
        profile = catalog.get_user(record.user_id)
        payload["old_avatar_url"] = profile.avatar_url if profile is not None else None
    return coerce_task(payload)


class UploadCompletionService:
    def __init__(self, store: UploadJobRepository, catalog: CatalogRepository, queue: JobQueue) -> None:
        self._store = store
        self._catalog = catalog
        self._queue = queue

    def complete_upload(
        self,
        *,
        principal: AuthPrincipal,
        job_id: str,
        reported_file_url: str,
    ) -> CompleteUploadOutcome:
        safe_job_id = safe_log_identifier(job_id, prefix="jid")
        record = self._store.get_upload_job(job_id)
        if record is None:
            logger.warning("complete.rejected job_id=%s code=RESOURCE_NOT_FOUND", safe_job_id)
            raise not_found()

        try:
            ensure_can_act(principal, record)
        except ApiError:
            logger.warning(
                "complete.rejected job_id=%s principal_id=%s code=FORBIDDEN",
                safe_job_id,
                safe_log_identifier(principal.user_id, prefix="pid"),
            )
            raise

        if record.status is not UploadStatus.PENDING:
            logger.info("complete.already_processed job_id=%s status=%s", safe_job_id, record.status.value)
            return CompleteUploadOutcome(job_id=record.job_id, status=record.status, already_processed=True)

        if record.upload_url != reported_file_url:
            logger.warning(
                "complete.rejected job_id=%s code=UPLOAD_URL_MISMATCH expected=%s reported=%s",
                safe_job_id,
                safe_log_url(record.upload_url),
                safe_log_url(reported_file_url),
            )
            raise ApiError(
                status_code=400,
                code="UPLOAD_URL_MISMATCH",
                message="Reported file URL does not match the registered upload location.",
            )

        task = self._build_task(record)

        try:
            result = self._store.transition_upload_job(
                record.job_id,
                from_status=UploadStatus.PENDING,
                to_status=UploadStatus.UPLOADED,
                fields={"progress": UPLOADED_PROGRESS},
            )
        except StoreUnavailableError as exc:
            logger.warning("complete.store_unavailable job_id=%s reason=%s", safe_job_id, exc)
            raise ApiError(
                status_code=503,
                code="STORE_UNAVAILABLE",
                message="Upload job store is unavailable; retry the request.",
                details={"retryable": True},
            ) from exc

        if result is TransitionResult.CONFLICT:
            # Lost the race to a concurrent completion of the same job.
            current = self._store.get_upload_job(record.job_id)
            current_status = current.status if current is not None else UploadStatus.UPLOADED
            logger.info("complete.already_processed job_id=%s status=%s race=true", safe_job_id, current_status.value)
            return CompleteUploadOutcome(job_id=record.job_id, status=current_status, already_processed=True)

        try:
            queue_task_id = self._queue.enqueue(task)
        except QueueUnavailableError as exc:
            # The job stays UPLOADED; the reconciliation sweep re-enqueues it.
            logger.warning(
                "complete.dispatch_failed job_id=%s code=QUEUE_UNAVAILABLE reason=%s",
                safe_job_id,
                type(exc.cause or exc).__name__,
            )
            raise ApiError(
                status_code=503,
                code="QUEUE_UNAVAILABLE",
                message="Processing queue is unavailable; the upload was recorded and will be retried.",
                details={"job_id": record.job_id, "status": UploadStatus.UPLOADED.value, "retryable": True},
            ) from exc

        try:
            self._store.record_queue_task(record.job_id, queue_task_id)
        except StoreUnavailableError as exc:
            logger.warning("complete.queue_task_unrecorded job_id=%s reason=%s", safe_job_id, exc)

        logger.info(
            "complete.dispatched job_id=%s file_type=%s queue_task_id=%s",
            safe_job_id,
            record.file_type.value,
            queue_task_id,
        )
        return CompleteUploadOutcome(
            job_id=record.job_id,
            status=UploadStatus.UPLOADED,
            queue_task_id=queue_task_id,
        )

    def _build_task(self, record: UploadJobRecord) -> ProcessingTask:
        if record.file_type is FileKind.POSTER and not record.content_id:
            raise ApiError(
                status_code=400,
                code="INVALID_UPLOAD_TARGET",
                message="Poster uploads require a content id.",
            )
        if record.file_type is FileKind.VIDEO and not (record.content_id or record.episode_id):
            raise ApiError(
                status_code=400,
                code="INVALID_UPLOAD_TARGET",
                message="Video uploads require a content id or an episode id.",
            )
        try:
            return build_processing_task(record, self._catalog)
        except TaskValidationError as exc:
            raise ApiError(status_code=400, code="VALIDATION_ERROR", message=str(exc)) from exc
