"""Upload job registration and status queries.

The pre-signed URL issuer runs outside this service and imports
:meth:`UploadJobService.register_upload` to record the ``pending`` job for each
slot it hands out, so the extension, size and role rules below are enforced at
the moment an upload URL is issued. No HTTP route registers jobs directly.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from streamhub.core.logging_safety import safe_log_identifier
from streamhub.errors import ApiError, forbidden, not_found
from streamhub.repositories.base import UploadJobRecord, UploadJobRepository
from streamhub.schemas.auth import AuthPrincipal
from streamhub.schemas.upload import FileKind, UploadJob, UploadJobStatus

logger = logging.getLogger(__name__)

_MB = 1024 * 1024
_GB = 1024 * _MB

_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})
_VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mkv"})

_UPLOAD_RULES: dict[FileKind, tuple[frozenset[str], int]] = {
    FileKind.VIDEO: (_VIDEO_EXTENSIONS, 5 * _GB),
    FileKind.POSTER: (_IMAGE_EXTENSIONS, 10 * _MB),
    FileKind.AVATAR: (_IMAGE_EXTENSIONS, 5 * _MB),
}
_ADMIN_ONLY_KINDS = frozenset({FileKind.VIDEO, FileKind.POSTER})


def ensure_can_act(principal: AuthPrincipal, record: UploadJobRecord) -> None:
    """Owners may act on their own jobs and admins on any job."""
    if record.user_id != principal.user_id and not principal.is_admin:
        raise forbidden()


def to_upload_job(record: UploadJobRecord) -> UploadJob:
    return UploadJob(
        job_id=record.job_id,
        user_id=record.user_id,
        content_id=record.content_id,
        episode_id=record.episode_id,
        file_type=record.file_type,
        original_filename=record.original_filename,
        file_size=record.file_size,
        upload_url=record.upload_url,
        processed_url=record.processed_url,
        status=record.status,
        progress=record.progress,
        error_message=record.error_message,
        queue_task_id=record.queue_task_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class UploadJobService:
    def __init__(self, store: UploadJobRepository) -> None:
        self._store = store

    def register_upload(
        self,
        *,
        principal: AuthPrincipal,
        file_type: FileKind,
        original_filename: str,
        file_size: int,
        upload_url: str,
        content_id: str | None = None,
        episode_id: str | None = None,
    ) -> UploadJob:
        """Record a ``pending`` job for an upload slot the URL issuer just handed out.

        ``upload_url`` must come from the issuer, never from the client: it is
        what ``complete_upload`` later compares the reported URL against.
        """
        allowed_extensions, max_size = _UPLOAD_RULES[file_type]
        extension = PurePosixPath(original_filename).suffix.lower()
        if extension not in allowed_extensions:
            raise ApiError(
                status_code=400,
                code="VALIDATION_ERROR",
                message="File type is not allowed for this upload kind.",
                details={"file_type": file_type, "allowed_extensions": sorted(allowed_extensions)},
            )
        if file_size <= 0 or file_size > max_size:
            raise ApiError(
                status_code=400,
                code="VALIDATION_ERROR",
                message="File size is outside the allowed range.",
                details={"file_type": file_type, "max_size": max_size},
            )
        if file_type in _ADMIN_ONLY_KINDS and not principal.is_admin:
            raise forbidden()

        record = self._store.create_upload_job(
            user_id=principal.user_id,
            file_type=file_type,
            original_filename=original_filename,
            file_size=file_size,
            upload_url=upload_url,
            content_id=content_id,
            episode_id=episode_id,
        )
        logger.info(
            "upload.registered job_id=%s owner_id=%s file_type=%s",
            safe_log_identifier(record.job_id, prefix="jid"),
            safe_log_identifier(record.user_id, prefix="pid"),
            record.file_type.value,
        )
        return to_upload_job(record)

    def get_status(self, *, principal: AuthPrincipal, job_id: str) -> UploadJobStatus:
        record = self._store.get_upload_job(job_id)
        if record is None:
            raise not_found()
        ensure_can_act(principal, record)

        return UploadJobStatus(
            job_id=record.job_id,
            status=record.status,
            progress=record.progress,
            processed_url=record.processed_url,
            error_message=record.error_message,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def list_jobs(self, *, principal: AuthPrincipal) -> list[UploadJob]:
        return [to_upload_job(record) for record in self._store.list_upload_jobs_for_owner(principal.user_id)]
