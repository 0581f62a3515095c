"""Catalog reconciliation of processing results."""

from __future__ import annotations

import logging

from streamhub.core.logging_safety import safe_log_identifier
from streamhub.repositories.base import CatalogRepository, UploadJobRecord
from streamhub.schemas.upload import FileKind

logger = logging.getLogger(__name__)


class CatalogReconciler:
    """Writes a processed media URL onto the record that owns the upload."""

    def __init__(self, catalog: CatalogRepository) -> None:
        self._catalog = catalog

    def apply_processed_url(self, job: UploadJobRecord, processed_url: str) -> bool:
        """Return ``False`` when the owning record no longer exists.

        Content can be deleted while its video is still processing; the
        completed job is then kept and the catalog is left without the row.
        """
        if job.file_type is FileKind.VIDEO:
            if job.episode_id:
                target = ("episode", job.episode_id)
                written = self._catalog.set_episode_video_url(job.episode_id, processed_url)
            else:
                target = ("content", job.content_id)
                written = self._catalog.set_content_media_url(
                    job.content_id or "",
                    field_name="video_url",
                    url=processed_url,
                )
        elif job.file_type is FileKind.POSTER:
            target = ("content", job.content_id)
            written = self._catalog.set_content_media_url(
                job.content_id or "",
                field_name="poster_url",
                url=processed_url,
            )
        else:
            target = ("user", job.user_id)
            written = self._catalog.set_user_avatar_url(job.user_id, processed_url)

        safe_job_id = safe_log_identifier(job.job_id, prefix="jid")
        if not written:
            logger.warning(
                "catalog.target_missing job_id=%s target=%s target_id=%s",
                safe_job_id,
                target[0],
                safe_log_identifier(target[1], prefix="tid"),
            )
            return False

        logger.info("catalog.updated job_id=%s target=%s file_type=%s", safe_job_id, target[0], job.file_type.value)
        return True
