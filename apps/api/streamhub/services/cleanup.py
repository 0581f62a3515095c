"""Best-effort storage cleanup on content and content media deletion."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from streamhub.adapters.storage import ObjectStorage, StorageError
from streamhub.core.logging_safety import safe_log_identifier
from streamhub.errors import not_found
from streamhub.repositories.base import CONTENT_MEDIA_FIELDS, CatalogRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CleanupReport:
    content_id: str
    deleted_keys: list[str] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)


def content_prefixes(content_id: str) -> tuple[str, ...]:
    return (video_upload_prefix(content_id), f"uploads/posters/{content_id}/")


def video_upload_prefix(content_id: str) -> str:
    return f"uploads/videos/{content_id}/"


class ContentCleanupService:
    """Deletes a content row, or one of its media fields, after removing the objects behind it.

    Storage failures are logged and reported but never stop the catalog
    write; orphaned objects are an accepted outcome. Upload jobs that
    still target the content are left as they are.
    """

    def __init__(self, catalog: CatalogRepository, storage: ObjectStorage) -> None:
        self._catalog = catalog
        self._storage = storage

    def delete_content(self, *, content_id: str) -> CleanupReport:
        content = self._catalog.get_content(content_id)
        if content is None:
            raise not_found()

        safe_content_id = safe_log_identifier(content_id, prefix="cnt")
        urls = [content.poster_url, content.backdrop_url, content.video_url]
        urls.extend(episode.video_url for episode in self._catalog.list_episodes_for_content(content_id))
        keys = self._keys_for_urls(urls, safe_content_id=safe_content_id)
        for prefix in content_prefixes(content_id):
            keys.extend(self._list_prefix(prefix, safe_content_id=safe_content_id))

        report = self._delete_keys(content_id, keys, safe_content_id=safe_content_id)
        self._catalog.delete_content(content_id)
        logger.info(
            "cleanup.content_deleted content_id=%s deleted=%s failed=%s",
            safe_content_id,
            len(report.deleted_keys),
            len(report.failed_keys),
        )
        return report

    def clear_content_media(self, *, content_id: str, field_name: str) -> CleanupReport:
        """Delete the objects behind one media field, then null the field.

        Clearing ``video_url`` also removes the raw uploads under
        ``uploads/videos/{content_id}/``.
        """
        if field_name not in CONTENT_MEDIA_FIELDS:
            raise ValueError(f"Unsupported content media field: {field_name}")
        content = self._catalog.get_content(content_id)
        if content is None:
            raise not_found()

        safe_content_id = safe_log_identifier(content_id, prefix="cnt")
        keys = self._keys_for_urls([getattr(content, field_name)], safe_content_id=safe_content_id)
        if field_name == "video_url":
            keys.extend(self._list_prefix(video_upload_prefix(content_id), safe_content_id=safe_content_id))

        report = self._delete_keys(content_id, keys, safe_content_id=safe_content_id)
        self._catalog.set_content_media_url(content_id, field_name=field_name, url=None)
        logger.info(
            "cleanup.media_cleared content_id=%s field=%s deleted=%s failed=%s",
            safe_content_id,
            field_name,
            len(report.deleted_keys),
            len(report.failed_keys),
        )
        return report

    def _keys_for_urls(self, urls: list[str | None], *, safe_content_id: str) -> list[str]:
        keys: list[str] = []
        for url in urls:
            if not url:
                continue
            key = self._storage.key_from_url(url)
            if key is None:
                logger.warning("cleanup.foreign_url content_id=%s", safe_content_id)
                continue
            keys.append(key)
        return keys

    def _list_prefix(self, prefix: str, *, safe_content_id: str) -> list[str]:
        try:
            return self._storage.list_keys(prefix)
        except StorageError as exc:
            logger.warning("cleanup.list_failed content_id=%s prefix=%s reason=%s", safe_content_id, prefix, exc)
            return []

    def _delete_keys(self, content_id: str, keys: list[str], *, safe_content_id: str) -> CleanupReport:
        report = CleanupReport(content_id=content_id)
        for key in dict.fromkeys(keys):
            try:
                self._storage.delete_object(key)
            except StorageError as exc:
                logger.warning("cleanup.delete_failed content_id=%s key=%s reason=%s", safe_content_id, key, exc)
                report.failed_keys.append(key)
            else:
                report.deleted_keys.append(key)
        return report
