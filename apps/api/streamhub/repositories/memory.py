"""In-memory repositories used by local development and tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
import threading
from typing import Any
from uuid import uuid4

from streamhub.domain.job_fsm import ensure_edge, is_terminal
from streamhub.errors import StoreUnavailableError
from streamhub.repositories.base import (
    CONTENT_MEDIA_FIELDS,
    CatalogRepository,
    ContentRecord,
    EpisodeRecord,
    TransitionResult,
    UploadJobRecord,
    UploadJobRepository,
    UserProfileRecord,
    clamp_progress,
    validate_transition_fields,
)
from streamhub.schemas.upload import FileKind, UploadStatus


@dataclass(slots=True)
class InMemoryStore(UploadJobRepository, CatalogRepository):
    """Simple, deterministic persistence layer guarded by a single lock.

    Readers always receive copies so that status changes can only happen
    through :meth:`transition_upload_job` and :meth:`set_upload_progress`.
    """

    upload_jobs: dict[str, UploadJobRecord] = field(default_factory=dict)
    contents: dict[str, ContentRecord] = field(default_factory=dict)
    episodes: dict[str, EpisodeRecord] = field(default_factory=dict)
    users: dict[str, UserProfileRecord] = field(default_factory=dict)
    upload_job_write_count: int = 0
    catalog_write_count: int = 0
    # One-shot failpoint: the next write raises StoreUnavailableError with this message.
    unavailable_message: str | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create_upload_job(
        self,
        *,
        user_id: str,
        file_type: FileKind,
        original_filename: str,
        file_size: int,
        upload_url: str,
        content_id: str | None = None,
        episode_id: str | None = None,
    ) -> UploadJobRecord:
        now = datetime.now(UTC)
        job = UploadJobRecord(
            job_id=str(uuid4()),
            user_id=user_id,
            file_type=file_type,
            original_filename=original_filename,
            file_size=file_size,
            upload_url=upload_url,
            status=UploadStatus.PENDING,
            progress=0,
            created_at=now,
            updated_at=now,
            content_id=content_id,
            episode_id=episode_id,
        )
        with self._lock:
            self._maybe_raise_unavailable()
            self.upload_jobs[job.job_id] = job
            self.upload_job_write_count += 1
        return replace(job)

    def get_upload_job(self, job_id: str) -> UploadJobRecord | None:
        with self._lock:
            job = self.upload_jobs.get(job_id)
            return replace(job) if job is not None else None

    def list_upload_jobs_for_owner(self, user_id: str) -> list[UploadJobRecord]:
        with self._lock:
            jobs = [replace(job) for job in self.upload_jobs.values() if job.user_id == user_id]
        jobs.sort(key=lambda job: job.created_at)
        return jobs

    def list_upload_jobs_by_status(
        self,
        status: UploadStatus,
        *,
        updated_before: datetime | None = None,
    ) -> list[UploadJobRecord]:
        with self._lock:
            jobs = [
                replace(job)
                for job in self.upload_jobs.values()
                if job.status is status and (updated_before is None or job.updated_at < updated_before)
            ]
        jobs.sort(key=lambda job: job.updated_at)
        return jobs

    def transition_upload_job(
        self,
        job_id: str,
        *,
        from_status: UploadStatus,
        to_status: UploadStatus,
        fields: dict[str, Any] | None = None,
    ) -> TransitionResult:
        ensure_edge(from_status, to_status)
        updates = validate_transition_fields(fields)
        if is_terminal(from_status):
            return TransitionResult.CONFLICT

        with self._lock:
            self._maybe_raise_unavailable()
            job = self.upload_jobs.get(job_id)
            if job is None or job.status is not from_status:
                return TransitionResult.CONFLICT

            job.status = to_status
            for key, value in updates.items():
                if key == "progress":
                    value = max(job.progress, clamp_progress(value))
                setattr(job, key, value)
            job.updated_at = datetime.now(UTC)
            self.upload_job_write_count += 1
        return TransitionResult.APPLIED

    def set_upload_progress(self, job_id: str, percent: int) -> bool:
        progress = clamp_progress(percent)
        with self._lock:
            job = self.upload_jobs.get(job_id)
            if job is None or job.status is not UploadStatus.PROCESSING:
                return False
            if progress <= job.progress:
                return False
            job.progress = progress
            job.updated_at = datetime.now(UTC)
            self.upload_job_write_count += 1
        return True

    def record_queue_task(self, job_id: str, queue_task_id: str) -> None:
        with self._lock:
            self._maybe_raise_unavailable()
            job = self.upload_jobs.get(job_id)
            if job is None:
                return
            job.queue_task_id = queue_task_id
            job.updated_at = datetime.now(UTC)
            self.upload_job_write_count += 1

    def add_content(self, record: ContentRecord) -> ContentRecord:
        with self._lock:
            self.contents[record.id] = replace(record)
        return record

    def add_episode(self, record: EpisodeRecord) -> EpisodeRecord:
        with self._lock:
            self.episodes[record.id] = replace(record)
        return record

    def add_user(self, record: UserProfileRecord) -> UserProfileRecord:
        with self._lock:
            self.users[record.id] = replace(record)
        return record

    def get_content(self, content_id: str) -> ContentRecord | None:
        with self._lock:
            record = self.contents.get(content_id)
            return replace(record) if record is not None else None

    def get_episode(self, episode_id: str) -> EpisodeRecord | None:
        with self._lock:
            record = self.episodes.get(episode_id)
            return replace(record) if record is not None else None

    def list_episodes_for_content(self, content_id: str) -> list[EpisodeRecord]:
        with self._lock:
            episodes = [replace(ep) for ep in self.episodes.values() if ep.content_id == content_id]
        episodes.sort(key=lambda ep: ep.episode_number)
        return episodes

    def get_user(self, user_id: str) -> UserProfileRecord | None:
        with self._lock:
            record = self.users.get(user_id)
            return replace(record) if record is not None else None

    def set_content_media_url(self, content_id: str, *, field_name: str, url: str | None) -> bool:
        if field_name not in CONTENT_MEDIA_FIELDS:
            raise ValueError(f"Unsupported content media field: {field_name}")
        with self._lock:
            record = self.contents.get(content_id)
            if record is None:
                return False
            setattr(record, field_name, url)
            self.catalog_write_count += 1
        return True

    def set_episode_video_url(self, episode_id: str, url: str | None) -> bool:
        with self._lock:
            record = self.episodes.get(episode_id)
            if record is None:
                return False
            record.video_url = url
            self.catalog_write_count += 1
        return True

    def set_user_avatar_url(self, user_id: str, url: str | None) -> bool:
        with self._lock:
            record = self.users.get(user_id)
            if record is None:
                return False
            record.avatar_url = url
            self.catalog_write_count += 1
        return True

    def delete_content(self, content_id: str) -> bool:
        with self._lock:
            if self.contents.pop(content_id, None) is None:
                return False
            for episode_id in [ep.id for ep in self.episodes.values() if ep.content_id == content_id]:
                del self.episodes[episode_id]
            self.catalog_write_count += 1
        return True

    def _maybe_raise_unavailable(self) -> None:
        if self.unavailable_message is None:
            return
        message = self.unavailable_message
        self.unavailable_message = None
        raise StoreUnavailableError(message)
