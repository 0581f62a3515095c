"""Persistence interfaces and records shared by the store backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from streamhub.schemas.upload import FileKind, UploadStatus

TRANSITION_FIELDS = frozenset({"processed_url", "error_message", "progress"})


class TransitionResult(str, Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"


@dataclass(slots=True)
class UploadJobRecord:
    job_id: str
    user_id: str
    file_type: FileKind
    original_filename: str
    file_size: int
    upload_url: str
    status: UploadStatus
    progress: int
    created_at: datetime
    updated_at: datetime
    content_id: str | None = None
    episode_id: str | None = None
    processed_url: str | None = None
    error_message: str | None = None
    queue_task_id: str | None = None


@dataclass(slots=True)
class ContentRecord:
    id: str
    title: str
    poster_url: str | None = None
    backdrop_url: str | None = None
    video_url: str | None = None


@dataclass(slots=True)
class EpisodeRecord:
    id: str
    content_id: str
    episode_number: int
    video_url: str | None = None


@dataclass(slots=True)
class UserProfileRecord:
    id: str
    role: str = "user"
    avatar_url: str | None = None


def validate_transition_fields(fields: dict[str, Any] | None) -> dict[str, Any]:
    if not fields:
        return {}
    unknown = set(fields) - TRANSITION_FIELDS
    if unknown:
        raise ValueError(f"Unsupported upload job fields: {sorted(unknown)}")
    return dict(fields)


def clamp_progress(percent: int) -> int:
    return max(0, min(100, int(percent)))


class UploadJobRepository(ABC):
    """Upload job persistence with compare-and-set status updates."""

    @abstractmethod
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
        """Insert a new ``pending`` job."""

    @abstractmethod
    def get_upload_job(self, job_id: str) -> UploadJobRecord | None:
        """Return a snapshot of the job, or ``None``."""

    @abstractmethod
    def list_upload_jobs_for_owner(self, user_id: str) -> list[UploadJobRecord]:
        """Return the owner's jobs ordered by creation time."""

    @abstractmethod
    def list_upload_jobs_by_status(
        self,
        status: UploadStatus,
        *,
        updated_before: datetime | None = None,
    ) -> list[UploadJobRecord]:
        """Return jobs in ``status``, optionally only those not touched since ``updated_before``."""

    @abstractmethod
    def transition_upload_job(
        self,
        job_id: str,
        *,
        from_status: UploadStatus,
        to_status: UploadStatus,
        fields: dict[str, Any] | None = None,
    ) -> TransitionResult:
        """Apply ``to_status`` and ``fields`` only if the stored status is ``from_status``.

        A missing job, a terminal ``from_status`` or a stale ``from_status``
        report ``CONFLICT`` and leave the record untouched.
        """

    @abstractmethod
    def set_upload_progress(self, job_id: str, percent: int) -> bool:
        """Raise progress of a ``processing`` job; a no-op in every other state."""

    @abstractmethod
    def record_queue_task(self, job_id: str, queue_task_id: str) -> None:
        """Remember the queue correlation id of a dispatched job."""


class CatalogRepository(ABC):
    """The slice of the content catalog that upload reconciliation touches."""

    @abstractmethod
    def add_content(self, record: ContentRecord) -> ContentRecord: ...

    @abstractmethod
    def add_episode(self, record: EpisodeRecord) -> EpisodeRecord: ...

    @abstractmethod
    def add_user(self, record: UserProfileRecord) -> UserProfileRecord: ...

    @abstractmethod
    def get_content(self, content_id: str) -> ContentRecord | None: ...

    @abstractmethod
    def get_episode(self, episode_id: str) -> EpisodeRecord | None: ...

    @abstractmethod
    def list_episodes_for_content(self, content_id: str) -> list[EpisodeRecord]: ...

    @abstractmethod
    def get_user(self, user_id: str) -> UserProfileRecord | None: ...

    @abstractmethod
    def set_content_media_url(self, content_id: str, *, field_name: str, url: str | None) -> bool:
        """Write ``poster_url``, ``backdrop_url`` or ``video_url``; ``False`` when the row is gone."""

    @abstractmethod
    def set_episode_video_url(self, episode_id: str, url: str | None) -> bool: ...

    @abstractmethod
    def set_user_avatar_url(self, user_id: str, url: str | None) -> bool: ...

    @abstractmethod
    def delete_content(self, content_id: str) -> bool:
        """Delete the content row and its episodes."""


CONTENT_MEDIA_FIELDS = frozenset({"poster_url", "backdrop_url", "video_url"})


__all__ = [
    "CONTENT_MEDIA_FIELDS",
    "CatalogRepository",
    "ContentRecord",
    "EpisodeRecord",
    "TRANSITION_FIELDS",
    "TransitionResult",
    "UploadJobRecord",
    "UploadJobRepository",
    "UserProfileRecord",
    "clamp_progress",
    "validate_transition_fields",
]
