"""SQLite-backed durable store for upload jobs and the catalog slice."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import UTC, datetime
import logging
import sqlite3
from typing import Any, Iterator
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

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS upload_jobs (
        job_id            TEXT PRIMARY KEY,
        user_id           TEXT NOT NULL,
        content_id        TEXT,
        episode_id        TEXT,
        file_type         TEXT NOT NULL,
        original_filename TEXT NOT NULL,
        file_size         INTEGER NOT NULL,
        upload_url        TEXT NOT NULL,
        processed_url     TEXT,
        status            TEXT NOT NULL DEFAULT 'pending',
        progress          INTEGER NOT NULL DEFAULT 0,
        error_message     TEXT,
        queue_task_id     TEXT,
        created_at        TEXT NOT NULL,
        updated_at        TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS upload_jobs_user_idx ON upload_jobs (user_id)",
    "CREATE INDEX IF NOT EXISTS upload_jobs_status_idx ON upload_jobs (status)",
    """
    CREATE TABLE IF NOT EXISTS content (
        id           TEXT PRIMARY KEY,
        title        TEXT NOT NULL,
        poster_url   TEXT,
        backdrop_url TEXT,
        video_url    TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS episodes (
        id             TEXT PRIMARY KEY,
        content_id     TEXT NOT NULL REFERENCES content (id) ON DELETE CASCADE,
        episode_number INTEGER NOT NULL,
        video_url      TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id         TEXT PRIMARY KEY,
        role       TEXT NOT NULL DEFAULT 'user',
        avatar_url TEXT
    )
    """,
)


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def _row_to_job(row: sqlite3.Row) -> UploadJobRecord:
    return UploadJobRecord(
        job_id=row["job_id"],
        user_id=row["user_id"],
        content_id=row["content_id"],
        episode_id=row["episode_id"],
        file_type=FileKind(row["file_type"]),
        original_filename=row["original_filename"],
        file_size=row["file_size"],
        upload_url=row["upload_url"],
        processed_url=row["processed_url"],
        status=UploadStatus(row["status"]),
        progress=row["progress"],
        error_message=row["error_message"],
        queue_task_id=row["queue_task_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


class SqliteStore(UploadJobRepository, CatalogRepository):
    """Durable store; every status change is a single conditional UPDATE."""

    def __init__(self, db_path: str, *, timeout_seconds: float = 5.0) -> None:
        self.db_path = db_path
        self.timeout_seconds = timeout_seconds

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout_seconds)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot open upload job store: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
            conn.commit()
        except sqlite3.OperationalError as exc:
            conn.rollback()
            raise StoreUnavailableError(f"Upload job store unavailable: {exc}") from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        logger.info("store.initialised backend=sqlite path=%s", self.db_path)

    # Upload jobs

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
        job_id = str(uuid4())
        now = _now()
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO upload_jobs (job_id, user_id, content_id, episode_id, file_type, original_filename, "
                "file_size, upload_url, status, progress, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)",
                (
                    job_id,
                    user_id,
                    content_id,
                    episode_id,
                    file_type.value,
                    original_filename,
                    file_size,
                    upload_url,
                    UploadStatus.PENDING.value,
                    now,
                    now,
                ),
            )
            row = conn.execute("SELECT * FROM upload_jobs WHERE job_id = ?", (job_id,)).fetchone()
        return _row_to_job(row)

    def get_upload_job(self, job_id: str) -> UploadJobRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM upload_jobs WHERE job_id = ?", (job_id,)).fetchone()
        return _row_to_job(row) if row else None

    def list_upload_jobs_for_owner(self, user_id: str) -> list[UploadJobRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM upload_jobs WHERE user_id = ? ORDER BY created_at",
                (user_id,),
            ).fetchall()
        return [_row_to_job(row) for row in rows]

    def list_upload_jobs_by_status(
        self,
        status: UploadStatus,
        *,
        updated_before: datetime | None = None,
    ) -> list[UploadJobRecord]:
        query = "SELECT * FROM upload_jobs WHERE status = ?"
        params: list[Any] = [status.value]
        if updated_before is not None:
            query += " AND updated_at < ?"
            params.append(updated_before.astimezone(UTC).isoformat(timespec="microseconds"))
        query += " ORDER BY updated_at"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_job(row) for row in rows]

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
        if "progress" in updates:
            updates["progress"] = clamp_progress(updates["progress"])

        # Progress never moves backwards, whichever edge carries it.
        assignments = ["status = ?", "updated_at = ?"] + [
            "progress = MAX(progress, ?)" if key == "progress" else f"{key} = ?" for key in sorted(updates)
        ]
        params: list[Any] = [to_status.value, _now()] + [updates[key] for key in sorted(updates)]
        params.extend([job_id, from_status.value])
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE upload_jobs SET {', '.join(assignments)} WHERE job_id = ? AND status = ?",
                params,
            )
            applied = cursor.rowcount == 1
        return TransitionResult.APPLIED if applied else TransitionResult.CONFLICT

    def set_upload_progress(self, job_id: str, percent: int) -> bool:
        progress = clamp_progress(percent)
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE upload_jobs SET progress = ?, updated_at = ? "
                "WHERE job_id = ? AND status = ? AND progress < ?",
                (progress, _now(), job_id, UploadStatus.PROCESSING.value, progress),
            )
            return cursor.rowcount == 1

    def record_queue_task(self, job_id: str, queue_task_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE upload_jobs SET queue_task_id = ?, updated_at = ? WHERE job_id = ?",
                (queue_task_id, _now(), job_id),
            )

    # Catalog

    def add_content(self, record: ContentRecord) -> ContentRecord:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO content (id, title, poster_url, backdrop_url, video_url) VALUES (?, ?, ?, ?, ?)",
                (record.id, record.title, record.poster_url, record.backdrop_url, record.video_url),
            )
        return record

    def add_episode(self, record: EpisodeRecord) -> EpisodeRecord:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO episodes (id, content_id, episode_number, video_url) VALUES (?, ?, ?, ?)",
                (record.id, record.content_id, record.episode_number, record.video_url),
            )
        return record

    def add_user(self, record: UserProfileRecord) -> UserProfileRecord:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO users (id, role, avatar_url) VALUES (?, ?, ?)",
                (record.id, record.role, record.avatar_url),
            )
        return record

    def get_content(self, content_id: str) -> ContentRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM content WHERE id = ?", (content_id,)).fetchone()
        if row is None:
            return None
        return ContentRecord(
            id=row["id"],
            title=row["title"],
            poster_url=row["poster_url"],
            backdrop_url=row["backdrop_url"],
            video_url=row["video_url"],
        )

    def get_episode(self, episode_id: str) -> EpisodeRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM episodes WHERE id = ?", (episode_id,)).fetchone()
        if row is None:
            return None
        return EpisodeRecord(
            id=row["id"],
            content_id=row["content_id"],
            episode_number=row["episode_number"],
            video_url=row["video_url"],
        )

    def list_episodes_for_content(self, content_id: str) -> list[EpisodeRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM episodes WHERE content_id = ? ORDER BY episode_number",
                (content_id,),
            ).fetchall()
        return [
            EpisodeRecord(
                id=row["id"],
                content_id=row["content_id"],
                episode_number=row["episode_number"],
                video_url=row["video_url"],
            )
            for row in rows
        ]

    def get_user(self, user_id: str) -> UserProfileRecord | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return UserProfileRecord(id=row["id"], role=row["role"], avatar_url=row["avatar_url"])

    def set_content_media_url(self, content_id: str, *, field_name: str, url: str | None) -> bool:
        if field_name not in CONTENT_MEDIA_FIELDS:
            raise ValueError(f"Unsupported content media field: {field_name}")
        with self._connect() as conn:
            cursor = conn.execute(f"UPDATE content SET {field_name} = ? WHERE id = ?", (url, content_id))
            return cursor.rowcount == 1

    def set_episode_video_url(self, episode_id: str, url: str | None) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("UPDATE episodes SET video_url = ? WHERE id = ?", (url, episode_id))
            return cursor.rowcount == 1

    def set_user_avatar_url(self, user_id: str, url: str | None) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("UPDATE users SET avatar_url = ? WHERE id = ?", (url, user_id))
            return cursor.rowcount == 1

    def delete_content(self, content_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM content WHERE id = ?", (content_id,))
            return cursor.rowcount == 1
