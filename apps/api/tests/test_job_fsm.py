"""Upload job lifecycle and compare-and-set store tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import os
import tempfile
import unittest

from streamhub.domain.job_fsm import allowed_next_statuses, ensure_edge, is_terminal
from streamhub.errors import InvalidTransitionError, StoreUnavailableError
from streamhub.repositories.base import TransitionResult
from streamhub.repositories.memory import InMemoryStore
from streamhub.repositories.sqlite import SqliteStore
from streamhub.schemas.upload import FileKind, UploadStatus


class JobFsmUnitTests(unittest.TestCase):
    def test_allowed_transition_examples_across_lifecycle(self) -> None:
        allowed_pairs = [
            (UploadStatus.PENDING, UploadStatus.UPLOADED),
            (UploadStatus.UPLOADED, UploadStatus.PROCESSING),
            (UploadStatus.PROCESSING, UploadStatus.PROCESSING),
            (UploadStatus.PROCESSING, UploadStatus.COMPLETED),
            (UploadStatus.PROCESSING, UploadStatus.FAILED),
        ]
        for old_status, new_status in allowed_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                ensure_edge(old_status, new_status)

    def test_forbidden_transitions_raise(self) -> None:
        invalid_pairs = [
            (UploadStatus.PENDING, UploadStatus.PROCESSING),
            (UploadStatus.PENDING, UploadStatus.COMPLETED),
            (UploadStatus.UPLOADED, UploadStatus.COMPLETED),
            (UploadStatus.UPLOADED, UploadStatus.PENDING),
            (UploadStatus.PROCESSING, UploadStatus.UPLOADED),
        ]
        for old_status, new_status in invalid_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                with self.assertRaises(InvalidTransitionError):
                    ensure_edge(old_status, new_status)

    def test_terminal_states_have_no_successors(self) -> None:
        for terminal_status in (UploadStatus.COMPLETED, UploadStatus.FAILED):
            with self.subTest(terminal_status=terminal_status):
                self.assertTrue(is_terminal(terminal_status))
                self.assertEqual(allowed_next_statuses(terminal_status), [])
        self.assertFalse(is_terminal(UploadStatus.PROCESSING))


class _StoreContract:
    """Shared assertions run against every store backend."""

    def make_store(self):
        raise NotImplementedError

    def _create_job(self, store, **overrides):
        values = {
            "user_id": "admin-1",
            "file_type": FileKind.VIDEO,
            "original_filename": "movie.mp4",
            "file_size": 1024,
            "upload_url": "https://media.local/uploads/videos/content-1/movie.mp4",
            "content_id": "content-1",
        }
        values.update(overrides)
        return store.create_upload_job(**values)

    def test_created_job_starts_pending_with_zero_progress(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        loaded = store.get_upload_job(job.job_id)
        self.assertEqual(loaded.status, UploadStatus.PENDING)
        self.assertEqual(loaded.progress, 0)
        self.assertEqual(loaded.content_id, "content-1")
        self.assertEqual(loaded.created_at, loaded.updated_at)

    def test_missing_job_returns_none(self) -> None:
        self.assertIsNone(self.make_store().get_upload_job("missing-job"))

    def test_transition_applies_only_from_expected_status(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        first = store.transition_upload_job(
            job.job_id,
            from_status=UploadStatus.PENDING,
            to_status=UploadStatus.UPLOADED,
            fields={"progress": 5},
        )
        second = store.transition_upload_job(
            job.job_id,
            from_status=UploadStatus.PENDING,
            to_status=UploadStatus.UPLOADED,
            fields={"progress": 7},
        )

        self.assertEqual(first, TransitionResult.APPLIED)
        self.assertEqual(second, TransitionResult.CONFLICT)
        loaded = store.get_upload_job(job.job_id)
        self.assertEqual(loaded.status, UploadStatus.UPLOADED)
        self.assertEqual(loaded.progress, 5)

    def test_stale_from_status_conflicts_without_partial_writes(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        result = store.transition_upload_job(
            job.job_id,
            from_status=UploadStatus.PROCESSING,
            to_status=UploadStatus.COMPLETED,
            fields={"processed_url": "https://media.local/hls/movie.m3u8", "progress": 100},
        )

        self.assertEqual(result, TransitionResult.CONFLICT)
        loaded = store.get_upload_job(job.job_id)
        self.assertEqual(loaded.status, UploadStatus.PENDING)
        self.assertIsNone(loaded.processed_url)
        self.assertEqual(loaded.progress, 0)
        self.assertEqual(loaded.updated_at, job.updated_at)

    def test_transition_of_missing_job_conflicts(self) -> None:
        store = self.make_store()

        result = store.transition_upload_job(
            "missing-job",
            from_status=UploadStatus.PENDING,
            to_status=UploadStatus.UPLOADED,
        )

        self.assertEqual(result, TransitionResult.CONFLICT)

    def test_terminal_jobs_reject_every_transition(self) -> None:
        store = self.make_store()
        job = self._advance(store, UploadStatus.COMPLETED)

        result = store.transition_upload_job(
            job.job_id,
            from_status=UploadStatus.COMPLETED,
            to_status=UploadStatus.FAILED,
            fields={"error_message": "late"},
        )

        self.assertEqual(result, TransitionResult.CONFLICT)
        loaded = store.get_upload_job(job.job_id)
        self.assertEqual(loaded.status, UploadStatus.COMPLETED)
        self.assertIsNone(loaded.error_message)

    def test_invalid_edge_raises_before_touching_the_store(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        with self.assertRaises(InvalidTransitionError):
            store.transition_upload_job(
                job.job_id,
                from_status=UploadStatus.PENDING,
                to_status=UploadStatus.COMPLETED,
            )
        self.assertEqual(store.get_upload_job(job.job_id).status, UploadStatus.PENDING)

    def test_unknown_transition_fields_are_rejected(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        with self.assertRaises(ValueError):
            store.transition_upload_job(
                job.job_id,
                from_status=UploadStatus.PENDING,
                to_status=UploadStatus.UPLOADED,
                fields={"user_id": "someone-else"},
            )

    def test_progress_applies_only_while_processing_and_increasing(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        self.assertFalse(store.set_upload_progress(job.job_id, 30))

        job = self._advance(store, UploadStatus.PROCESSING, job=job)
        self.assertTrue(store.set_upload_progress(job.job_id, 30))
        self.assertFalse(store.set_upload_progress(job.job_id, 20))
        self.assertTrue(store.set_upload_progress(job.job_id, 250))
        self.assertEqual(store.get_upload_job(job.job_id).progress, 100)

    def test_processing_self_transition_never_lowers_progress(self) -> None:
        store = self.make_store()
        job = self._advance(store, UploadStatus.PROCESSING)
        self.assertTrue(store.set_upload_progress(job.job_id, 80))

        result = store.transition_upload_job(
            job.job_id,
            from_status=UploadStatus.PROCESSING,
            to_status=UploadStatus.PROCESSING,
            fields={"progress": 10},
        )

        self.assertEqual(result, TransitionResult.APPLIED)
        loaded = store.get_upload_job(job.job_id)
        self.assertEqual(loaded.status, UploadStatus.PROCESSING)
        self.assertEqual(loaded.progress, 80)

        store.transition_upload_job(
            job.job_id,
            from_status=UploadStatus.PROCESSING,
            to_status=UploadStatus.PROCESSING,
            fields={"progress": 90},
        )
        self.assertEqual(store.get_upload_job(job.job_id).progress, 90)

    def test_late_progress_after_completion_is_a_noop(self) -> None:
        store = self.make_store()
        job = self._advance(store, UploadStatus.COMPLETED)

        self.assertFalse(store.set_upload_progress(job.job_id, 60))
        loaded = store.get_upload_job(job.job_id)
        self.assertEqual(loaded.status, UploadStatus.COMPLETED)
        self.assertEqual(loaded.progress, 100)

    def test_record_queue_task_sets_correlation_id(self) -> None:
        store = self.make_store()
        job = self._advance(store, UploadStatus.UPLOADED)

        store.record_queue_task(job.job_id, "task-123")

        loaded = store.get_upload_job(job.job_id)
        self.assertEqual(loaded.queue_task_id, "task-123")
        self.assertGreaterEqual(loaded.updated_at, job.updated_at)

    def test_list_queries_filter_by_owner_and_status(self) -> None:
        store = self.make_store()
        mine = self._create_job(store, user_id="user-a", file_type=FileKind.AVATAR, original_filename="a.png")
        self._create_job(store, user_id="user-b", file_type=FileKind.AVATAR, original_filename="b.png")
        uploaded = self._advance(store, UploadStatus.UPLOADED)

        self.assertEqual([job.job_id for job in store.list_upload_jobs_for_owner("user-a")], [mine.job_id])
        self.assertEqual(
            [job.job_id for job in store.list_upload_jobs_by_status(UploadStatus.UPLOADED)],
            [uploaded.job_id],
        )
        past = datetime.now(UTC) - timedelta(hours=1)
        self.assertEqual(store.list_upload_jobs_by_status(UploadStatus.UPLOADED, updated_before=past), [])

    def _advance(self, store, target: UploadStatus, *, job=None):
        job = job or self._create_job(store)
        path = [
            (UploadStatus.PENDING, UploadStatus.UPLOADED, {"progress": 5}),
            (UploadStatus.UPLOADED, UploadStatus.PROCESSING, None),
            (
                UploadStatus.PROCESSING,
                UploadStatus.COMPLETED,
                {"processed_url": "https://media.local/hls/movie.m3u8", "progress": 100},
            ),
        ]
        for from_status, to_status, fields in path:
            if job.status == target:
                break
            result = store.transition_upload_job(
                job.job_id,
                from_status=from_status,
                to_status=to_status,
                fields=fields,
            )
            self.assertEqual(result, TransitionResult.APPLIED)
            job = store.get_upload_job(job.job_id)
        self.assertEqual(job.status, target)
        return job


class InMemoryStoreTests(_StoreContract, unittest.TestCase):
    def make_store(self) -> InMemoryStore:
        return InMemoryStore()

    def test_readers_receive_copies(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        job.status = UploadStatus.COMPLETED

        self.assertEqual(store.get_upload_job(job.job_id).status, UploadStatus.PENDING)

    def test_unavailable_failpoint_raises_once(self) -> None:
        store = self.make_store()
        job = self._create_job(store)
        store.unavailable_message = "store offline"

        with self.assertRaises(StoreUnavailableError):
            store.transition_upload_job(
                job.job_id,
                from_status=UploadStatus.PENDING,
                to_status=UploadStatus.UPLOADED,
            )
        self.assertEqual(store.get_upload_job(job.job_id).status, UploadStatus.PENDING)
        self.assertEqual(
            store.transition_upload_job(
                job.job_id,
                from_status=UploadStatus.PENDING,
                to_status=UploadStatus.UPLOADED,
            ),
            TransitionResult.APPLIED,
        )


class SqliteStoreTests(_StoreContract, unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmpdir.cleanup)

    def make_store(self) -> SqliteStore:
        store = SqliteStore(os.path.join(self._tmpdir.name, "streamhub.db"))
        store.init_db()
        return store

    def test_jobs_survive_a_new_store_instance(self) -> None:
        store = self.make_store()
        job = self._create_job(store)

        reopened = SqliteStore(store.db_path)

        self.assertEqual(reopened.get_upload_job(job.job_id).upload_url, job.upload_url)

    def test_unreachable_database_raises_store_unavailable(self) -> None:
        store = SqliteStore(os.path.join(self._tmpdir.name, "missing-dir", "streamhub.db"))

        with self.assertRaises(StoreUnavailableError):
            store.get_upload_job("job-1")


if __name__ == "__main__":
    unittest.main()
