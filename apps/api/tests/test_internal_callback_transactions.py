"""Internal worker callback tests over HTTP."""

from __future__ import annotations

import os
import unittest

from fastapi.testclient import TestClient

from streamhub.core.config import get_settings
from streamhub.main import create_app
from streamhub.repositories.base import ContentRecord
from streamhub.schemas.upload import FileKind, UploadStatus
from streamhub.services.sweeper import TIMEOUT_REASON

SECRET_HEADERS = {"X-Callback-Secret": "test-callback-secret"}


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = (
        "STREAMHUB_AUTH_PROVIDER",
        "STREAMHUB_CALLBACK_SECRET",
        "STREAMHUB_STORE_BACKEND",
        "STREAMHUB_QUEUE_BACKEND",
        "STREAMHUB_STORAGE_BACKEND",
    )

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["STREAMHUB_AUTH_PROVIDER"] = "mock"
        os.environ["STREAMHUB_CALLBACK_SECRET"] = "test-callback-secret"
        os.environ["STREAMHUB_STORE_BACKEND"] = "memory"
        os.environ["STREAMHUB_QUEUE_BACKEND"] = "memory"
        os.environ["STREAMHUB_STORAGE_BACKEND"] = "memory"
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


class CallbackTransactionTests(_SettingsEnvCase):
    def setUp(self) -> None:
        super().setUp()
        self.app = create_app()
        self.client = TestClient(self.app)
        self.store = self.app.state.store
        self.store.add_content(ContentRecord(id="content-1", title="Movie"))
        self.job = self.store.create_upload_job(
            user_id="admin-1",
            file_type=FileKind.VIDEO,
            original_filename="a.mp4",
            file_size=1024,
            upload_url="s3://bucket/a.mp4",
            content_id="content-1",
        )
        completed = self.client.post(
            "/api/v1/upload/complete",
            headers={"Authorization": "Bearer test:admin-1:admin"},
            json={"jobId": self.job.job_id, "fileUrl": "s3://bucket/a.mp4"},
        )
        self.assertEqual(completed.status_code, 202)

    def _post(self, action: str, body: dict | None = None, job_id: str | None = None):
        return self.client.post(
            f"/api/v1/internal/upload-jobs/{job_id or self.job.job_id}/{action}",
            headers=SECRET_HEADERS,
            json=body,
        )

    def test_claim_progress_and_completion_flow(self) -> None:
        self.assertEqual(self._post("claim").status_code, 204)
        for percent in (10, 40, 100):
            self.assertEqual(self._post("progress", {"progress": percent}).status_code, 204)

        result = self._post("result", {"status": "completed", "processed_url": "s3://bucket/out.m3u8"})

        self.assertEqual(result.status_code, 204)
        stored = self.store.get_upload_job(self.job.job_id)
        self.assertEqual(stored.status, UploadStatus.COMPLETED)
        self.assertEqual(stored.progress, 100)
        self.assertEqual(self.store.get_content("content-1").video_url, "s3://bucket/out.m3u8")

    def test_late_progress_is_acknowledged_with_200_and_no_change(self) -> None:
        self._post("claim")
        self._post("result", {"status": "completed", "processed_url": "s3://bucket/out.m3u8"})

        late = self._post("progress", {"progress": 55})

        self.assertEqual(late.status_code, 200)
        self.assertEqual(
            late.json(),
            {"job_id": self.job.job_id, "applied": False, "current_status": "completed", "progress": 100},
        )

    def test_duplicate_result_is_a_noop_with_single_catalog_write(self) -> None:
        self._post("claim")
        body = {"status": "completed", "processed_url": "s3://bucket/out.m3u8"}

        first = self._post("result", body)
        replay = self._post("result", body)

        self.assertEqual(first.status_code, 204)
        self.assertEqual(replay.status_code, 200)
        self.assertFalse(replay.json()["applied"])
        self.assertEqual(self.store.catalog_write_count, 1)

    def test_failed_result_stores_reason_and_leaves_catalog(self) -> None:
        self._post("claim")

        response = self._post("result", {"status": "failed", "error_message": "unsupported codec"})

        self.assertEqual(response.status_code, 204)
        stored = self.store.get_upload_job(self.job.job_id)
        self.assertEqual(stored.status, UploadStatus.FAILED)
        self.assertEqual(stored.error_message, "unsupported codec")
        self.assertIsNone(self.store.get_content("content-1").video_url)

    def test_result_after_timeout_loses_the_race(self) -> None:
        self._post("claim")
        self.store.transition_upload_job(
            self.job.job_id,
            from_status=UploadStatus.PROCESSING,
            to_status=UploadStatus.FAILED,
            fields={"error_message": TIMEOUT_REASON},
        )

        late = self._post("result", {"status": "completed", "processed_url": "s3://bucket/out.m3u8"})

        self.assertEqual(late.status_code, 200)
        self.assertEqual(late.json()["current_status"], "failed")
        self.assertIsNone(self.store.get_content("content-1").video_url)

    def test_result_before_claim_is_ignored(self) -> None:
        response = self._post("result", {"status": "completed", "processed_url": "s3://bucket/out.m3u8"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["current_status"], "uploaded")

    def test_completed_result_without_url_returns_400_validation_error(self) -> None:
        self._post("claim")

        response = self._post("result", {"status": "completed"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")
        self.assertEqual(self.store.get_upload_job(self.job.job_id).status, UploadStatus.PROCESSING)

    def test_out_of_range_progress_returns_400(self) -> None:
        self._post("claim")

        response = self._post("progress", {"progress": 140})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")

    def test_callback_with_valid_secret_and_missing_job_returns_no_leak_404(self) -> None:
        response = self._post("progress", {"progress": 10}, job_id="missing-job")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "RESOURCE_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
