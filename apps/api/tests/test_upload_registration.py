"""Upload job registration rule tests."""

from __future__ import annotations

import unittest

from streamhub.errors import ApiError
from streamhub.repositories.memory import InMemoryStore
from streamhub.schemas.auth import AuthPrincipal
from streamhub.schemas.upload import FileKind, UploadStatus
from streamhub.services.uploads import UploadJobService

ADMIN = AuthPrincipal(user_id="admin-1", role="admin")
VIEWER = AuthPrincipal(user_id="viewer-1")


class UploadRegistrationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryStore()
        self.service = UploadJobService(self.store)

    def test_registered_job_is_pending_and_owned_by_caller(self) -> None:
        job = self.service.register_upload(
            principal=VIEWER,
            file_type=FileKind.AVATAR,
            original_filename="Me.PNG",
            file_size=2048,
            upload_url="https://media.local/avatars/viewer-1/me.png",
        )

        self.assertEqual(job.status, UploadStatus.PENDING)
        self.assertEqual(job.user_id, "viewer-1")
        self.assertEqual(job.progress, 0)
        self.assertIsNotNone(self.store.get_upload_job(job.job_id))

    def test_extension_and_size_limits_per_kind(self) -> None:
        rejected = [
            (FileKind.AVATAR, "me.gif", 1024),
            (FileKind.AVATAR, "me.png", 5 * 1024 * 1024 + 1),
            (FileKind.POSTER, "poster.mp4", 1024),
            (FileKind.POSTER, "poster.jpg", 10 * 1024 * 1024 + 1),
            (FileKind.VIDEO, "movie.avi", 1024),
            (FileKind.VIDEO, "movie.mp4", 0),
        ]
        for file_type, filename, size in rejected:
            with self.subTest(file_type=file_type, filename=filename, size=size):
                with self.assertRaises(ApiError) as context:
                    self.service.register_upload(
                        principal=ADMIN,
                        file_type=file_type,
                        original_filename=filename,
                        file_size=size,
                        upload_url="https://media.local/uploads/x",
                        content_id="content-1",
                    )
                self.assertEqual(context.exception.status_code, 400)
                self.assertEqual(context.exception.payload.code, "VALIDATION_ERROR")
        self.assertEqual(self.store.upload_job_write_count, 0)

    def test_only_admins_register_video_and_poster_uploads(self) -> None:
        for file_type, filename in ((FileKind.VIDEO, "movie.mp4"), (FileKind.POSTER, "poster.webp")):
            with self.subTest(file_type=file_type):
                with self.assertRaises(ApiError) as context:
                    self.service.register_upload(
                        principal=VIEWER,
                        file_type=file_type,
                        original_filename=filename,
                        file_size=1024,
                        upload_url="https://media.local/uploads/x",
                        content_id="content-1",
                    )
                self.assertEqual(context.exception.status_code, 403)

        video = self.service.register_upload(
            principal=ADMIN,
            file_type=FileKind.VIDEO,
            original_filename="movie.mkv",
            file_size=4 * 1024 * 1024 * 1024,
            upload_url="https://media.local/uploads/videos/content-1/movie.mkv",
            content_id="content-1",
        )
        self.assertEqual(video.file_type, FileKind.VIDEO)

    def test_list_jobs_returns_only_callers_jobs_in_creation_order(self) -> None:
        first = self.service.register_upload(
            principal=VIEWER,
            file_type=FileKind.AVATAR,
            original_filename="one.png",
            file_size=10,
            upload_url="https://media.local/avatars/viewer-1/one.png",
        )
        second = self.service.register_upload(
            principal=VIEWER,
            file_type=FileKind.AVATAR,
            original_filename="two.webp",
            file_size=10,
            upload_url="https://media.local/avatars/viewer-1/two.webp",
        )
        self.service.register_upload(
            principal=ADMIN,
            file_type=FileKind.POSTER,
            original_filename="p.jpg",
            file_size=10,
            upload_url="https://media.local/uploads/posters/content-1/p.jpg",
            content_id="content-1",
        )

        jobs = self.service.list_jobs(principal=VIEWER)

        self.assertEqual([job.job_id for job in jobs], [first.job_id, second.job_id])

    def test_status_of_foreign_job_is_forbidden_for_viewers_but_visible_to_admins(self) -> None:
        job = self.service.register_upload(
            principal=ADMIN,
            file_type=FileKind.POSTER,
            original_filename="p.jpg",
            file_size=10,
            upload_url="https://media.local/uploads/posters/content-1/p.jpg",
            content_id="content-1",
        )

        with self.assertRaises(ApiError) as context:
            self.service.get_status(principal=VIEWER, job_id=job.job_id)
        self.assertEqual(context.exception.status_code, 403)

        other_admin = AuthPrincipal(user_id="admin-2", role="admin")
        self.assertEqual(self.service.get_status(principal=other_admin, job_id=job.job_id).status, UploadStatus.PENDING)


if __name__ == "__main__":
    unittest.main()
