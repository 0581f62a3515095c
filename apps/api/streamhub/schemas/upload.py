"""Upload job API schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FileKind(str, Enum):
    VIDEO = "video"
    AVATAR = "avatar"
    POSTER = "poster"


class UploadJob(BaseModel):
    job_id: str
    user_id: str
    content_id: str | None = None
    episode_id: str | None = None
    file_type: FileKind
    original_filename: str
    file_size: int
    upload_url: str
    processed_url: str | None = None
    status: UploadStatus
    progress: int
    error_message: str | None = None
    queue_task_id: str | None = None
    created_at: datetime
    updated_at: datetime


class UploadJobStatus(BaseModel):
    """Polling view of a job, as consumed by the admin upload screens."""

    job_id: str
    status: UploadStatus
    progress: int
    processed_url: str | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime


class CompleteUploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId", min_length=1)
    file_url: str = Field(alias="fileUrl", min_length=1)


class CompleteUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    queue_task_id: str = Field(alias="queueTaskId")
    status: UploadStatus
