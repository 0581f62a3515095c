"""Processing task payloads published to the job queue."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator


class _BaseTask(BaseModel):
    job_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    original_filename: str = Field(min_length=1)
    file_size: int = Field(ge=0)
    upload_url: str = Field(min_length=1)


class VideoTask(_BaseTask):
    kind: Literal["video"] = "video"
    content_id: str | None = None
    episode_id: str | None = None

    @model_validator(mode="after")
    def _require_target(self) -> "VideoTask":
        if not self.content_id and not self.episode_id:
            raise ValueError("video task requires content_id or episode_id")
        return self


class AvatarTask(_BaseTask):
    kind: Literal["avatar"] = "avatar"
    # Deleted by the worker once the new avatar is in place.
    old_avatar_url: str | None = None


class PosterTask(_BaseTask):
    kind: Literal["poster"] = "poster"
    content_id: str = Field(min_length=1)


ProcessingTask = Annotated[Union[VideoTask, AvatarTask, PosterTask], Field(discriminator="kind")]

processing_task_adapter: TypeAdapter[ProcessingTask] = TypeAdapter(ProcessingTask)


class TaskEnvelope(BaseModel):
    """Wire format of one queued message."""

    queue_task_id: str
    name: str
    priority: int
    task: ProcessingTask
