"""Internal worker callback schemas."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from streamhub.schemas.upload import UploadStatus


class ProgressCallbackRequest(BaseModel):
    progress: int = Field(ge=0, le=100)


class ResultCallbackRequest(BaseModel):
    status: Literal["completed", "failed"]
    processed_url: str | None = None
    error_message: str | None = None

    @model_validator(mode="after")
    def _check_outcome_fields(self) -> "ResultCallbackRequest":
        if self.status == "completed" and not (self.processed_url or "").strip():
            raise ValueError("completed results require processed_url")
        if self.status == "failed" and not (self.error_message or "").strip():
            raise ValueError("failed results require a non-empty error_message")
        return self


class CallbackIgnoredResponse(BaseModel):
    """Returned with 200 when a report was valid but changed nothing."""

    job_id: str
    applied: bool = False
    current_status: UploadStatus
    progress: int
