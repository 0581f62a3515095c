"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel

from streamhub.schemas.upload import UploadStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class ForbiddenError(BaseModel):
    code: Literal["FORBIDDEN"]
    message: str


class AlreadyProcessedErrorDetails(BaseModel):
    current_status: UploadStatus


class AlreadyProcessedError(BaseModel):
    code: Literal["UPLOAD_ALREADY_PROCESSED"]
    message: str
    details: AlreadyProcessedErrorDetails


class UploadRejectedError(BaseModel):
    code: Literal["UPLOAD_URL_MISMATCH", "INVALID_UPLOAD_TARGET", "VALIDATION_ERROR"]
    message: str
    details: dict[str, Any] | None = None


class ServiceUnavailableError(BaseModel):
    code: Literal["QUEUE_UNAVAILABLE", "STORE_UNAVAILABLE"]
    message: str
    details: dict[str, Any] | None = None
