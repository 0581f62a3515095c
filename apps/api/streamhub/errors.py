"""Application exception types."""

from streamhub.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class StoreUnavailableError(Exception):
    """The upload job store could not be reached or timed out."""


class InvalidTransitionError(ValueError):
    """A status change that is not an edge of the upload lifecycle."""


def not_found() -> ApiError:
    return ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")


def forbidden() -> ApiError:
    return ApiError(status_code=403, code="FORBIDDEN", message="Caller may not act on this upload job")


__all__ = ["ApiError", "InvalidTransitionError", "StoreUnavailableError", "forbidden", "not_found"]
