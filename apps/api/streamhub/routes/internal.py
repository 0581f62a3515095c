"""Internal worker callback routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from streamhub.routes.dependencies import (
    get_internal_callback_service,
    get_request_correlation_id,
    require_callback_secret,
)
from streamhub.schemas.error import ErrorResponse, NoLeakNotFoundError
from streamhub.schemas.internal import CallbackIgnoredResponse, ProgressCallbackRequest, ResultCallbackRequest
from streamhub.services.internal_callbacks import CallbackProcessResult, InternalCallbackService

router = APIRouter(prefix="/internal/upload-jobs", tags=["Internal"])

_CALLBACK_RESPONSES = {
    200: {"model": CallbackIgnoredResponse},
    204: {"description": "Report applied"},
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": NoLeakNotFoundError},
}


def _callback_response(job_id: str, result: CallbackProcessResult) -> Response:
    if result.applied:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    ignored = CallbackIgnoredResponse(
        job_id=job_id,
        current_status=result.current_status,
        progress=result.progress,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=ignored.model_dump(mode="json"))


@router.post("/{jobId}/claim", status_code=status.HTTP_204_NO_CONTENT, responses=_CALLBACK_RESPONSES)
def post_claim_callback(
    jobId: str,
    _: Annotated[None, Depends(require_callback_secret)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    callback_service: Annotated[InternalCallbackService, Depends(get_internal_callback_service)],
) -> Response:
    result = callback_service.process_claim(job_id=jobId, correlation_id=correlation_id)
    return _callback_response(jobId, result)


@router.post("/{jobId}/progress", status_code=status.HTTP_204_NO_CONTENT, responses=_CALLBACK_RESPONSES)
def post_progress_callback(
    jobId: str,
    payload: ProgressCallbackRequest,
    _: Annotated[None, Depends(require_callback_secret)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    callback_service: Annotated[InternalCallbackService, Depends(get_internal_callback_service)],
) -> Response:
    result = callback_service.process_progress(
        job_id=jobId,
        progress=payload.progress,
        correlation_id=correlation_id,
    )
    return _callback_response(jobId, result)


@router.post("/{jobId}/result", status_code=status.HTTP_204_NO_CONTENT, responses=_CALLBACK_RESPONSES)
def post_result_callback(
    jobId: str,
    payload: ResultCallbackRequest,
    _: Annotated[None, Depends(require_callback_secret)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    callback_service: Annotated[InternalCallbackService, Depends(get_internal_callback_service)],
) -> Response:
    result = callback_service.process_result(job_id=jobId, payload=payload, correlation_id=correlation_id)
    return _callback_response(jobId, result)
