"""Upload routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from streamhub.errors import ApiError
from streamhub.routes.dependencies import (
    get_authenticated_principal,
    get_upload_completion_service,
    get_upload_job_service,
)
from streamhub.schemas.auth import AuthPrincipal
from streamhub.schemas.error import (
    AlreadyProcessedError,
    ErrorResponse,
    ForbiddenError,
    NoLeakNotFoundError,
    ServiceUnavailableError,
    UploadRejectedError,
)
from streamhub.schemas.upload import (
    CompleteUploadRequest,
    CompleteUploadResponse,
    UploadJob,
    UploadJobStatus,
)
from streamhub.services.upload_completion import UploadCompletionService
from streamhub.services.uploads import UploadJobService

router = APIRouter(prefix="/upload", tags=["Uploads"])


@router.post(
    "/complete",
    response_model=CompleteUploadResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        400: {"model": AlreadyProcessedError | UploadRejectedError},
        401: {"model": ErrorResponse},
        403: {"model": ForbiddenError},
        404: {"model": NoLeakNotFoundError},
        503: {"model": ServiceUnavailableError},
    },
)
def complete_upload(
    payload: CompleteUploadRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[UploadCompletionService, Depends(get_upload_completion_service)],
) -> CompleteUploadResponse:
    outcome = service.complete_upload(
        principal=principal,
        job_id=payload.job_id,
        reported_file_url=payload.file_url,
    )
    if outcome.already_processed:
        raise ApiError(
            status_code=400,
            code="UPLOAD_ALREADY_PROCESSED",
            message="Upload has already been processed.",
            details={"current_status": outcome.status.value},
        )
    return CompleteUploadResponse(
        job_id=outcome.job_id,
        queue_task_id=outcome.queue_task_id or "",
        status=outcome.status,
    )


@router.get(
    "/status/{jobId}",
    response_model=UploadJobStatus,
    responses={401: {"model": ErrorResponse}, 403: {"model": ForbiddenError}, 404: {"model": NoLeakNotFoundError}},
)
def get_upload_status(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[UploadJobService, Depends(get_upload_job_service)],
) -> UploadJobStatus:
    return service.get_status(principal=principal, job_id=job_id)


@router.get(
    "/jobs",
    response_model=list[UploadJob],
    responses={401: {"model": ErrorResponse}},
)
def list_upload_jobs(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[UploadJobService, Depends(get_upload_job_service)],
) -> list[UploadJob]:
    return service.list_jobs(principal=principal)
