"""Admin routes for content and media deletion and the reconciliation sweep."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from streamhub.routes.dependencies import get_cleanup_service, get_sweeper, require_admin
from streamhub.schemas.auth import AuthPrincipal
from streamhub.schemas.error import ErrorResponse, ForbiddenError, NoLeakNotFoundError
from streamhub.services.cleanup import ContentCleanupService
from streamhub.services.sweeper import UploadSweeper

router = APIRouter(prefix="/admin", tags=["Admin"])


class ContentDeletedResponse(BaseModel):
    content_id: str
    deleted_objects: int
    failed_objects: int


class ContentMediaClearedResponse(BaseModel):
    content_id: str
    field: str
    deleted_objects: int
    failed_objects: int


class SweepResponse(BaseModel):
    requeued: int
    timed_out: int
    requeue_failed: int


@router.delete(
    "/content/{contentId}",
    response_model=ContentDeletedResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ForbiddenError}, 404: {"model": NoLeakNotFoundError}},
)
def delete_content(
    content_id: Annotated[str, Path(alias="contentId")],
    _: Annotated[AuthPrincipal, Depends(require_admin)],
    service: Annotated[ContentCleanupService, Depends(get_cleanup_service)],
) -> ContentDeletedResponse:
    report = service.delete_content(content_id=content_id)
    return ContentDeletedResponse(
        content_id=report.content_id,
        deleted_objects=len(report.deleted_keys),
        failed_objects=len(report.failed_keys),
    )


def _clear_media(service: ContentCleanupService, content_id: str, field_name: str) -> ContentMediaClearedResponse:
    report = service.clear_content_media(content_id=content_id, field_name=field_name)
    return ContentMediaClearedResponse(
        content_id=report.content_id,
        field=field_name,
        deleted_objects=len(report.deleted_keys),
        failed_objects=len(report.failed_keys),
    )


@router.delete(
    "/content/{contentId}/poster",
    response_model=ContentMediaClearedResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ForbiddenError}, 404: {"model": NoLeakNotFoundError}},
)
def delete_content_poster(
    content_id: Annotated[str, Path(alias="contentId")],
    _: Annotated[AuthPrincipal, Depends(require_admin)],
    service: Annotated[ContentCleanupService, Depends(get_cleanup_service)],
) -> ContentMediaClearedResponse:
    return _clear_media(service, content_id, "poster_url")


@router.delete(
    "/content/{contentId}/video",
    response_model=ContentMediaClearedResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ForbiddenError}, 404: {"model": NoLeakNotFoundError}},
)
def delete_content_video(
    content_id: Annotated[str, Path(alias="contentId")],
    _: Annotated[AuthPrincipal, Depends(require_admin)],
    service: Annotated[ContentCleanupService, Depends(get_cleanup_service)],
) -> ContentMediaClearedResponse:
    return _clear_media(service, content_id, "video_url")


@router.post(
    "/upload-jobs/sweep",
    response_model=SweepResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ForbiddenError}},
)
def sweep_upload_jobs(
    _: Annotated[AuthPrincipal, Depends(require_admin)],
    sweeper: Annotated[UploadSweeper, Depends(get_sweeper)],
) -> SweepResponse:
    report = sweeper.run()
    return SweepResponse(
        requeued=len(report.requeued),
        timed_out=len(report.timed_out),
        requeue_failed=len(report.requeue_failed),
    )
