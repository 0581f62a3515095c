"""Dependency wiring for routes."""

from __future__ import annotations

from datetime import timedelta
import logging
from secrets import compare_digest
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from streamhub.adapters.auth import (
    AuthVerificationError,
    FirebaseTokenVerifier,
    MockTokenVerifier,
    TokenVerifier,
)
from streamhub.adapters.queue import JobQueue
from streamhub.adapters.storage import ObjectStorage
from streamhub.core.config import Settings, get_settings
from streamhub.core.logging_safety import safe_log_identifier
from streamhub.errors import ApiError
from streamhub.repositories.base import CatalogRepository, UploadJobRepository
from streamhub.schemas.auth import AuthPrincipal
from streamhub.services.cleanup import ContentCleanupService
from streamhub.services.internal_callbacks import InternalCallbackService
from streamhub.services.sweeper import UploadSweeper
from streamhub.services.upload_completion import UploadCompletionService
from streamhub.services.uploads import UploadJobService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
callback_secret_scheme = APIKeyHeader(
    name="X-Callback-Secret",
    auto_error=False,
    scheme_name="internalCallbackSecret",
)
logger = logging.getLogger(__name__)


def _auth_error(message: str) -> ApiError:
    return ApiError(status_code=401, code="UNAUTHORIZED", message=message)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_request_correlation_id(request: Request) -> str:
    return _request_correlation_id(request)


def get_token_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> TokenVerifier:
    """Resolve provider adapter from configuration."""
    if settings.auth_provider == "firebase":
        return FirebaseTokenVerifier(
            project_id=settings.firebase_project_id,
            audience=settings.firebase_audience,
        )
    return MockTokenVerifier()


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> AuthPrincipal:
    """Validate bearer token and attach normalized principal to request context."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid or missing bearer token")

    try:
        principal = verifier.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error(str(exc) or "Invalid bearer token") from exc

    safe_principal_id = safe_log_identifier(principal.user_id, prefix="pid")
    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s role=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_principal_id,
        principal.role,
    )
    request.state.auth_principal = principal
    return principal


async def require_admin(
    request: Request,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
) -> AuthPrincipal:
    if not principal.is_admin:
        logger.warning(
            "auth.forbidden correlation_id=%s method=%s path=%s principal_id=%s reason=admin_required",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.method,
            request.url.path,
            safe_log_identifier(principal.user_id, prefix="pid"),
        )
        raise ApiError(status_code=403, code="FORBIDDEN", message="Admin role required")
    return principal


async def require_callback_secret(
    request: Request,
    callback_secret: Annotated[str | None, Security(callback_secret_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """Validate callback secret for internal endpoints."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    if callback_secret is None or not compare_digest(callback_secret, settings.callback_secret):
        logger.warning(
            "callback.auth_rejected correlation_id=%s method=%s path=%s reason=invalid_callback_secret",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid callback authentication")


def get_store(request: Request) -> UploadJobRepository:
    return request.app.state.store


def get_catalog(request: Request) -> CatalogRepository:
    return request.app.state.store


def get_queue(request: Request) -> JobQueue:
    return request.app.state.queue


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_upload_job_service(store: Annotated[UploadJobRepository, Depends(get_store)]) -> UploadJobService:
    return UploadJobService(store)


def get_upload_completion_service(
    store: Annotated[UploadJobRepository, Depends(get_store)],
    catalog: Annotated[CatalogRepository, Depends(get_catalog)],
    queue: Annotated[JobQueue, Depends(get_queue)],
) -> UploadCompletionService:
    return UploadCompletionService(store, catalog, queue)


def get_internal_callback_service(
    store: Annotated[UploadJobRepository, Depends(get_store)],
    catalog: Annotated[CatalogRepository, Depends(get_catalog)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> InternalCallbackService:
    return InternalCallbackService(
        store,
        catalog,
        reclaim_after=timedelta(seconds=settings.reclaim_processing_seconds),
    )


def get_cleanup_service(
    catalog: Annotated[CatalogRepository, Depends(get_catalog)],
    storage: Annotated[ObjectStorage, Depends(get_storage)],
) -> ContentCleanupService:
    return ContentCleanupService(catalog, storage)


def get_sweeper(
    store: Annotated[UploadJobRepository, Depends(get_store)],
    catalog: Annotated[CatalogRepository, Depends(get_catalog)],
    queue: Annotated[JobQueue, Depends(get_queue)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UploadSweeper:
    return UploadSweeper(
        store,
        catalog,
        queue,
        stranded_after=timedelta(seconds=settings.stranded_upload_seconds),
        stale_after=timedelta(seconds=settings.stale_processing_seconds),
    )
