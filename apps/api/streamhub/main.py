"""FastAPI application entrypoint.

Run with ``uvicorn streamhub.main:create_app --factory``; settings are read
from ``STREAMHUB_*`` environment variables when the app is built.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from streamhub.adapters.queue import JobQueue
from streamhub.adapters.storage import ObjectStorage
from streamhub.core.backends import build_queue, build_storage, build_store
from streamhub.core.config import Settings, get_settings
from streamhub.errors import ApiError, StoreUnavailableError
from streamhub.repositories.base import CatalogRepository, UploadJobRepository
from streamhub.routes import admin_router, internal_router, uploads_router
from streamhub.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)

_OPENAPI_RESPONSE_CODES: dict[str, dict[str, set[str]]] = {
    "/api/v1/upload/complete": {"post": {"202", "400", "401", "403", "404", "503"}},
    "/api/v1/upload/status/{jobId}": {"get": {"200", "401", "403", "404"}},
    "/api/v1/upload/jobs": {"get": {"200", "401"}},
    "/api/v1/internal/upload-jobs/{jobId}/claim": {"post": {"200", "204", "401", "404"}},
    "/api/v1/internal/upload-jobs/{jobId}/progress": {"post": {"200", "204", "400", "401", "404"}},
    "/api/v1/internal/upload-jobs/{jobId}/result": {"post": {"200", "204", "400", "401", "404"}},
    "/api/v1/admin/content/{contentId}": {"delete": {"200", "401", "403", "404"}},
    "/api/v1/admin/content/{contentId}/poster": {"delete": {"200", "401", "403", "404"}},
    "/api/v1/admin/content/{contentId}/video": {"delete": {"200", "401", "403", "404"}},
    "/api/v1/admin/upload-jobs/sweep": {"post": {"200", "401", "403"}},
}

_BODY_VALIDATION_PATHS: dict[tuple[str, str], str] = {
    ("POST", "/api/v1/upload/complete"): "Invalid upload completion payload",
    ("POST", "/api/v1/internal/upload-jobs/{jobId}/progress"): "Invalid progress callback payload",
    ("POST", "/api/v1/internal/upload-jobs/{jobId}/result"): "Invalid result callback payload",
}

_COMPLETE_UPLOAD_400_ONEOF_REFS: list[str] = [
    "#/components/schemas/AlreadyProcessedError",
    "#/components/schemas/UploadRejectedError",
]


def _apply_contract_response_codes(schema: dict) -> None:
    """Limit documented response codes to the API contract."""
    for path, methods in _OPENAPI_RESPONSE_CODES.items():
        path_item = schema.get("paths", {}).get(path)
        if not path_item:
            continue

        for method, allowed_codes in methods.items():
            operation = path_item.get(method)
            if not operation:
                continue

            responses = operation.setdefault("responses", {})
            for status_code in list(responses.keys()):
                if status_code not in allowed_codes:
                    responses.pop(status_code, None)

            for status_code in sorted(allowed_codes):
                responses.setdefault(status_code, {"description": "See API contract"})


def _apply_complete_upload_rejection_schema(schema: dict) -> None:
    """Force the completion 400 response schema to a oneOf of the rejection shapes."""
    path_item = schema.get("paths", {}).get("/api/v1/upload/complete")
    if not path_item:
        return

    operation = path_item.get("post")
    if not operation:
        return

    responses = operation.setdefault("responses", {})
    rejected = responses.setdefault("400", {"description": "See API contract"})
    content = rejected.setdefault("content", {}).setdefault("application/json", {})
    content["schema"] = {"oneOf": [{"$ref": ref} for ref in _COMPLETE_UPLOAD_400_ONEOF_REFS]}


def create_app(
    settings: Settings | None = None,
    *,
    store: UploadJobRepository | None = None,
    queue: JobQueue | None = None,
    storage: ObjectStorage | None = None,
) -> FastAPI:
    if store is None or queue is None or storage is None:
        settings = settings or get_settings()

    app = FastAPI(title="StreamHub Upload API", version="1.0.0")
    app.state.store = store if store is not None else build_store(settings)
    app.state.queue = queue if queue is not None else build_queue(settings)
    app.state.storage = storage if storage is not None else build_storage(settings)
    if not isinstance(app.state.store, CatalogRepository):
        raise TypeError("store must also implement CatalogRepository")

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
        logger.warning("store.unavailable method=%s path=%s reason=%s", request.method, request.url.path, exc)
        payload = ErrorResponse(
            code="STORE_UNAVAILABLE",
            message="Upload job store is unavailable; retry the request.",
            details={"retryable": True},
        )
        return JSONResponse(status_code=503, content=payload.model_dump())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Keep contract endpoints on the shared error payload shape.
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        message = _BODY_VALIDATION_PATHS.get((request.method.upper(), route_path))
        if message is not None:
            payload = ErrorResponse(
                code="VALIDATION_ERROR",
                message=message,
                details={"fields": [".".join(str(part) for part in error["loc"]) for error in exc.errors()]},
            )
            return JSONResponse(status_code=400, content=payload.model_dump())

        return await request_validation_exception_handler(request, exc)

    api_prefix = "/api/v1"
    app.include_router(uploads_router, prefix=api_prefix)
    app.include_router(internal_router, prefix=api_prefix)
    app.include_router(admin_router, prefix=api_prefix)

    def custom_openapi() -> dict:
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        _apply_contract_response_codes(schema)
        _apply_complete_upload_rejection_schema(schema)
        app.openapi_schema = schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
