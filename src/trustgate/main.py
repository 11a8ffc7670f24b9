# src/trustgate/main.py
"""Main entry point for the Trustgate application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from trustgate.api.v1 import (
    appeals_router,
    audit_router,
    content_router,
    jury_router,
    moderation_router,
    promotions_router,
    trust_router,
    users_router,
)
from trustgate.core.errors import (
    ForbiddenError,
    GovernanceError,
    NotFoundError,
    PreconditionError,
    UpstreamUnavailable,
    ValidationError,
)
from trustgate.core.settings import settings
from trustgate.schemas import ErrorResponse
from trustgate.services.governance import get_governance
from trustgate.services.trust import TrustRecalcWorker
from trustgate.services.upstream import close_upstream_clients

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[GovernanceError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    PreconditionError: status.HTTP_409_CONFLICT,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UpstreamUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Trust and moderation governance engine",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(content_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")
app.include_router(appeals_router, prefix="/api/v1")
app.include_router(jury_router, prefix="/api/v1")
app.include_router(promotions_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(audit_router, prefix="/api/v1")
app.include_router(trust_router, prefix="/api/v1")


@app.exception_handler(GovernanceError)
async def governance_error_handler(request: Request, exc: GovernanceError) -> JSONResponse:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Upstream error escaped to %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=exc.message, code=exc.code).model_dump(),
    )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.trust_sweep_enabled:
        worker = TrustRecalcWorker(get_governance().trust_queue)
        await worker.start()
        app.state.trust_worker = worker
    else:
        app.state.trust_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: TrustRecalcWorker | None = getattr(app.state, "trust_worker", None)
    if worker:
        await worker.stop()
    await close_upstream_clients()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": "Trust and moderation governance engine",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("trustgate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
