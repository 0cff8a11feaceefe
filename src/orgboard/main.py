# src/orgboard/main.py
"""Main entry point for the Orgboard application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from orgboard.api.v1 import (
    interactions_router,
    leaderboard_router,
    organizations_router,
    posts_router,
    tags_router,
)
from orgboard.core.settings import settings
from orgboard.services.errors import (
    ConstraintViolation,
    NetworkError,
    NotFoundError,
    OrgboardError,
    PermissionDenied,
    ValidationError,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Orgboard API",
    description="Campus organization posts, polls, events and feedback forms",
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
app.include_router(posts_router, prefix="/api/v1")
app.include_router(interactions_router, prefix="/api/v1")
app.include_router(tags_router, prefix="/api/v1")
app.include_router(organizations_router, prefix="/api/v1")
app.include_router(leaderboard_router, prefix="/api/v1")

_STATUS_BY_ERROR: dict[type[OrgboardError], int] = {
    ValidationError: 422,
    ConstraintViolation: 409,
    NotFoundError: 404,
    PermissionDenied: 403,
    NetworkError: 503,
}


@app.exception_handler(OrgboardError)
async def orgboard_error_handler(request: Request, exc: OrgboardError) -> JSONResponse:
    """Render typed service errors; field errors accompany validation failures."""
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    body: dict[str, object] = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        body["field_errors"] = exc.field_errors
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=body)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("orgboard.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
