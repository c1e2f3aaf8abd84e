# src/campus_chat/main.py
"""Main entry point for the Campus Chat application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from campus_chat.api.v1 import chat_router, realtime_router
from campus_chat.core.settings import settings
from campus_chat.services.errors import (
    ChatError,
    InternalError,
    ValidationError,
    describe_validation_errors,
)
from campus_chat.services.factory import ChatRuntime, build_chat_runtime

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Campus Chat API",
    description="Real-time chat for the campus second-hand marketplace",
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
app.include_router(chat_router, prefix="/api/v1")
app.include_router(realtime_router, prefix="/api/v1")


@app.exception_handler(ChatError)
async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = ValidationError(describe_validation_errors(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Tests and embedding code may attach a runtime before startup.
    if getattr(app.state, "runtime", None) is None:
        if not settings.use_memory_store and settings.auto_create_tables:
            from campus_chat.db.session import create_tables

            create_tables()
        app.state.runtime = build_chat_runtime(settings)
        app.state.owns_runtime = True
    else:
        app.state.owns_runtime = False


@app.on_event("shutdown")
async def on_shutdown() -> None:
    runtime: ChatRuntime | None = getattr(app.state, "runtime", None)
    if runtime is not None and getattr(app.state, "owns_runtime", False):
        runtime.close()
        app.state.runtime = None


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
        "description": "Real-time chat for the campus second-hand marketplace",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("campus_chat.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
