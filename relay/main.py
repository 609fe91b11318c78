"""Entry point for the relay service."""

import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from common.logging_config import setup_logging
from relay.cancellation import CancelToken
from relay.config import RELAY_HOST, RELAY_PORT, RelaySettings
from relay.exceptions import (
    RelayException,
    LocalIOError,
    LocalFileNotFoundError,
    LocalPermissionError,
    RemoteError,
    ProtocolError,
    UploadInProgressError,
    UploadNotFoundError,
    UploadCancelledError
)
from relay.object_store import ObjectStore
from relay.routes.file_routes import router as file_router
from relay.routes.socket_routes import router as socket_router
from relay.schemas.common import ErrorResponse
from relay.services.file_service import FileService

logger = setup_logging('relay')


def _build_store(settings: RelaySettings) -> ObjectStore:
    from relay.drive_store import DriveObjectStore

    return DriveObjectStore(
        folder_id=settings.folder_id,
        credentials_file=settings.credentials_file,
        chunk_size=settings.upload_chunk_size,
    )


def _error_response(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    log = logger.error if status_code >= 500 else logger.warning
    log(f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=str(exc), code=code).model_dump())


def create_app(settings: Optional[RelaySettings] = None, store: Optional[ObjectStore] = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Relay settings; read from the environment when omitted
        store: Object store; a Google Drive store is created at startup when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or RelaySettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Relay service starting up...")

        shutdown_token = CancelToken()
        object_store = store or _build_store(settings)
        app.state.file_service = FileService(
            store=object_store,
            roots=settings.roots,
            folder_id=settings.folder_id,
            quota_limit=settings.quota_limit,
            shutdown_token=shutdown_token,
        )
        logger.info(
            f"Watching {len(settings.roots)} roots, uploading to folder "
            f"{settings.folder_id or '<root>'} (quota {settings.quota_limit} bytes)"
        )

        yield

        logger.info("Relay service shutting down...")
        await app.state.file_service.shutdown()
        await object_store.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Drive Relay",
        description="Local file listing and upload relay for a Google Drive folder",
        version="1.0.0",
        lifespan=lifespan
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests and responses.
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

        response = await call_next(request)

        duration = time.time() - start_time

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
        )

        response.headers["X-Request-ID"] = request_id

        return response

    @app.exception_handler(LocalFileNotFoundError)
    async def local_file_not_found_handler(request: Request, exc: LocalFileNotFoundError):
        return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "FILE_NOT_FOUND")

    @app.exception_handler(LocalPermissionError)
    async def local_permission_handler(request: Request, exc: LocalPermissionError):
        return _error_response(request, exc, status.HTTP_403_FORBIDDEN, "PERMISSION_DENIED")

    @app.exception_handler(LocalIOError)
    async def local_io_handler(request: Request, exc: LocalIOError):
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "LOCAL_IO_ERROR")

    @app.exception_handler(RemoteError)
    async def remote_error_handler(request: Request, exc: RemoteError):
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "REMOTE_ERROR")

    @app.exception_handler(ProtocolError)
    async def protocol_error_handler(request: Request, exc: ProtocolError):
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "PROTOCOL_ERROR")

    @app.exception_handler(UploadInProgressError)
    async def upload_in_progress_handler(request: Request, exc: UploadInProgressError):
        return _error_response(request, exc, status.HTTP_409_CONFLICT, "UPLOAD_IN_PROGRESS")

    @app.exception_handler(UploadNotFoundError)
    async def upload_not_found_handler(request: Request, exc: UploadNotFoundError):
        return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "UPLOAD_NOT_FOUND")

    @app.exception_handler(UploadCancelledError)
    async def upload_cancelled_handler(request: Request, exc: UploadCancelledError):
        return _error_response(request, exc, status.HTTP_409_CONFLICT, "UPLOAD_CANCELLED")

    @app.exception_handler(RelayException)
    async def relay_exception_handler(request: Request, exc: RelayException):
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")

    app.include_router(file_router)
    app.include_router(socket_router)

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.
        Returns 200 if service is alive.
        """
        return {"status": "healthy", "service": "relay"}

    if settings.web_dir and os.path.isdir(settings.web_dir):
        app.mount("/", StaticFiles(directory=settings.web_dir, html=True), name="web")
    else:
        @app.get("/")
        async def root():
            """
            Root endpoint when no web client is installed.
            """
            return {"message": "Drive Relay API", "status": "running"}

    return app


app = create_app()


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "relay.main:app",
        host=RELAY_HOST,
        port=RELAY_PORT
    )


if __name__ == "__main__":
    main()
