"""FastAPI dependencies resolving components built at startup."""

from fastapi.requests import HTTPConnection

from relay.services.file_service import FileService


def get_file_service(connection: HTTPConnection) -> FileService:
    """Return the FileService stored on the application state."""
    return connection.app.state.file_service
