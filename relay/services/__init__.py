"""Service layer for business logic."""

from relay.services.file_service import FileService

__all__ = [
    "FileService",
]
