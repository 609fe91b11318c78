"""Pydantic schemas for API responses."""

from relay.schemas.files import (
    FileDescriptorResponse,
    UploadTaskResponse,
    MessageResponse,
    DeleteRemoteResponse
)
from relay.schemas.common import ErrorResponse

__all__ = [
    "FileDescriptorResponse",
    "UploadTaskResponse",
    "MessageResponse",
    "DeleteRemoteResponse",
    "ErrorResponse"
]
