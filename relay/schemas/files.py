"""Pydantic schemas for file listing, upload and delete endpoints."""

from typing import Optional

from pydantic import BaseModel

from common.types import FileDescriptor, UploadTask


class FileDescriptorResponse(BaseModel):
    """One reconciled listing row."""
    path: str
    name: str
    size: int
    upload_id: str = ""
    upload_progress: float = 0.0
    link: Optional[str] = None

    @classmethod
    def from_descriptor(cls, descriptor: FileDescriptor) -> "FileDescriptorResponse":
        return cls(
            path=descriptor.path,
            name=descriptor.name,
            size=descriptor.size,
            upload_id=descriptor.upload_id or "",
            upload_progress=descriptor.progress,
            link=descriptor.link,
        )


class UploadTaskResponse(BaseModel):
    """An upload in flight."""
    path: str
    name: str
    size: int
    upload_progress: float

    @classmethod
    def from_task(cls, task: UploadTask) -> "UploadTaskResponse":
        return cls(
            path=task.path,
            name=task.name,
            size=task.total_size,
            upload_progress=task.current_progress,
        )


class MessageResponse(BaseModel):
    """Response model for upload start and cancel."""
    message: str


class DeleteRemoteResponse(BaseModel):
    """Response model for remote deletion."""
    upload_id: str
