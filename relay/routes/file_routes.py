"""File listing, upload and delete API routes."""

from typing import List

from fastapi import APIRouter, Depends, Query

from relay.dependencies import get_file_service
from relay.schemas.common import ErrorResponse
from relay.schemas.files import (
    DeleteRemoteResponse,
    FileDescriptorResponse,
    MessageResponse,
    UploadTaskResponse,
)
from relay.services.file_service import FileService

router = APIRouter(tags=["Files"])


@router.get(
    "/files",
    response_model=List[FileDescriptorResponse],
    responses={500: {"model": ErrorResponse}}
)
async def list_files(file_service: FileService = Depends(get_file_service)):
    """
    List local files merged with their upload state.

    Returns:
        - Local files in scan order, with upload progress for files being
          uploaded and upload_id/link for files already in the remote folder,
          followed by remote-only files

    Raises:
        - 500: A local root or the remote folder could not be read
    """
    files = await file_service.list_files()
    return [FileDescriptorResponse.from_descriptor(entry) for entry in files]


@router.get(
    "/upload",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}
)
async def start_upload(
    path: str = Query(..., description="Local path of the file to upload"),
    file_service: FileService = Depends(get_file_service)
):
    """
    Start uploading a local file.

    Opening and claiming the file happen before the response: a missing,
    unreadable or already uploading file is answered here with 404, 403 or
    409. Once the transfer has started the call returns, and progress,
    completion and later failures arrive on the push channel.

    Raises:
        - 403: File not readable
        - 404: File not found
        - 409: File already uploading
    """
    await file_service.start_upload(path)
    return MessageResponse(message=f"Uploading {path}")


@router.delete(
    "/upload",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}}
)
async def cancel_upload(
    path: str = Query(..., description="Local path of the upload to cancel"),
    file_service: FileService = Depends(get_file_service)
):
    """
    Cancel an upload at its next chunk boundary.

    Raises:
        - 404: Path is not uploading
    """
    await file_service.cancel_upload(path)
    return MessageResponse(message=f"Cancelling upload of {path}")


@router.get("/uploads", response_model=List[UploadTaskResponse])
async def list_uploads(file_service: FileService = Depends(get_file_service)):
    """List uploads in flight with their current progress."""
    tasks = await file_service.list_uploads()
    return [UploadTaskResponse.from_task(task) for task in tasks]


@router.delete(
    "/delete",
    response_model=DeleteRemoteResponse,
    responses={500: {"model": ErrorResponse}}
)
async def delete_remote(
    upload_id: str = Query(..., description="Remote object id"),
    file_service: FileService = Depends(get_file_service)
):
    """
    Delete one object from the remote folder.

    Raises:
        - 500: The store refused or failed the deletion
    """
    await file_service.delete_remote(upload_id)
    return DeleteRemoteResponse(upload_id=upload_id)
