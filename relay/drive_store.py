"""Google Drive implementation of the object store."""

import asyncio
import logging
from typing import BinaryIO, Callable, List, Optional, TypeVar

import google.auth
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from common.constants import (
    DRIVE_LIST_PAGE_SIZE,
    DRIVE_SCOPES,
    UPLOAD_CHUNK_ALIGNMENT_BYTES,
    UPLOAD_CHUNK_SIZE_BYTES,
)
from relay.exceptions import RemoteError
from relay.object_store import ObjectStore, ProgressCallback, StoredObject, StoreEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

LIST_FIELDS = "nextPageToken, files(id, name, size, mimeType, createdTime, webViewLink)"
CREATE_FIELDS = "id, webViewLink"

TRANSPORT_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


class DriveObjectStore(ObjectStore):
    """
    Drive v3 client for the relay's destination folder.

    Listing and deletion build their API client inside the worker thread
    that runs them. An upload builds one client and drives its chunks one
    at a time, so no httplib2 transport is used by two threads at once.
    """

    def __init__(
        self,
        folder_id: Optional[str] = None,
        credentials_file: Optional[str] = None,
        chunk_size: int = UPLOAD_CHUNK_SIZE_BYTES,
    ):
        """
        Initialize store with lazy credentials.

        Args:
            folder_id: Folder to list and upload into (None for the whole drive)
            credentials_file: Service-account JSON file; application-default
                credentials are used when omitted
            chunk_size: Resumable upload chunk size, rounded down to 256 KiB
        """
        self.folder_id = folder_id or None
        self.credentials_file = credentials_file
        self.chunk_size = max(
            UPLOAD_CHUNK_ALIGNMENT_BYTES,
            chunk_size - chunk_size % UPLOAD_CHUNK_ALIGNMENT_BYTES,
        )
        self._credentials = None

    def _ensure_credentials(self):
        """Load credentials once."""
        if self._credentials is None:
            if self.credentials_file:
                self._credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_file, scopes=DRIVE_SCOPES
                )
                logger.info(f"Loaded service account credentials from {self.credentials_file}")
            else:
                self._credentials, project = google.auth.default(scopes=DRIVE_SCOPES)
                logger.info(f"Loaded application default credentials (project={project})")
        return self._credentials

    def _build_service(self):
        return build("drive", "v3", credentials=self._ensure_credentials(), cache_discovery=False)

    async def _call(self, operation: Callable[[], T], action: str) -> T:
        """
        Run a blocking Drive call in a worker thread.

        Raises:
            RemoteError: If the call fails for any transport or auth reason
        """
        try:
            return await asyncio.to_thread(operation)
        except TRANSPORT_ERRORS as e:
            logger.error(f"Drive {action} failed: {e}")
            raise RemoteError(f"Drive {action} failed: {e}") from e

    def _list_query(self) -> str:
        if self.folder_id:
            return f"'{self.folder_id}' in parents and trashed = false"
        return "trashed = false"

    def _list_sync(self) -> List[StoreEntry]:
        service = self._build_service()
        entries = []
        page_token = None

        while True:
            response = service.files().list(
                q=self._list_query(),
                fields=LIST_FIELDS,
                pageSize=DRIVE_LIST_PAGE_SIZE,
                pageToken=page_token,
            ).execute()

            for item in response.get("files", []):
                entries.append(StoreEntry(
                    id=item["id"],
                    name=item.get("name", ""),
                    size=int(item.get("size", 0)),
                    created_at=item.get("createdTime", ""),
                    mime_type=item.get("mimeType", ""),
                    link=item.get("webViewLink", ""),
                ))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return entries

    async def list(self) -> List[StoreEntry]:
        entries = await self._call(self._list_sync, "list")
        logger.debug(f"Listed {len(entries)} Drive objects")
        return entries

    async def create(
        self,
        name: str,
        parent_folder_id: Optional[str],
        content: BinaryIO,
        total_size: int,
        mime_type: str,
        on_progress: ProgressCallback,
    ) -> StoredObject:
        body = {"name": name}
        if parent_folder_id:
            body["parents"] = [parent_folder_id]

        media = MediaIoBaseUpload(content, mimetype=mime_type, chunksize=self.chunk_size, resumable=True)

        service = await self._call(self._build_service, "connect")
        request = service.files().create(body=body, media_body=media, fields=CREATE_FIELDS)

        response = None
        while response is None:
            status, response = await self._call(request.next_chunk, "upload")
            if status is not None:
                await on_progress(status.resumable_progress, status.total_size or total_size)

        logger.info(f"Created Drive object {response['id']} for {name}")
        return StoredObject(id=response["id"], link=response.get("webViewLink", ""))

    async def delete(self, object_id: str) -> None:
        def delete_sync():
            self._build_service().files().delete(fileId=object_id).execute()

        await self._call(delete_sync, "delete")
        logger.info(f"Deleted Drive object {object_id}")
