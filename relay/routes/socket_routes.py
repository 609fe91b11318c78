"""Push-channel WebSocket routes."""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, status

from relay.dependencies import get_file_service
from relay.event_broadcaster import CompletionEvent, ErrorEvent, Subscription
from relay.exceptions import ProtocolError, RelayException, UploadNotFoundError
from relay.services.file_service import FileService
from relay.upload_session import UploadSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Push channel"])


def parse_client_frame(text: Optional[str]) -> str:
    """
    Parse a client frame; the only command is {"cancel": "<local path>"}.

    Returns:
        The path to cancel

    Raises:
        ProtocolError: If the frame is not a JSON cancel command
    """
    if text is None:
        raise ProtocolError("Only text frames are accepted")
    try:
        frame = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Malformed frame: {e.msg}") from e

    if not isinstance(frame, dict) or not isinstance(frame.get("cancel"), str) or not frame["cancel"]:
        raise ProtocolError('Expected {"cancel": "<path>"}')
    return frame["cancel"]


async def _read_client_frames(websocket: WebSocket, subscription: Subscription, file_service: FileService) -> None:
    """Handle client commands until the client disconnects; replies go through the subscription."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return

        try:
            path = parse_client_frame(message.get("text"))
            await file_service.cancel_upload(path)
        except (ProtocolError, UploadNotFoundError) as e:
            logger.warning(f"Rejected client frame: {e}")
            subscription.queue.put_nowait(ErrorEvent(str(e)))


async def _forward_all(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        event = await subscription.get()
        await websocket.send_json(event.to_message())


async def _forward_session(websocket: WebSocket, subscription: Subscription, session: UploadSession) -> None:
    """Forward one session's events (and replies to this client), closing after its last event."""
    while True:
        event = await subscription.get()
        if event.session_id not in (None, session.session_id):
            continue
        await websocket.send_json(event.to_message())
        if event.session_id == session.session_id and isinstance(event, (CompletionEvent, ErrorEvent)):
            break

    await websocket.close()
    logger.info(f"Upload socket for {session.path} finished")


def _stop_sender(sender: asyncio.Task) -> None:
    if not sender.done():
        sender.cancel()
    elif not sender.cancelled() and sender.exception() is not None:
        logger.warning(f"Push channel send failed: {sender.exception()}")


@router.websocket("/socket")
async def push_channel(websocket: WebSocket, file_service: FileService = Depends(get_file_service)):
    """
    Stream every error, progress and completion event to the client.

    Events published before the client connected are not replayed. Client
    frames are read on the handler's own task; only sending runs beside it.
    """
    await websocket.accept()
    logger.info("socket opened")

    with file_service.broadcaster.listen() as subscription:
        sender = asyncio.create_task(_forward_all(websocket, subscription))
        try:
            await _read_client_frames(websocket, subscription, file_service)
        finally:
            _stop_sender(sender)

    logger.info("socket closed")


@router.websocket("/upload/socket")
async def upload_socket(
    websocket: WebSocket,
    path: Optional[str] = Query(None),
    file_service: FileService = Depends(get_file_service)
):
    """
    Upload one file for the lifetime of this connection.

    Streams the upload's events and closes after completion or failure.
    Closing the connection early cancels the upload at its next chunk.
    """
    if not path:
        error = ProtocolError("path query parameter is required")
        logger.warning(f"Rejected upload socket: {error}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(error))
        return

    await websocket.accept()
    connection_token = file_service.shutdown_token.child()

    with file_service.broadcaster.listen() as subscription:
        try:
            session = await file_service.start_upload(path, cancel=connection_token)
        except RelayException as e:
            await websocket.send_json({"error": str(e)})
            await websocket.close()
            return

        sender = asyncio.create_task(_forward_session(websocket, subscription, session))
        try:
            await _read_client_frames(websocket, subscription, file_service)
        finally:
            # runs on disconnect and when the server cancels the handler
            _stop_sender(sender)
            if not session.runner.done():
                connection_token.cancel("connection closed")
                logger.info(f"Upload socket for {session.path} closed by client")
