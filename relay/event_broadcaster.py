"""Fan-out of upload events to connected push-channel listeners."""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Set, Union

logger = logging.getLogger(__name__)


# session_id names the upload session that published an event; replies
# addressed to a single client carry None

@dataclass(frozen=True)
class ErrorEvent:
    message: str
    path: Optional[str] = None
    session_id: Optional[str] = field(default=None, compare=False)

    def to_message(self) -> Dict[str, Any]:
        return {"error": self.message}


@dataclass(frozen=True)
class ProgressEvent:
    path: str
    name: str
    size: int
    progress: float
    session_id: Optional[str] = field(default=None, compare=False)

    def to_message(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "size": self.size,
            "upload_id": "",
            "upload_progress": self.progress,
        }


@dataclass(frozen=True)
class CompletionEvent:
    path: str
    name: str
    size: int
    upload_id: str
    link: str
    session_id: Optional[str] = field(default=None, compare=False)

    @property
    def progress(self) -> float:
        return 100.0

    def to_message(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "size": self.size,
            "upload_id": self.upload_id,
            "upload_progress": self.progress,
            "link": self.link,
        }


UploadEvent = Union[ErrorEvent, ProgressEvent, CompletionEvent]


class Subscription:
    """One listener's private, unbounded event queue."""

    def __init__(self):
        self.queue: "asyncio.Queue[UploadEvent]" = asyncio.Queue()

    async def get(self) -> UploadEvent:
        return await self.queue.get()

    def get_nowait(self) -> UploadEvent:
        return self.queue.get_nowait()


class EventBroadcaster:
    """
    Delivers every published event to every current subscriber.

    Delivery is best-effort and at-most-once: nothing is buffered for
    listeners that subscribe later.
    """

    def __init__(self):
        self._subscriptions: Set[Subscription] = set()

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        subscription = Subscription()
        self._subscriptions.add(subscription)
        logger.info(f"Listener subscribed. Total listeners: {len(self._subscriptions)}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.discard(subscription)
            logger.info(f"Listener unsubscribed. Total listeners: {len(self._subscriptions)}")

    @contextmanager
    def listen(self) -> Iterator[Subscription]:
        subscription = self.subscribe()
        try:
            yield subscription
        finally:
            self.unsubscribe(subscription)

    def publish(self, event: UploadEvent) -> None:
        if isinstance(event, ErrorEvent):
            logger.warning(f"Upload error: {event.message}")
        elif isinstance(event, ProgressEvent):
            logger.debug(f"{event.name}: {event.progress:.2f}%")
        else:
            logger.info(f"Uploaded {event.name} as {event.upload_id}")

        for subscription in list(self._subscriptions):
            subscription.queue.put_nowait(event)
