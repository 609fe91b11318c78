"""Cooperative cancellation tokens for uploads."""

from typing import Optional

from relay.exceptions import UploadCancelledError


class CancelToken:
    """
    Cooperative cancellation flag, optionally derived from a parent token.

    A derived token reports cancelled as soon as any ancestor is cancelled,
    so cancelling the application token stops every upload while cancelling
    one connection's token only stops the uploads that connection started.
    """

    def __init__(self, parent: Optional["CancelToken"] = None):
        self._parent = parent
        self._reason: Optional[str] = None

    def child(self) -> "CancelToken":
        """Create a token that is cancelled whenever this one is."""
        return CancelToken(parent=self)

    def cancel(self, reason: str = "cancelled") -> None:
        if self._reason is None:
            self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    @property
    def reason(self) -> Optional[str]:
        if self._reason is not None:
            return self._reason
        if self._parent is not None:
            return self._parent.reason
        return None

    def raise_if_cancelled(self) -> None:
        """Raise UploadCancelledError if this token or an ancestor was cancelled."""
        reason = self.reason
        if reason is not None:
            raise UploadCancelledError(reason)
