"""Cooperative cancellation honored at stage boundaries."""

import threading

from intent_pipeline.core.exceptions import CancelledRunError


class CancellationToken:
    """A thread-safe, set-once cancellation flag.

    The orchestrator checks the token only between stages, so a collaborator
    call that has started always completes (or fails) before cancellation
    takes effect, and no partial artifact can escape.
    """

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    def cancel(self, reason: str = "Cancelled by caller") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self) -> None:
        """Raise `CancelledRunError` when the token has been set."""
        if self._event.is_set():
            raise CancelledRunError(self._reason)
