import threading
import time
from typing import Optional

from shortlink.core.errors import OperationCancelled, OperationTimeout


class Deadline:
    """Time budget and cancel signal carried through a single request.

    Checked before every store call; an operation never starts a store call
    once its deadline has passed or its cancel event is set.
    """

    def __init__(self, timeout: Optional[float] = None, cancel_event: Optional[threading.Event] = None):
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self):
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, operation: str):
        if self.cancelled:
            raise OperationCancelled(f"{operation} cancelled")
        if self.expired:
            raise OperationTimeout(f"{operation} exceeded its deadline")
