"""
Cancellation tokens for executor round trips.

A `CancelToken` is handed to an executor call. The call registers an
interrupt callback for the duration of its round trip; cancelling the token
from another thread, or reaching its deadline, fires the callback, which
asks the driver to abort the running statement.
"""
import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from dbhelper.exceptions import OperationCancelled

logger = logging.getLogger(__name__)

__all__ = ['CancelToken']


class CancelToken:
    """Cancellation signal with an optional deadline.

    Usage:
        token = CancelToken(timeout=5)
        db.select(pool, ['id'], 'big_table', cancel=token)

        # or from another thread
        token.cancel()
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.deadline = time.monotonic() + timeout if timeout else None
        self.reason: str | None = None
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @classmethod
    def with_timeout(cls, timeout: float | None) -> 'CancelToken':
        return cls(timeout=timeout)

    @property
    def cancelled(self) -> bool:
        if self.reason is None and self.deadline is not None \
                and time.monotonic() >= self.deadline:
            self.reason = 'deadline exceeded'
        return self.reason is not None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self, reason: str = 'cancelled by caller') -> None:
        """Cancel the token and interrupt any round trip it is watching.

        Cancelling twice keeps the first reason.
        """
        with self._lock:
            if self.reason is None:
                self.reason = reason
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f'Interrupt callback failed: {e}')

    def check(self) -> None:
        """Raise OperationCancelled if the token already fired."""
        if self.cancelled:
            raise OperationCancelled(self.reason)

    @contextmanager
    def watch(self, interrupt: Callable[[], None]) -> Iterator[None]:
        """Run `interrupt` if the token fires while the block is active.

        Raises OperationCancelled on entry when the token already fired.
        """
        self.check()
        with self._lock:
            self._callbacks.append(interrupt)

        timer = None
        remaining = self.remaining()
        if remaining is not None:
            timer = threading.Timer(remaining, self.cancel, args=('deadline exceeded',))
            timer.daemon = True
            timer.start()
        try:
            yield
        finally:
            if timer is not None:
                timer.cancel()
            with self._lock:
                self._callbacks.remove(interrupt)
