from collections.abc import Callable
from threading import Event, Lock

from catalog.exceptions.base import OperationCancelledError

__all__ = [
    "CancellationToken",
]


class CancellationToken:
    """
    Cooperative cancellation signal shared between a caller and the store.

    The caller (or a timer) calls `cancel()`. Store operations check the token
    before every statement and register a callback that interrupts the
    statement currently running on their connection.
    """

    def __init__(self) -> None:
        self._event = Event()
        self._lock = Lock()
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._next_handle = 0

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run `callback` once the token is cancelled (immediately if it already is).

        Returns:
            Callable[[], None]: Removes the callback again; safe to call twice.
        """
        with self._lock:
            if not self._event.is_set():
                handle = self._next_handle
                self._next_handle += 1
                self._callbacks[handle] = callback

                def unregister() -> None:
                    with self._lock:
                        self._callbacks.pop(handle, None)

                return unregister
        callback()
        return lambda: None

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError()
