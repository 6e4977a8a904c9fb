"""Dispatch – Subscription token returned by ``subscribe`` and ``response``."""
from __future__ import annotations

from typing import Any, Callable


class Subscription:
    """Disposable handle for one registration.

    Disposing removes exactly the callback it was created for, from exactly
    the key it was registered under.  Disposing twice is a no-op.  Usable as
    a context manager::

        with bus.subscribe(OrderPlaced, on_order):
            bus.publish(OrderPlaced("o-1"))
    """

    __slots__ = ("_key", "_unsubscribe")

    def __init__(self, key: Any, unsubscribe: Callable[[], None]) -> None:
        self._key = key
        self._unsubscribe: Callable[[], None] | None = unsubscribe

    @property
    def key(self) -> Any:
        """Message type (broadcast) or ``(request, response)`` pair."""
        return self._key

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def dispose(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "active" if self.active else "disposed"
        return f"Subscription(key={self._key!r}, {state})"


__all__ = ["Subscription"]
