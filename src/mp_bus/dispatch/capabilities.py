"""Dispatch – CapabilityIndex: which message-type keys a runtime type satisfies."""
from __future__ import annotations

import abc
from typing import Any

from mp_bus.kernel.errors import InvalidArgumentError


def require_type(value: Any, argument: str) -> type:
    """Return *value* when it is a class, else raise :class:`InvalidArgumentError`."""
    if not isinstance(value, type):
        raise InvalidArgumentError(
            f"{argument} must be a class, got {value!r}", argument=argument
        )
    return value


class CapabilityIndex:
    """Lookup table from a runtime type to every key it is delivered under.

    A value of type ``T`` matches each class in ``T.__mro__`` plus every
    registered key ``K`` for which ``issubclass(T, K)`` holds through an ABC
    (including ``ABC.register`` virtual subclasses).  Results are cached per
    runtime type; the cache is dropped whenever a new key is registered and
    whenever any ABC gains a virtual subclass (``abc.get_cache_token()``).
    """

    def __init__(self) -> None:
        self._registered: dict[type, None] = {}
        self._cache: dict[type, tuple[type, ...]] = {}
        self._abc_token = abc.get_cache_token()

    def register(self, key: type) -> None:
        if key not in self._registered:
            self._registered[key] = None
            self._cache.clear()

    def keys_for(self, runtime_type: type) -> tuple[type, ...]:
        token = abc.get_cache_token()
        if token != self._abc_token:
            self._cache.clear()
            self._abc_token = token
        keys = self._cache.get(runtime_type)
        if keys is None:
            mro = runtime_type.__mro__
            extra = tuple(
                key for key in self._registered
                if key not in mro and _satisfies(runtime_type, key)
            )
            keys = mro + extra
            self._cache[runtime_type] = keys
        return keys

    def clear(self) -> None:
        self._registered.clear()
        self._cache.clear()


def _satisfies(runtime_type: type, key: type) -> bool:
    try:
        return issubclass(runtime_type, key)
    except TypeError:
        # Non runtime-checkable protocols refuse issubclass().
        return False


__all__ = ["CapabilityIndex", "require_type"]
