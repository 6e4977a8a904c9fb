"""Dispatch – Scope and SubscribeOptions."""
from __future__ import annotations

import dataclasses
import enum
from typing import Any


class Scope(enum.Enum):
    """Forwarding role of a bus.

    * ``PURE``   – standalone, never forwards.
    * ``LOCAL``  – forwards one hop to the Global bus unless suppressed.
    * ``GLOBAL`` – the process-wide root; never forwards further.
    """

    PURE = "pure"
    LOCAL = "local"
    GLOBAL = "global"


@dataclasses.dataclass(frozen=True)
class SubscribeOptions:
    """Per-registration options shared by ``subscribe`` and ``response``.

    ``sticky`` only applies to broadcast subscriptions: the last value
    published for the subscribed type is replayed immediately.
    ``owner`` is an opaque tag; every registration carrying the same tag can
    be removed at once with ``unsubscribe_owner``.
    """

    sticky: bool = False
    priority: int = 0
    owner: Any = None


DEFAULT_OPTIONS = SubscribeOptions()


__all__ = ["DEFAULT_OPTIONS", "Scope", "SubscribeOptions"]
