"""Dispatch – upstream forwarding policy.

    PURE   ──► never forwards
    LOCAL  ──► forwards one hop when asked to (upstream is called with
               ``forward_upstream=False``)
    GLOBAL ──► never forwards; the flag is ignored
"""
from __future__ import annotations

from typing import Any, Callable

from mp_bus.dispatch.options import Scope


def should_forward(scope: Scope, forward_upstream: bool) -> bool:
    """Return ``True`` when an operation in *scope* must be repeated upstream."""
    return forward_upstream and scope is Scope.LOCAL


def resolve_upstream(
    scope: Scope,
    forward_upstream: bool,
    provider: Callable[[], Any] | None,
) -> Any | None:
    """Return the bus to forward to, or ``None`` for a local-only operation.

    *provider* is only called when forwarding applies, so a ``PURE`` bus never
    instantiates the Global bus.  The provider returns ``None`` when there is
    nothing to forward to (see ``EventBus._resolve_upstream``, which also
    refuses a bus that would forward to itself).
    """
    if provider is None or not should_forward(scope, forward_upstream):
        return None
    return provider()


__all__ = ["resolve_upstream", "should_forward"]
