"""EventBus facade and the process-wide Global bus.

Usage::

    bus = create_bus(Scope.LOCAL)           # forwards to get_global_bus()
    bus.subscribe(OrderPlaced, on_order, SubscribeOptions(priority=10))
    bus.publish(OrderPlaced("o-1"))         # local handlers + global handlers

    bus.response(PriceQuery, Decimal, quote_price)
    prices = bus.ask(PriceQuery("sku-1"), Decimal)
    best = bus.aggregate(PriceQuery("sku-1"), Decimal, min)

.. warning::
    Inside a running event loop :meth:`EventBus.publish` starts async
    handlers but does not wait for them (they run as detached tasks).
    Without a loop it runs them to completion before returning.  Use
    :meth:`EventBus.publish_async` when the caller must observe their
    completion or their failures.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, TypeVar

from mp_bus.dispatch.broadcast import BroadcastEngine
from mp_bus.dispatch.options import Scope, SubscribeOptions
from mp_bus.dispatch.response import ResponseEngine
from mp_bus.dispatch.subscription import Subscription
from mp_bus.kernel.errors import InvalidArgumentError
from mp_bus.observability.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R")
T = TypeVar("T")


class EventBus:
    """One broadcast engine and one request/response engine behind one API.

    ``upstream`` is only meaningful for ``Scope.LOCAL`` buses and defaults to
    the Global bus, resolved when the first forwarded operation happens.
    """

    def __init__(self, scope: Scope = Scope.PURE, *, upstream: EventBus | None = None) -> None:
        if upstream is not None and scope is not Scope.LOCAL:
            raise InvalidArgumentError(
                f"only LOCAL buses forward upstream, got scope={scope.name}", argument="upstream"
            )
        self.scope = scope
        self._upstream = upstream
        provider = self._resolve_upstream if scope is Scope.LOCAL else None
        self._broadcast = BroadcastEngine(scope, provider)
        self._responses = ResponseEngine(scope, provider)

    def _resolve_upstream(self) -> EventBus | None:
        upstream = self._upstream if self._upstream is not None else get_global_bus()
        return None if upstream is self else upstream

    def __repr__(self) -> str:
        return f"EventBus(scope={self.scope.name})"

    def __enter__(self) -> EventBus:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    @property
    def broadcast(self) -> BroadcastEngine:
        return self._broadcast

    @property
    def responses(self) -> ResponseEngine:
        return self._responses

    # ------------------------------------------------------------------
    # Broadcast
    # ------------------------------------------------------------------

    def publish(self, value: Any, forward_upstream: bool = True) -> int:
        """Deliver *value* to every matching handler; return how many ran.

        Async handlers are counted.  Inside a running event loop they are
        started as tasks and NOT awaited.  Outside any loop they are run to
        completion, one after another, so ``publish`` blocks until they end.
        """
        return self._broadcast.publish(value, forward_upstream)

    async def publish_async(self, value: Any, forward_upstream: bool = True) -> int:
        """Deliver *value* and wait for every async handler to finish."""
        return await self._broadcast.publish_async(value, forward_upstream)

    def subscribe(
        self,
        message_type: type,
        handler: Callable[..., Any],
        options: SubscribeOptions | None = None,
    ) -> Subscription:
        """Register *handler* for *message_type* (and its subclasses).

        *handler* may take the message, take nothing, or be a coroutine
        function.
        """
        return self._broadcast.subscribe(message_type, handler, options)

    def unsubscribe(self, handler: Callable[..., Any], message_type: type | None = None) -> int:
        return self._broadcast.unsubscribe(handler, message_type)

    # ------------------------------------------------------------------
    # Request / response
    # ------------------------------------------------------------------

    def ask(
        self,
        request: Any,
        response_type: type[R],
        *,
        request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> list[R]:
        return self._responses.ask(
            request, response_type, request_type=request_type, forward_upstream=forward_upstream
        )

    async def ask_async(
        self,
        request: Any,
        response_type: type[R],
        *,
        request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> list[R]:
        return await self._responses.ask_async(
            request, response_type, request_type=request_type, forward_upstream=forward_upstream
        )

    def aggregate(
        self,
        request: Any,
        response_type: type[R],
        reducer: Callable[[list[R]], T],
        *,
        request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> T:
        return self._responses.aggregate(
            request, response_type, reducer, request_type=request_type, forward_upstream=forward_upstream
        )

    async def aggregate_async(
        self,
        request: Any,
        response_type: type[R],
        reducer: Callable[[list[R]], T],
        *,
        request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> T:
        return await self._responses.aggregate_async(
            request, response_type, reducer, request_type=request_type, forward_upstream=forward_upstream
        )

    def response(
        self,
        request_type: type,
        response_type: type,
        handler: Callable[..., Any],
        options: SubscribeOptions | None = None,
    ) -> Subscription:
        return self._responses.response(request_type, response_type, handler, options)

    def unsubscribe_response(
        self,
        handler: Callable[..., Any],
        request_type: type | None = None,
        response_type: type | None = None,
    ) -> int:
        return self._responses.unsubscribe(handler, request_type, response_type)

    # ------------------------------------------------------------------
    # Bulk removal / lifecycle
    # ------------------------------------------------------------------

    def unsubscribe_owner(self, owner: Any) -> int:
        """Remove every subscription and responder tagged with *owner*."""
        return self._broadcast.unsubscribe_owner(owner) + self._responses.unsubscribe_owner(owner)

    def dispose(self) -> None:
        """Drop every registration and the sticky cache.  The bus stays usable."""
        self._broadcast.dispose()
        self._responses.dispose()
        logger.debug("bus_disposed", scope=self.scope.name)


# ---------------------------------------------------------------------------
# Process-wide Global bus
# ---------------------------------------------------------------------------

_GLOBAL_BUS: EventBus | None = None
_GLOBAL_LOCK = threading.Lock()


def get_global_bus() -> EventBus:
    """Return the Global bus, creating it on first access."""
    global _GLOBAL_BUS
    with _GLOBAL_LOCK:
        if _GLOBAL_BUS is None:
            _GLOBAL_BUS = EventBus(Scope.GLOBAL)
            logger.debug("global_bus_created")
    return _GLOBAL_BUS


def reset_global_bus() -> None:
    """Dispose and forget the Global bus; the next access builds a new one.

    .. warning::
        This mutates process-wide state.  Meant for test isolation.
    """
    global _GLOBAL_BUS
    with _GLOBAL_LOCK:
        bus, _GLOBAL_BUS = _GLOBAL_BUS, None
    if bus is not None:
        bus.dispose()
        logger.debug("global_bus_reset")


def create_bus(scope: Scope = Scope.PURE, *, upstream: EventBus | None = None) -> EventBus:
    """Build a bus for *scope*; ``Scope.GLOBAL`` returns the singleton."""
    if scope is Scope.GLOBAL:
        if upstream is not None:
            raise InvalidArgumentError("the Global bus has no upstream", argument="upstream")
        return get_global_bus()
    return EventBus(scope, upstream=upstream)


__all__ = ["EventBus", "create_bus", "get_global_bus", "reset_global_bus"]
