"""Dispatch – BroadcastEngine: typed publish/subscribe with sticky replay.

A published value is delivered to the handlers of its own class, of every
class in its MRO and of every registered ABC it satisfies.  Subscriptions
are keyed by the type passed to :meth:`BroadcastEngine.subscribe`, never by
the runtime type of later values.

Handler exceptions are NOT contained here: the first failure propagates to
the publisher and the remaining handlers of that dispatch do not run.
(The request/response engine behaves differently, see
:mod:`mp_bus.dispatch.response`.)
"""
from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, Protocol

from mp_bus.dispatch.capabilities import CapabilityIndex, require_type
from mp_bus.dispatch.handler import HandlerEntry, HandlerList, start_detached
from mp_bus.dispatch.options import DEFAULT_OPTIONS, Scope, SubscribeOptions
from mp_bus.dispatch.scope import resolve_upstream
from mp_bus.dispatch.subscription import Subscription
from mp_bus.kernel.errors import InvalidArgumentError
from mp_bus.observability.logging import get_logger

logger = get_logger(__name__)

_NO_VALUE: Any = object()


class BroadcastUpstream(Protocol):
    """What a broadcast engine needs from the bus it forwards to."""

    def publish(self, value: Any, forward_upstream: bool = True) -> int: ...

    async def publish_async(self, value: Any, forward_upstream: bool = True) -> int: ...


class BroadcastEngine:
    """Registry of message-type handler lists plus the publish logic."""

    def __init__(
        self,
        scope: Scope = Scope.PURE,
        upstream: Callable[[], BroadcastUpstream | None] | None = None,
    ) -> None:
        self.scope = scope
        self._upstream = upstream
        self._handlers: dict[type, HandlerList] = {}
        self._last_values: dict[type, Any] = {}
        self._capabilities = CapabilityIndex()

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, value: Any, forward_upstream: bool = True) -> int:
        """Deliver *value* to every matching handler; return how many ran.

        Inside a running event loop, async handlers are started as tasks
        but not awaited; use :meth:`publish_async` to wait for them.  With no
        running loop there is nothing to schedule them on, so each one is run
        to completion (with any handler it starts in turn) before
        ``publish`` returns.
        """
        count = 0
        for key in self._capabilities.keys_for(type(value)):
            handlers = self._handlers.get(key)
            if handlers is not None:
                count += handlers.invoke(value)
            self._last_values[key] = value

        upstream = resolve_upstream(self.scope, forward_upstream, self._upstream)
        if upstream is not None:
            count += upstream.publish(value, forward_upstream=False)
        logger.debug("published", message_type=type(value).__qualname__, handlers=count)
        return count

    async def publish_async(self, value: Any, forward_upstream: bool = True) -> int:
        """Deliver *value* and wait until every async handler has finished."""
        count = 0
        for key in self._capabilities.keys_for(type(value)):
            handlers = self._handlers.get(key)
            if handlers is not None:
                count += await handlers.invoke_async(value)
            self._last_values[key] = value

        upstream = resolve_upstream(self.scope, forward_upstream, self._upstream)
        if upstream is not None:
            count += await upstream.publish_async(value, forward_upstream=False)
        logger.debug("published", message_type=type(value).__qualname__, handlers=count, awaited=True)
        return count

    # ------------------------------------------------------------------
    # Subscribe / unsubscribe
    # ------------------------------------------------------------------

    def subscribe(
        self,
        message_type: type,
        handler: Callable[..., Any],
        options: SubscribeOptions | None = None,
    ) -> Subscription:
        message_type = require_type(message_type, "message_type")
        options = options or DEFAULT_OPTIONS
        entry = HandlerEntry.create(handler, options.priority, options.owner)

        handlers = self._handlers.get(message_type)
        if handlers is None:
            handlers = self._handlers[message_type] = HandlerList(message_type)
            self._capabilities.register(message_type)
        handlers.append(entry)

        if options.sticky:
            last = self._last_values.get(message_type, _NO_VALUE)
            if last is not _NO_VALUE:
                self._replay(entry, last)

        return Subscription(message_type, functools.partial(self.unsubscribe, handler, message_type))

    def _replay(self, entry: HandlerEntry, value: Any) -> None:
        result = entry.call(value)
        if inspect.isawaitable(result):
            start_detached(result, entry)

    def unsubscribe(self, handler: Callable[..., Any], message_type: type | None = None) -> int:
        """Remove *handler* from *message_type* (or from every type).

        Unknown handlers are ignored.  Returns the number of entries removed.
        """
        keys = list(self._handlers) if message_type is None else [message_type]
        removed = 0
        for key in keys:
            handlers = self._handlers.get(key)
            if handlers is None:
                continue
            removed += handlers.remove_callback(handler)
            self._prune(key, handlers)
        return removed

    def unsubscribe_owner(self, owner: Any) -> int:
        """Remove every entry tagged with *owner*, across all message types."""
        if owner is None:
            raise InvalidArgumentError("owner must not be None", argument="owner")
        removed = 0
        for key, handlers in list(self._handlers.items()):
            removed += handlers.remove_owner(owner)
            self._prune(key, handlers)
        return removed

    def _prune(self, key: type, handlers: HandlerList) -> None:
        if not handlers:
            del self._handlers[key]

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def has_subscribers(self, message_type: type) -> bool:
        return message_type in self._handlers

    def handler_count(self, message_type: type | None = None) -> int:
        if message_type is not None:
            handlers = self._handlers.get(message_type)
            return len(handlers) if handlers is not None else 0
        return sum(len(handlers) for handlers in self._handlers.values())

    def last_value(self, message_type: type, default: Any = None) -> Any:
        """Last value published under *message_type* (the sticky cache)."""
        return self._last_values.get(message_type, default)

    def message_types(self) -> list[type]:
        return list(self._handlers)

    def dispose(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()
        self._handlers.clear()
        self._last_values.clear()
        self._capabilities.clear()


__all__ = ["BroadcastEngine", "BroadcastUpstream"]
