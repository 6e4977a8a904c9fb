"""Dispatch – ResponseEngine: one-to-many ask / aggregate.

Responders are keyed by the exact ``(request_type, response_type)`` pair;
there is no capability broadening on either side.  Every responder of the
pair answers and the caller receives the answers in priority order, followed
by the upstream bus's answers when forwarding applies.

Unlike broadcasts, a failing responder is contained: it is logged, its
answer is dropped and every sibling still contributes.
"""
from __future__ import annotations

import functools
from typing import Any, Callable, Protocol, TypeAlias, TypeVar

from mp_bus.dispatch.capabilities import require_type
from mp_bus.dispatch.handler import HandlerEntry, HandlerList
from mp_bus.dispatch.options import DEFAULT_OPTIONS, Scope, SubscribeOptions
from mp_bus.dispatch.scope import resolve_upstream
from mp_bus.dispatch.subscription import Subscription
from mp_bus.kernel.errors import InvalidArgumentError
from mp_bus.observability.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R")
T = TypeVar("T")

ResponseKey: TypeAlias = tuple[type, type]


class ResponseUpstream(Protocol):
    """What a response engine needs from the bus it forwards to."""

    def ask(
        self, request: Any, response_type: type[R], *, request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> list[R]: ...

    async def ask_async(
        self, request: Any, response_type: type[R], *, request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> list[R]: ...


class ResponseEngine:
    """Registry of responder lists keyed by ``(request_type, response_type)``."""

    def __init__(
        self,
        scope: Scope = Scope.PURE,
        upstream: Callable[[], ResponseUpstream | None] | None = None,
    ) -> None:
        self.scope = scope
        self._upstream = upstream
        self._responders: dict[ResponseKey, HandlerList] = {}

    @staticmethod
    def _key(request: Any, response_type: type, request_type: type | None) -> ResponseKey:
        if request_type is None:
            request_type = type(request)
        return (
            require_type(request_type, "request_type"),
            require_type(response_type, "response_type"),
        )

    # ------------------------------------------------------------------
    # Ask / aggregate
    # ------------------------------------------------------------------

    def ask(
        self,
        request: Any,
        response_type: type[R],
        *,
        request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> list[R]:
        """Collect one answer per synchronous responder, highest priority first.

        *request_type* defaults to ``type(request)``; pass it to ask on
        behalf of a base class.  Coroutine responders are skipped (use
        :meth:`ask_async`).  Returns ``[]`` when nobody answers.
        """
        key = self._key(request, response_type, request_type)
        responders = self._responders.get(key)
        results: list[R] = responders.collect(request) if responders is not None else []

        upstream = resolve_upstream(self.scope, forward_upstream, self._upstream)
        if upstream is not None:
            results.extend(
                upstream.ask(request, response_type, request_type=key[0], forward_upstream=False)
            )
        return results

    async def ask_async(
        self,
        request: Any,
        response_type: type[R],
        *,
        request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> list[R]:
        """Like :meth:`ask`, awaiting coroutine responders together."""
        key = self._key(request, response_type, request_type)
        responders = self._responders.get(key)
        results: list[R] = await responders.collect_async(request) if responders is not None else []

        upstream = resolve_upstream(self.scope, forward_upstream, self._upstream)
        if upstream is not None:
            results.extend(
                await upstream.ask_async(request, response_type, request_type=key[0], forward_upstream=False)
            )
        return results

    def aggregate(
        self,
        request: Any,
        response_type: type[R],
        reducer: Callable[[list[R]], T],
        *,
        request_type: type | None = None,
        forward_upstream: bool = True,
    ) -> T:
        """``reducer(ask(...))``; the reducer also sees an empty list."""
        return reducer(
            self.ask(request, response_type, request_type=request_type, forward_upstream=forward_upstream)
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
        responses = await self.ask_async(
            request, response_type, request_type=request_type, forward_upstream=forward_upstream
        )
        return reducer(responses)

    # ------------------------------------------------------------------
    # Register / unregister
    # ------------------------------------------------------------------

    def response(
        self,
        request_type: type,
        response_type: type,
        handler: Callable[..., Any],
        options: SubscribeOptions | None = None,
    ) -> Subscription:
        """Register *handler* as a responder for the exact pair.

        ``options.sticky`` has no meaning for responders and is ignored.
        """
        key = (require_type(request_type, "request_type"), require_type(response_type, "response_type"))
        options = options or DEFAULT_OPTIONS
        entry = HandlerEntry.create(handler, options.priority, options.owner)

        responders = self._responders.get(key)
        if responders is None:
            responders = self._responders[key] = HandlerList(key)
        responders.append(entry)
        return Subscription(key, functools.partial(self.unsubscribe, handler, request_type, response_type))

    def unsubscribe(
        self,
        handler: Callable[..., Any],
        request_type: type | None = None,
        response_type: type | None = None,
    ) -> int:
        """Remove *handler* from every pair matching the given types.

        Omitted types act as wildcards.  Unknown handlers are ignored.
        """
        removed = 0
        for key, responders in list(self._responders.items()):
            if request_type is not None and key[0] is not request_type:
                continue
            if response_type is not None and key[1] is not response_type:
                continue
            removed += responders.remove_callback(handler)
            self._prune(key, responders)
        return removed

    def unsubscribe_owner(self, owner: Any) -> int:
        if owner is None:
            raise InvalidArgumentError("owner must not be None", argument="owner")
        removed = 0
        for key, responders in list(self._responders.items()):
            removed += responders.remove_owner(owner)
            self._prune(key, responders)
        return removed

    def _prune(self, key: ResponseKey, responders: HandlerList) -> None:
        if not responders:
            del self._responders[key]

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def has_responders(self, request_type: type, response_type: type) -> bool:
        return (request_type, response_type) in self._responders

    def responder_count(self, request_type: type | None = None, response_type: type | None = None) -> int:
        return sum(
            len(responders)
            for (req, res), responders in self._responders.items()
            if (request_type is None or req is request_type)
            and (response_type is None or res is response_type)
        )

    def keys(self) -> list[ResponseKey]:
        return list(self._responders)

    def dispose(self) -> None:
        for responders in self._responders.values():
            responders.clear()
        self._responders.clear()


__all__ = ["ResponseEngine", "ResponseKey", "ResponseUpstream"]
