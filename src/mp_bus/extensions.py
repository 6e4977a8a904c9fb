"""Convenience helpers layered on :class:`~mp_bus.bus.EventBus`.

Usage::

    subscribe_sticky(bus, Config, apply_config)    # replays the current Config
    publish_local(bus, Tick())                     # never reaches the Global bus

    ready = subscribe_once(bus, Ready)             # registered right away
    bus.publish(Ready())
    event = await ready
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

from mp_bus.bus import EventBus
from mp_bus.dispatch.options import SubscribeOptions
from mp_bus.dispatch.subscription import Subscription

M = TypeVar("M")
R = TypeVar("R")


def subscribe_sticky(
    bus: EventBus,
    message_type: type,
    handler: Callable[..., Any],
    *,
    priority: int = 0,
    owner: Any = None,
) -> Subscription:
    """Subscribe and immediately receive the last *message_type* value, if any."""
    return bus.subscribe(message_type, handler, SubscribeOptions(sticky=True, priority=priority, owner=owner))


def publish_local(bus: EventBus, value: Any) -> int:
    """Publish on *bus* only, without upstream forwarding."""
    return bus.publish(value, forward_upstream=False)


def subscribe_once(bus: EventBus, message_type: type[M], *, owner: Any = None) -> asyncio.Future[M]:
    """Return a future resolved with the next *message_type* published on *bus*.

    The subscription is made before returning and removed after the first
    delivery, or when the future is cancelled.  Must be called from a running
    event loop.
    """
    future: asyncio.Future[M] = asyncio.get_running_loop().create_future()

    def _deliver(message: M) -> None:
        subscription.dispose()
        if not future.done():
            future.set_result(message)

    subscription = bus.subscribe(message_type, _deliver, SubscribeOptions(owner=owner))
    future.add_done_callback(lambda _: subscription.dispose())
    return future


def aggregate_same(
    bus: EventBus,
    request: Any,
    response_type: type[R],
    reducer: Callable[[list[R]], R],
    *,
    request_type: type | None = None,
    forward_upstream: bool = True,
) -> R:
    """:meth:`EventBus.aggregate` where the reducer folds answers into one answer."""
    return bus.aggregate(
        request, response_type, reducer, request_type=request_type, forward_upstream=forward_upstream
    )


async def aggregate_same_async(
    bus: EventBus,
    request: Any,
    response_type: type[R],
    reducer: Callable[[list[R]], R],
    *,
    request_type: type | None = None,
    forward_upstream: bool = True,
) -> R:
    return await bus.aggregate_async(
        request, response_type, reducer, request_type=request_type, forward_upstream=forward_upstream
    )


__all__ = [
    "aggregate_same",
    "aggregate_same_async",
    "publish_local",
    "subscribe_once",
    "subscribe_sticky",
]
