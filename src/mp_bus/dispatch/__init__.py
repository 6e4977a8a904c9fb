"""Dispatch engine – handler lists, broadcast and request/response engines."""
from mp_bus.dispatch.broadcast import BroadcastEngine, BroadcastUpstream
from mp_bus.dispatch.capabilities import CapabilityIndex
from mp_bus.dispatch.handler import HandlerEntry, HandlerList, pending_detached
from mp_bus.dispatch.options import Scope, SubscribeOptions
from mp_bus.dispatch.response import ResponseEngine, ResponseKey, ResponseUpstream
from mp_bus.dispatch.scope import resolve_upstream, should_forward
from mp_bus.dispatch.subscription import Subscription

__all__ = [
    "BroadcastEngine",
    "BroadcastUpstream",
    "CapabilityIndex",
    "HandlerEntry",
    "HandlerList",
    "ResponseEngine",
    "ResponseKey",
    "ResponseUpstream",
    "Scope",
    "SubscribeOptions",
    "Subscription",
    "pending_detached",
    "resolve_upstream",
    "should_forward",
]
