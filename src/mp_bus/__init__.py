"""
mp_bus – Typed, hierarchical in-process event bus.

Import path convention::

    from mp_bus import EventBus, Scope, SubscribeOptions, create_bus, get_global_bus
    from mp_bus.extensions import subscribe_once, subscribe_sticky
    from mp_bus.kernel.errors import InvalidArgumentError
"""

from mp_bus.bus import EventBus, create_bus, get_global_bus, reset_global_bus
from mp_bus.dispatch import Scope, SubscribeOptions, Subscription

__version__ = "0.1.0"
__all__ = [
    "EventBus",
    "Scope",
    "SubscribeOptions",
    "Subscription",
    "__version__",
    "create_bus",
    "get_global_bus",
    "reset_global_bus",
]
