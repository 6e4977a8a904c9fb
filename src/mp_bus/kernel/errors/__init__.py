"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── BusError                  (bus.py)
    │   └── InvalidArgumentError
    └── ConfigError               (mp_bus.config.validation)
        └── InvalidSettingValueError
"""

from mp_bus.kernel.errors.base import BaseError
from mp_bus.kernel.errors.bus import BusError, InvalidArgumentError

__all__ = [
    "BaseError",
    "BusError",
    "InvalidArgumentError",
]
