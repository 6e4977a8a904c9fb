"""Testing fixtures – bus fixtures with an isolated Global bus.

Load in ``conftest.py``::

    pytest_plugins = ["mp_bus.testing.fixtures"]
"""
from __future__ import annotations

from collections.abc import Iterator

import pytest

from mp_bus.bus import EventBus, create_bus, get_global_bus, reset_global_bus
from mp_bus.dispatch.options import Scope
from mp_bus.testing.recorder import CallRecorder


@pytest.fixture
def global_bus() -> Iterator[EventBus]:
    """A fresh Global bus, reset again after the test."""
    reset_global_bus()
    yield get_global_bus()
    reset_global_bus()


@pytest.fixture
def bus() -> Iterator[EventBus]:
    """A standalone ``PURE`` bus."""
    with create_bus(Scope.PURE) as pure:
        yield pure


@pytest.fixture
def local_bus(global_bus: EventBus) -> Iterator[EventBus]:  # noqa: ARG001
    """A ``LOCAL`` bus forwarding to the isolated :func:`global_bus`."""
    with create_bus(Scope.LOCAL) as local:
        yield local


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


__all__ = ["bus", "global_bus", "local_bus", "recorder"]
