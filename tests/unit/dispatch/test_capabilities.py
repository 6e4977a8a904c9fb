"""Unit tests for CapabilityIndex and require_type."""

from __future__ import annotations

import abc
from typing import Protocol

import pytest

from mp_bus.dispatch import CapabilityIndex
from mp_bus.dispatch.capabilities import require_type
from mp_bus.kernel.errors import InvalidArgumentError


class Base:
    pass


class Child(Base):
    pass


class Closeable(abc.ABC):
    pass


class Resource:
    pass


Closeable.register(Resource)


class Named(Protocol):
    name: str


class TestRequireType:
    def test_returns_class(self) -> None:
        assert require_type(Base, "message_type") is Base

    @pytest.mark.parametrize("value", [None, "Base", Base(), 3])
    def test_rejects_non_class(self, value: object) -> None:
        with pytest.raises(InvalidArgumentError) as info:
            require_type(value, "message_type")
        assert info.value.argument == "message_type"


class TestCapabilityIndex:
    def test_mro_always_included(self) -> None:
        index = CapabilityIndex()
        assert index.keys_for(Child) == (Child, Base, object)

    def test_registered_abc_matches_virtual_subclass(self) -> None:
        index = CapabilityIndex()
        index.register(Closeable)
        assert index.keys_for(Resource) == (Resource, object, Closeable)

    def test_cache_dropped_on_new_key(self) -> None:
        index = CapabilityIndex()
        assert Closeable not in index.keys_for(Resource)
        index.register(Closeable)
        assert Closeable in index.keys_for(Resource)

    def test_registered_mro_key_not_duplicated(self) -> None:
        index = CapabilityIndex()
        index.register(Base)
        assert index.keys_for(Child).count(Base) == 1

    def test_non_runtime_protocol_never_matches(self) -> None:
        index = CapabilityIndex()
        index.register(Named)
        assert Named not in index.keys_for(Child)

    def test_clear(self) -> None:
        index = CapabilityIndex()
        index.register(Closeable)
        index.clear()
        assert index.keys_for(Resource) == (Resource, object)

    def test_late_virtual_registration_drops_cache(self) -> None:
        class Flushable(abc.ABC):
            pass

        class Buffer:
            pass

        index = CapabilityIndex()
        index.register(Flushable)
        assert Flushable not in index.keys_for(Buffer)

        Flushable.register(Buffer)
        assert Flushable in index.keys_for(Buffer)
