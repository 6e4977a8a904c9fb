"""Unit tests for mp_bus.extensions helpers."""

from __future__ import annotations

import asyncio
import dataclasses

import pytest

from mp_bus import EventBus
from mp_bus.extensions import (
    aggregate_same,
    aggregate_same_async,
    publish_local,
    subscribe_once,
    subscribe_sticky,
)
from mp_bus.testing import CallRecorder


@dataclasses.dataclass
class Ready:
    node: str = "n1"


@dataclasses.dataclass
class Limit:
    value: int


class TestSubscribeSticky:
    def test_replays_and_keeps_listening(self, bus: EventBus, recorder: CallRecorder) -> None:
        bus.publish(Ready("a"))
        subscribe_sticky(bus, Ready, recorder.handler("late"))
        bus.publish(Ready("b"))
        assert [r.node for r in recorder.payloads] == ["a", "b"]

    def test_owner_and_priority_forwarded(self, bus: EventBus, recorder: CallRecorder) -> None:
        subscribe_sticky(bus, Ready, recorder.handler("low"), owner="o")
        subscribe_sticky(bus, Ready, recorder.handler("high"), priority=5)
        bus.publish(Ready())
        assert recorder.labels == ["high", "low"]
        assert bus.unsubscribe_owner("o") == 1


class TestPublishLocal:
    def test_does_not_reach_global(
        self, local_bus: EventBus, global_bus: EventBus, recorder: CallRecorder
    ) -> None:
        local_bus.subscribe(Ready, recorder.handler("local"))
        global_bus.subscribe(Ready, recorder.handler("global"))

        assert publish_local(local_bus, Ready()) == 1
        assert recorder.labels == ["local"]


class TestSubscribeOnce:
    def test_resolves_with_next_message(self, bus: EventBus) -> None:
        async def _run() -> Ready:
            ready = subscribe_once(bus, Ready)
            bus.publish(Ready("x"))
            bus.publish(Ready("y"))
            return await ready

        assert asyncio.run(_run()).node == "x"
        assert not bus.broadcast.has_subscribers(Ready)

    def test_cancel_removes_subscription(self, bus: EventBus) -> None:
        async def _run() -> None:
            ready = subscribe_once(bus, Ready)
            assert bus.broadcast.has_subscribers(Ready)
            ready.cancel()
            await asyncio.sleep(0)

        asyncio.run(_run())
        assert not bus.broadcast.has_subscribers(Ready)

    def test_requires_running_loop(self, bus: EventBus) -> None:
        with pytest.raises(RuntimeError):
            subscribe_once(bus, Ready)


class TestAggregateSame:
    def test_folds_into_one_answer(self, bus: EventBus) -> None:
        bus.response(Ready, Limit, lambda r: Limit(10))
        bus.response(Ready, Limit, lambda r: Limit(3))

        tightest = aggregate_same(bus, Ready(), Limit, lambda limits: min(limits, key=lambda lim: lim.value))
        assert tightest == Limit(3)

    def test_async_variant(self, bus: EventBus) -> None:
        async def limit(request: Ready) -> Limit:
            return Limit(7)

        bus.response(Ready, Limit, limit)
        bus.response(Ready, Limit, lambda r: Limit(2))

        biggest = asyncio.run(
            aggregate_same_async(bus, Ready(), Limit, lambda limits: max(limits, key=lambda lim: lim.value))
        )
        assert biggest == Limit(7)
