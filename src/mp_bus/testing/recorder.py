"""Testing fakes – CallRecorder."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable


class CallRecorder:
    """Builds labelled handlers that append ``(label, payload)`` on each call.

    Every handler built by one recorder shares the same log, so the log shows
    the cross-handler invocation order::

        rec = CallRecorder()
        bus.subscribe(Ping, rec.handler("low"))
        bus.subscribe(Ping, rec.handler("high"), SubscribeOptions(priority=5))
        bus.publish(Ping())
        assert rec.labels == ["high", "low"]
    """

    NO_PAYLOAD: Any = object()

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.calls]

    @property
    def payloads(self) -> list[Any]:
        return [payload for _, payload in self.calls]

    def clear(self) -> None:
        self.calls.clear()

    def handler(self, label: str) -> Callable[[Any], None]:
        def _handle(message: Any) -> None:
            self.calls.append((label, message))

        return _handle

    def bare_handler(self, label: str) -> Callable[[], None]:
        def _handle() -> None:
            self.calls.append((label, self.NO_PAYLOAD))

        return _handle

    def async_handler(self, label: str, delay: float = 0.0) -> Callable[[Any], Awaitable[None]]:
        """Coroutine handler that records only after sleeping *delay* seconds."""
        async def _handle(message: Any) -> None:
            await asyncio.sleep(delay)
            self.calls.append((label, message))

        return _handle

    def failing_handler(self, label: str, exc: BaseException | None = None) -> Callable[[Any], None]:
        def _handle(message: Any) -> None:
            self.calls.append((label, message))
            raise exc or RuntimeError(f"{label} failed")

        return _handle

    def responder(self, label: str, answer: Any) -> Callable[[Any], Any]:
        def _respond(request: Any) -> Any:
            self.calls.append((label, request))
            return answer

        return _respond

    def async_responder(self, label: str, answer: Any, delay: float = 0.0) -> Callable[[Any], Awaitable[Any]]:
        async def _respond(request: Any) -> Any:
            await asyncio.sleep(delay)
            self.calls.append((label, request))
            return answer

        return _respond


__all__ = ["CallRecorder"]
