"""Dispatch – HandlerEntry and HandlerList (ordering + invocation).

A :class:`HandlerList` holds every registration for one key: a message type
for broadcasts, a ``(request_type, response_type)`` pair for responders.
Entries are stable-sorted by descending priority, lazily, right before a
dispatch; every dispatch walks a snapshot so handlers that subscribe or
unsubscribe while being invoked cannot skip or duplicate siblings.

Callback shapes are detected once, at registration:

* ``handler(message)``        – receives the payload
* ``handler()``               – called with no argument
* ``async handler(message)``  – returns an awaitable

The synchronous paths (:meth:`HandlerList.invoke`) *start* awaitables but
never wait for them: they are handed to :func:`start_detached`.  The async
paths gather them.
"""
from __future__ import annotations

import asyncio
import dataclasses
import functools
import inspect
from typing import Any, Awaitable, Callable, Iterator

from mp_bus.kernel.errors import InvalidArgumentError
from mp_bus.observability.logging import get_logger

logger = get_logger(__name__)

_MISSING: Any = object()

# Strong references to fire-and-forget tasks until they finish.
_DETACHED: set[asyncio.Future[Any]] = set()


def describe_callable(callback: Callable[..., Any]) -> str:
    """Return a diagnostic name such as ``orders.OrderView.on_placed``."""
    target = getattr(callback, "__func__", callback)
    if isinstance(target, functools.partial):
        return f"partial({describe_callable(target.func)})"
    qualname = getattr(target, "__qualname__", None)
    if qualname is None:
        qualname = type(target).__qualname__
        module = type(target).__module__
    else:
        module = getattr(target, "__module__", None)
    return f"{module}.{qualname}" if module else qualname


def describe_key(key: Any) -> str:
    if isinstance(key, tuple):
        return " -> ".join(describe_key(part) for part in key)
    return getattr(key, "__qualname__", repr(key))


def _accepts_payload(callback: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return True
    for parameter in signature.parameters.values():
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False


def _is_coroutine_callable(callback: Callable[..., Any]) -> bool:
    if inspect.iscoroutinefunction(callback):
        return True
    call = getattr(callback, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


@dataclasses.dataclass(eq=False, slots=True)
class HandlerEntry:
    """One registered callback.

    ``callback`` is the exact object passed at registration; removal by
    callback compares against it with ``==`` (so two bound-method objects of
    the same instance and function match).
    """

    callback: Callable[..., Any]
    priority: int = 0
    owner: Any = None
    name: str = ""
    accepts_payload: bool = True
    is_async: bool = False

    @classmethod
    def create(cls, callback: Callable[..., Any], priority: int = 0, owner: Any = None) -> HandlerEntry:
        if callback is None or not callable(callback):
            raise InvalidArgumentError(
                f"handler must be callable, got {type(callback).__name__}", argument="handler"
            )
        return cls(
            callback=callback,
            priority=priority,
            owner=owner,
            name=describe_callable(callback),
            accepts_payload=_accepts_payload(callback),
            is_async=_is_coroutine_callable(callback),
        )

    def call(self, value: Any) -> Any:
        if self.accepts_payload:
            return self.callback(value)
        return self.callback()


def _on_detached_done(entry: HandlerEntry, future: asyncio.Future[Any]) -> None:
    _DETACHED.discard(future)
    if future.cancelled():
        logger.warning("detached_handler_cancelled", handler=entry.name)
        return
    exc = future.exception()
    if exc is not None:
        logger.error("detached_handler_failed", handler=entry.name, exc_info=exc)


def start_detached(awaitable: Awaitable[Any], entry: HandlerEntry) -> None:
    """Start *awaitable* without waiting for it (fire-and-forget).

    Inside a running event loop the awaitable becomes a task; its failure is
    logged since no caller will ever observe it.  Outside any loop there is
    nothing to hand a coroutine to, so it is driven to completion on a
    private loop before returning, together with any detached task it
    started itself (for example by publishing again).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        if not inspect.iscoroutine(awaitable):
            raise InvalidArgumentError(
                f"{entry.name} returned {type(awaitable).__name__} outside of an event loop",
                argument="handler",
            ) from None
        asyncio.run(_run_to_completion(awaitable, entry))
        return

    future = asyncio.ensure_future(awaitable)
    _DETACHED.add(future)
    future.add_done_callback(functools.partial(_on_detached_done, entry))


async def _run_to_completion(awaitable: Awaitable[Any], entry: HandlerEntry) -> None:
    """Await *awaitable*, then every detached task it started on this loop.

    ``asyncio.run`` cancels whatever is still pending when its main coroutine
    returns, so nested publishes must be drained before leaving.
    """
    try:
        await awaitable
    except Exception as exc:  # noqa: BLE001
        logger.error("detached_handler_failed", handler=entry.name, exc_info=exc)

    loop = asyncio.get_running_loop()
    while True:
        pending = [future for future in _DETACHED if future.get_loop() is loop and not future.done()]
        if not pending:
            return
        # Failures are logged by each task's done-callback.
        await asyncio.gather(*pending, return_exceptions=True)


def pending_detached() -> int:
    """Number of fire-and-forget tasks that have not finished yet."""
    return len(_DETACHED)


def _discard(awaitable: Any) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()


class HandlerList:
    """All entries registered under one key, kept in priority order."""

    __slots__ = ("_dirty", "_entries", "key", "name")

    def __init__(self, key: Any) -> None:
        self.key = key
        self.name = describe_key(key)
        self._entries: list[HandlerEntry] = []
        self._dirty = False

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HandlerEntry]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"HandlerList({self.name!r}, entries={len(self._entries)})"

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(self, callback: Callable[..., Any], priority: int = 0, owner: Any = None) -> HandlerEntry:
        return self.append(HandlerEntry.create(callback, priority, owner))

    def append(self, entry: HandlerEntry) -> HandlerEntry:
        self._entries.append(entry)
        self._dirty = True
        return entry

    def remove_callback(self, callback: Callable[..., Any]) -> int:
        """Remove every entry registered with *callback*; return how many."""
        return self._remove(lambda entry: entry.callback == callback)

    def remove_owner(self, owner: Any) -> int:
        """Remove every entry tagged with *owner*; return how many."""
        return self._remove(lambda entry: entry.owner is not None and entry.owner == owner)

    def clear(self) -> None:
        self._entries = []
        self._dirty = False

    def _remove(self, predicate: Callable[[HandlerEntry], bool]) -> int:
        kept = [entry for entry in self._entries if not predicate(entry)]
        removed = len(self._entries) - len(kept)
        if removed:
            self._entries = kept
        return removed

    def snapshot(self) -> tuple[HandlerEntry, ...]:
        """Entries in dispatch order (priority desc, then registration order)."""
        if self._dirty:
            self._entries.sort(key=lambda entry: -entry.priority)
            self._dirty = False
        return tuple(self._entries)

    # ------------------------------------------------------------------
    # Broadcast invocation
    # ------------------------------------------------------------------

    def invoke(self, value: Any) -> int:
        """Call every entry with *value*; return the number of entries called.

        Awaitables returned by async handlers are started but NOT awaited;
        they still count as invoked.  A handler exception propagates and
        aborts the remaining entries.
        """
        count = 0
        for entry in self.snapshot():
            result = entry.call(value)
            if inspect.isawaitable(result):
                start_detached(result, entry)
            count += 1
        return count

    async def invoke_async(self, value: Any) -> int:
        """Like :meth:`invoke`, but wait for every awaitable to settle.

        Synchronous entries run inline, in order, before the wait.  When any
        awaitable fails, all of them are still awaited, then the first failure
        (in dispatch order) is re-raised and the others are logged.
        """
        pending: list[tuple[HandlerEntry, Awaitable[Any]]] = []
        count = 0
        try:
            for entry in self.snapshot():
                result = entry.call(value)
                if inspect.isawaitable(result):
                    pending.append((entry, result))
                count += 1
        except Exception:
            await self._settle(pending, log_first=True)
            raise

        failure = await self._settle(pending)
        if failure is not None:
            raise failure
        return count

    async def _settle(
        self, pending: list[tuple[HandlerEntry, Awaitable[Any]]], *, log_first: bool = False
    ) -> BaseException | None:
        """Await all *pending* awaitables; return the first failure, log the rest."""
        if not pending:
            return None
        outcomes = await asyncio.gather(*(aw for _, aw in pending), return_exceptions=True)
        first: BaseException | None = None
        for (entry, _), outcome in zip(pending, outcomes):
            if not isinstance(outcome, BaseException):
                continue
            if first is None and not log_first:
                first = outcome
            else:
                logger.error("async_handler_failed", handler=entry.name, key=self.name, exc_info=outcome)
        return first

    # ------------------------------------------------------------------
    # Responder invocation
    # ------------------------------------------------------------------

    def collect(self, request: Any) -> list[Any]:
        """Call every synchronous responder; return their answers in order.

        Coroutine responders cannot answer a synchronous ask and are skipped.
        A failing responder is logged and contributes nothing.
        """
        results: list[Any] = []
        for entry in self.snapshot():
            if entry.is_async:
                logger.debug("async_responder_skipped", handler=entry.name, key=self.name)
                continue
            try:
                result = entry.call(request)
            except Exception:  # noqa: BLE001
                logger.exception("response_handler_failed", handler=entry.name, key=self.name)
                continue
            if inspect.isawaitable(result):
                _discard(result)
                logger.error(
                    "response_handler_failed",
                    handler=entry.name,
                    key=self.name,
                    reason="awaitable returned to a synchronous ask",
                )
                continue
            results.append(result)
        return results

    async def collect_async(self, request: Any) -> list[Any]:
        """Call every responder and await the async ones together.

        Answers keep dispatch order regardless of completion order.  Failing
        responders (sync or async) are logged and excluded.
        """
        slots: list[Any] = []
        pending: list[tuple[int, HandlerEntry, Awaitable[Any]]] = []
        for entry in self.snapshot():
            try:
                result = entry.call(request)
            except Exception:  # noqa: BLE001
                logger.exception("response_handler_failed", handler=entry.name, key=self.name)
                continue
            if inspect.isawaitable(result):
                pending.append((len(slots), entry, result))
                slots.append(_MISSING)
            else:
                slots.append(result)

        if pending:
            outcomes = await asyncio.gather(*(aw for _, _, aw in pending), return_exceptions=True)
            for (index, entry, _), outcome in zip(pending, outcomes):
                if isinstance(outcome, Exception):
                    logger.error("response_handler_failed", handler=entry.name, key=self.name, exc_info=outcome)
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    slots[index] = outcome
        return [result for result in slots if result is not _MISSING]


__all__ = [
    "HandlerEntry",
    "HandlerList",
    "describe_callable",
    "describe_key",
    "pending_detached",
    "start_detached",
]
