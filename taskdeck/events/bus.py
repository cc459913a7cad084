from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from taskdeck.observability import get_json_logger, get_metrics

Listener = Callable[..., Any]
Unsubscribe = Callable[[], None]


@dataclass(slots=True, eq=False)
class _Subscription:
    callback: Listener
    # The callback the caller registered; differs from `callback` for once() wrappers
    original: Listener


def _describe(callback: Listener) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """In-process publish/subscribe bus.

    - Listeners for one event name run in registration order.
    - ``emit`` dispatches against a snapshot of the listener list, so listeners that
      subscribe or unsubscribe while running only affect later emits.
    - A listener that raises is logged and skipped; the remaining listeners still run.
    - A listener that returns an awaitable is scheduled on the running loop and tracked
      until done; ``drain()`` waits for all of them.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._events: dict[str, list[_Subscription]] = {}
        self._pending: set[asyncio.Task[Any]] = set()
        self._logger = logger or get_json_logger("taskdeck.events")

    def on(self, name: str, callback: Listener) -> Unsubscribe:
        sub = _Subscription(callback=callback, original=callback)
        self._events.setdefault(name, []).append(sub)
        return lambda: self._remove(name, sub)

    def once(self, name: str, callback: Listener) -> Unsubscribe:
        sub = _Subscription(callback=callback, original=callback)

        def _once_wrapper(*args: Any) -> Any:
            # Unsubscribe first so a raising callback still fires only once
            self._remove(name, sub)
            return callback(*args)

        sub.callback = _once_wrapper
        self._events.setdefault(name, []).append(sub)
        return lambda: self._remove(name, sub)

    def off(self, name: str, callback: Listener) -> None:
        subs = self._events.get(name)
        if not subs:
            return
        for sub in subs:
            if sub.original is callback or sub.callback is callback:
                self._remove(name, sub)
                return

    def emit(self, name: str, *args: Any) -> int:
        """Invoke every listener of ``name`` with ``args``. Returns the number invoked."""
        snapshot = list(self._events.get(name, ()))
        for sub in snapshot:
            try:
                result = sub.callback(*args)
            except Exception:
                self._report_failure(name, sub.original)
                continue
            if inspect.isawaitable(result):
                self._track(name, sub.original, result)
        return len(snapshot)

    def remove_all_listeners(self, name: str | None = None) -> None:
        if name is None:
            self._events.clear()
        else:
            self._events.pop(name, None)

    def listener_count(self, name: str) -> int:
        return len(self._events.get(name, ()))

    def event_names(self) -> list[str]:
        return list(self._events.keys())

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every scheduled async listener (including ones they spawn) finishes."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ----------------------------
    # Internal helpers
    # ----------------------------
    def _remove(self, name: str, sub: _Subscription) -> None:
        subs = self._events.get(name)
        if not subs:
            return
        try:
            subs.remove(sub)
        except ValueError:
            return
        if not subs:
            del self._events[name]

    def _track(self, name: str, callback: Listener, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._logger.error(
                "async listener dropped: no running event loop",
                extra={
                    "event": "listener_dropped",
                    "listener": _describe(callback),
                    "attributes": {"event_name": name},
                },
            )
            return

        async def _run() -> Any:
            return await awaitable

        task = loop.create_task(_run())
        self._pending.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._pending.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                self._report_failure(name, callback, exc)

        task.add_done_callback(_done)

    def _report_failure(
        self, name: str, callback: Listener, exc: BaseException | None = None
    ) -> None:
        extra = {
            "event": "listener_error",
            "listener": _describe(callback),
            "attributes": {"event_name": name},
        }
        if exc is None:
            self._logger.exception("event listener failed", extra=extra)
        else:
            self._logger.error(
                "event listener failed", exc_info=(type(exc), exc, exc.__traceback__), extra=extra
            )
        get_metrics().increment("event_listener_errors", {"event": name})


__all__ = ["EventBus", "Listener", "Unsubscribe"]
