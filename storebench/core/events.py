"""
Lifecycle Event Emitter.

Minimal pub/sub used by the orchestrator to announce registration and run
lifecycle transitions. Handlers may be plain functions or coroutines.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

EventHandler = Callable[[Any], Awaitable[None] | None]


@dataclass
class _HandlerInfo:
    handler: EventHandler
    once: bool = False


class EventEmitter:
    """
    Named-event dispatcher.

    Usage:
        events = EventEmitter()
        unsubscribe = events.on("benchmark:completed", handle_result)
        await events.emit("benchmark:completed", {"name": "insert"})
        unsubscribe()
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[_HandlerInfo]] = {}

    def on(self, event: str, handler: EventHandler) -> Callable[[], bool]:
        """Register a handler. Returns a function that removes this registration."""
        info = _HandlerInfo(handler)
        self._handlers.setdefault(event, []).append(info)
        return lambda: self._remove(event, info)

    def once(self, event: str, handler: EventHandler) -> Callable[[], bool]:
        """Register a handler that is removed after its first call."""
        info = _HandlerInfo(handler, once=True)
        self._handlers.setdefault(event, []).append(info)
        return lambda: self._remove(event, info)

    def off(self, event: str, handler: EventHandler) -> bool:
        """Remove every registration of a handler. Returns True if it was registered."""
        return self._discard(event, lambda info: info.handler is handler)

    def _remove(self, event: str, info: _HandlerInfo) -> bool:
        return self._discard(event, lambda registered: registered is info)

    def _discard(self, event: str, predicate: Callable[[_HandlerInfo], bool]) -> bool:
        handlers = self._handlers.get(event)
        if not handlers:
            return False

        remaining = [h for h in handlers if not predicate(h)]
        if len(remaining) == len(handlers):
            return False

        if remaining:
            self._handlers[event] = remaining
        else:
            del self._handlers[event]
        return True

    async def emit(self, event: str, data: Any = None) -> None:
        """
        Call every handler registered for ``event``.

        Handlers run concurrently. A failing handler is logged and never
        propagates to the emitter.
        """
        handlers = list(self._handlers.get(event, ()))
        if not handlers:
            return

        # Drop once-handlers before dispatch so re-entrant emits don't call them twice
        for info in handlers:
            if info.once:
                self._remove(event, info)

        await asyncio.gather(*(self._dispatch(event, info.handler, data) for info in handlers))

    async def _dispatch(self, event: str, handler: EventHandler, data: Any) -> None:
        try:
            outcome = handler(data)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning("Event handler failed", event_name=event, error=str(e))

    def remove_all_listeners(self, event: str | None = None) -> int:
        """Remove listeners for one event, or for all events. Returns the count removed."""
        if event is not None:
            return len(self._handlers.pop(event, []))

        count = sum(len(h) for h in self._handlers.values())
        self._handlers.clear()
        return count

    def listeners(self, event: str) -> list[EventHandler]:
        return [info.handler for info in self._handlers.get(event, ())]

    def has_listeners(self, event: str) -> bool:
        return bool(self._handlers.get(event))
