"""
Unit Tests for the Event Emitter.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from storebench.core.events import EventEmitter


class TestEventEmitter:
    """Test cases for EventEmitter."""

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self) -> None:
        events = EventEmitter()
        sync_handler = MagicMock()
        async_handler = AsyncMock()
        events.on("benchmark:completed", sync_handler)
        events.on("benchmark:completed", async_handler)

        await events.emit("benchmark:completed", {"name": "insert"})

        sync_handler.assert_called_once_with({"name": "insert"})
        async_handler.assert_awaited_once_with({"name": "insert"})

    @pytest.mark.asyncio
    async def test_unsubscribe(self) -> None:
        events = EventEmitter()
        handler = MagicMock()
        unsubscribe = events.on("store:registered", handler)

        assert unsubscribe() is True
        await events.emit("store:registered")

        handler.assert_not_called()
        assert events.has_listeners("store:registered") is False

    @pytest.mark.asyncio
    async def test_once(self) -> None:
        events = EventEmitter()
        handler = MagicMock()
        events.once("benchmark:started", handler)

        await events.emit("benchmark:started", 1)
        await events.emit("benchmark:started", 2)

        handler.assert_called_once_with(1)

    @pytest.mark.asyncio
    async def test_once_keeps_persistent_registration(self) -> None:
        events = EventEmitter()
        handler = MagicMock()
        events.on("benchmark:state", handler)
        events.once("benchmark:state", handler)

        await events.emit("benchmark:state", 1)
        await events.emit("benchmark:state", 2)

        assert [c.args for c in handler.call_args_list] == [(1,), (1,), (2,)]
        assert events.listeners("benchmark:state") == [handler]

    @pytest.mark.asyncio
    async def test_unsubscribe_removes_only_that_registration(self) -> None:
        events = EventEmitter()
        handler = MagicMock()
        events.on("benchmark:state", handler)
        unsubscribe = events.once("benchmark:state", handler)

        assert unsubscribe() is True
        await events.emit("benchmark:state", 1)

        handler.assert_called_once_with(1)

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_propagate(self) -> None:
        events = EventEmitter()
        healthy = MagicMock()
        events.on("benchmark:error", MagicMock(side_effect=RuntimeError("handler bug")))
        events.on("benchmark:error", AsyncMock(side_effect=ValueError("async handler bug")))
        events.on("benchmark:error", healthy)

        await events.emit("benchmark:error", "payload")

        healthy.assert_called_once_with("payload")

    @pytest.mark.asyncio
    async def test_emit_without_listeners(self) -> None:
        await EventEmitter().emit("nothing:here")

    def test_off_unknown_handler(self) -> None:
        events = EventEmitter()

        assert events.off("benchmark:state", MagicMock()) is False

    def test_remove_all_listeners(self) -> None:
        events = EventEmitter()
        events.on("a", MagicMock())
        events.on("a", MagicMock())
        events.on("b", MagicMock())

        assert events.remove_all_listeners("a") == 2
        assert events.listeners("a") == []
        assert events.remove_all_listeners() == 1
        assert events.has_listeners("b") is False
