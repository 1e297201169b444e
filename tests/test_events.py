# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""Event bus tests — dispatch, priority, history, errors."""

import pytest

from analytics.events import Event, EventBus, Events


@pytest.fixture
def bus():
    return EventBus(history_size=50)


class TestDispatch:

    def test_emit_calls_subscriber(self, bus):
        received = []
        bus.on(Events.ENTRY_ADDED, lambda e: received.append(e.data))
        bus.emit(Events.ENTRY_ADDED, {"system": "mood"})
        assert received == [{"system": "mood"}]

    def test_emit_returns_event(self, bus):
        event = bus.emit("test", {"x": 1}, source="tests")
        assert isinstance(event, Event)
        assert event.source == "tests"

    def test_no_subscribers_no_crash(self, bus):
        assert bus.emit("nobody_listening").data == {}

    def test_higher_priority_first(self, bus):
        order = []
        bus.on("test", lambda e: order.append("low"), priority=0)
        bus.on("test", lambda e: order.append("high"), priority=10)
        bus.on("test", lambda e: order.append("low2"), priority=0)
        bus.emit("test")
        assert order == ["high", "low", "low2"]


class TestHistoryAndErrors:

    def test_history_caps_at_size(self):
        bus = EventBus(history_size=3)
        for i in range(10):
            bus.emit("test", {"i": i})
        assert [h["data"]["i"] for h in bus.history()] == [7, 8, 9]

    def test_history_filtered(self, bus):
        bus.emit("a")
        bus.emit("b")
        assert [h["type"] for h in bus.history("b")] == ["b"]

    def test_bad_handler_doesnt_stop_others(self, bus):
        results = []

        def bad(e):
            raise RuntimeError("boom")

        bus.on("test", bad, priority=10)
        bus.on("test", lambda e: results.append("ok"))
        bus.emit("test")
        assert results == ["ok"]

    def test_recursion_guard(self, bus):
        depth = []

        def again(e):
            depth.append(1)
            bus.emit("loop")

        bus.on("loop", again)
        bus.emit("loop")
        assert len(depth) == 3


    def test_history_limit(self, bus):
        for i in range(5):
            bus.emit("test", {"i": i})
        assert [h["data"]["i"] for h in bus.history(limit=2)] == [3, 4]
