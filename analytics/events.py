# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
LifeTrack Event Bus — synchronous pub/sub between the store and engines.

The metric store and the two engines announce what they changed; anything
that wants to react (briefings, notifications, the hosting app) subscribes
instead of importing the engines directly.

Usage:
    from analytics.events import bus, Events

    bus.on(Events.CORRELATION_DISCOVERED, notify_user)
    bus.emit(Events.ENTRY_ADDED, {"system": "mood", "id": "..."}, source="metrics")

Handlers run inline, highest priority first. A failing handler is logged
and never breaks the emitter or the remaining handlers.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("lifetrack.events")

# Recursion safety: max emit depth before refusing
_MAX_EMIT_DEPTH = 3


class Events:
    """Registry of all event types. Use these constants, not raw strings."""

    # --- Metric store ---
    ENTRY_ADDED = "entry_added"
    INSIGHT_ADDED = "insight_added"

    # --- Correlations ---
    CORRELATION_DISCOVERED = "correlation_discovered"
    CORRELATION_CONFIRMED = "correlation_confirmed"

    # --- Patterns ---
    PATTERN_DETECTED = "pattern_detected"
    PATTERN_CONFIRMED = "pattern_confirmed"

    # --- Runs ---
    ANALYSIS_COMPLETED = "analysis_completed"


@dataclass
class Event:
    """A single emitted event."""
    type: str
    data: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    source: Optional[str] = None


@dataclass
class Subscriber:
    callback: Callable[[Event], None]
    priority: int = 0  # higher = called first
    source: Optional[str] = None


class EventBus:
    """In-process event bus with priority ordering and a short history."""

    def __init__(self, history_size: int = 100):
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._history: List[Event] = []
        self._history_size = history_size
        self._emit_depth = 0

    def on(
        self,
        event_type: str,
        callback: Callable[[Event], None],
        priority: int = 0,
        source: Optional[str] = None,
    ) -> None:
        """Subscribe to an event type."""
        subs = self._subscribers.setdefault(event_type, [])
        subs.append(Subscriber(callback=callback, priority=priority, source=source))
        # sort is stable, so equal priorities keep subscription order
        subs.sort(key=lambda s: -s.priority)

    def emit(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ) -> Event:
        """
        Dispatch an event to its subscribers.

        Returns the Event object, whether or not anyone was listening.
        """
        event = Event(type=event_type, data=data or {}, source=source)

        self._emit_depth += 1
        if self._emit_depth > _MAX_EMIT_DEPTH:
            logger.warning(
                "Event recursion depth %d exceeded for %s — skipping",
                self._emit_depth, event_type,
            )
            self._emit_depth -= 1
            return event

        try:
            self._history.append(event)
            if len(self._history) > self._history_size:
                self._history = self._history[-self._history_size:]

            # Copy: handlers may subscribe while we iterate
            subs = list(self._subscribers.get(event_type, []))
            for sub in subs:
                try:
                    sub.callback(event)
                except Exception as e:
                    logger.error(
                        "Event handler error: %s -> %s: %s",
                        event_type,
                        sub.source or getattr(sub.callback, "__name__", "?"),
                        e,
                    )

            return event
        finally:
            self._emit_depth -= 1

    def history(self, event_type: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
        """Get recent event history."""
        events = self._history
        if event_type:
            events = [e for e in events if e.type == event_type]
        return [
            {
                "type": e.type,
                "data": e.data,
                "timestamp": e.timestamp,
                "source": e.source,
            }
            for e in events[-limit:]
        ]


# ============================================================================
# The process-wide default bus
# ============================================================================

bus = EventBus()
