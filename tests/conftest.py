# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""Test configuration — paths isolation, a controllable clock, a private bus."""

from datetime import datetime, timedelta

import pytest

from analytics.events import EventBus
from analytics.metrics import MetricStore
from analytics.patterns import PatternDetector
from core.paths import configure, reset
from core.tracker import reset_tracker


class FakeClock:
    """Callable stand-in for datetime.now that tests can move around."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args) -> None:
        self.now = datetime(*args)

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path):
    """Route all LifeTrack data to a temp directory for test isolation."""
    paths = configure(tmp_path)
    paths.ensure_dirs()
    yield paths
    reset()
    reset_tracker()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 3, 21, 0))


@pytest.fixture
def event_bus():
    return EventBus(history_size=50)


@pytest.fixture
def store(isolated_paths, event_bus, clock):
    return MetricStore(isolated_paths.metrics_file, bus=event_bus, clock=clock)


@pytest.fixture
def detector(isolated_paths, event_bus, clock):
    return PatternDetector(isolated_paths.patterns_file, bus=event_bus, clock=clock)
