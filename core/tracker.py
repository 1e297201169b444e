# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
LifeTrack Core
The composition root — builds the metric store and both engines once and
hands them to whoever needs them.

The hosting process creates one LifeTracker (or calls get_tracker()) and
passes it, or its parts, by reference. Nothing else in the package keeps
a store instance of its own.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from analytics.correlations import CorrelationEngine, format_correlations
from analytics.events import EventBus, bus as default_bus
from analytics.metrics import MetricStore
from analytics.patterns import PatternDetector
from analytics.schemas import ExtractedInsight, Note
from core.config import load_config
from core.paths import LifePaths, get_paths

logger = logging.getLogger("lifetrack.core.tracker")


class LifeTracker:
    """One store, one correlation engine, one pattern detector."""

    def __init__(
        self,
        paths: Optional[LifePaths] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = datetime.now,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.paths = paths or get_paths()
        self.config = config or load_config(self.paths)
        self.bus = bus or default_bus

        self.metrics = MetricStore(self.paths.metrics_file, bus=self.bus, clock=clock)
        self.correlations = CorrelationEngine(
            self.metrics,
            window_days=self.config["correlation_window_days"],
        )
        self.patterns = PatternDetector(
            self.paths.patterns_file,
            bus=self.bus,
            clock=clock,
            sample_size=self.config["temporal_sample_size"],
        )
        logger.debug("LifeTracker ready at %s", self.paths.data_dir)

    def dashboard(self) -> Dict[str, Any]:
        return self.metrics.get_dashboard(
            days=self.config["dashboard_days"],
            insight_limit=self.config["recent_insights_limit"],
        )

    def analyze(
        self,
        notes: Sequence[Note] = (),
        insights: Optional[Sequence[ExtractedInsight]] = None,
    ) -> Dict[str, Any]:
        """Correlations first, then patterns (with the fresh correlations mirrored)."""
        found = self.correlations.analyze_correlations()
        patterns, observations, recommendations = self.patterns.run_full_analysis(
            notes, insights=insights, correlations=found,
        )
        return {
            "correlations": found,
            "patterns": patterns,
            "observations": observations,
            "recommendations": recommendations,
        }

    def briefing(self) -> str:
        """Short text block: correlations plus pattern recommendations."""
        lines: List[str] = ["[CORRELATIONS]", format_correlations(self.metrics.get_correlations())]
        summary = self.patterns.get_summary()
        if summary["recommendations"]:
            lines.append("")
            lines.append("[RECOMMENDATIONS]")
            lines.extend(f"- {r}" for r in summary["recommendations"])
        return "\n".join(lines)


# ===========================================================================
# Process-wide instance
# ===========================================================================

_tracker: Optional[LifeTracker] = None


def get_tracker() -> LifeTracker:
    """The process's LifeTracker, built on first use from get_paths()."""
    global _tracker
    if _tracker is None:
        _tracker = LifeTracker()
    return _tracker


def reset_tracker() -> None:
    global _tracker
    _tracker = None
