# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
LifeTrack Correlation Engine — do two systems move together?

For each relationship in analytics.relationships:

  1. pull both systems' entries over a trailing window (default 14 days)
  2. collapse each side to one value per date (same-day readings averaged)
  3. align on common dates; too few → no result this run
  4. continuous: Pearson r, reported when |r| >= threshold
     presence:   mean(y on present days) - mean(y on absent days),
                 reported when |diff| >= threshold
  5. direction from the sign, strength = |r| or min(|diff| / 2, 1)
  6. canned phrasing per direction, one evidence string per date
  7. persisted through MetricStore.add_correlation, status "observed"
     when strength > 0.7, otherwise "hypothesis"

Relationships already confirmed by the user are left alone.
"""

import logging
import math
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from analytics.events import Events
from analytics.metrics import MetricStore, correlation_fingerprint, extract_field, is_number
from analytics.relationships import (
    CONTINUOUS, MIN_COMMON_DATES, MIN_GROUP_DATES, RELATIONSHIPS, RelationshipSpec,
)

logger = logging.getLogger("lifetrack.correlations")

DEFAULT_WINDOW_DAYS = 14
OBSERVED_THRESHOLD = 0.7  # strength above this starts as "observed"


# ============================================================================
# Statistics
# ============================================================================

def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Pearson correlation coefficient of paired samples.

    Returns 0.0 when either series has zero variance (or fewer than two
    pairs), instead of dividing by zero.
    """
    if len(xs) != len(ys):
        raise ValueError("pearson() needs paired samples of equal length")
    n = len(xs)
    if n < 2:
        return 0.0

    mean_x = sum(xs) / n
    mean_y = sum(ys) / n
    cov = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    var_x = sum((x - mean_x) ** 2 for x in xs)
    var_y = sum((y - mean_y) ** 2 for y in ys)
    if var_x == 0 or var_y == 0:
        return 0.0
    r = cov / math.sqrt(var_x * var_y)
    # float noise can push |r| a hair past 1
    return max(-1.0, min(1.0, r))


def mean_difference(present: Sequence[float], absent: Sequence[float]) -> float:
    """mean(present) - mean(absent). Empty groups → 0.0."""
    if not present or not absent:
        return 0.0
    return sum(present) / len(present) - sum(absent) / len(absent)


def classify(value: float, threshold: float, kind: str = CONTINUOUS) -> Optional[Tuple[str, float]]:
    """
    (direction, strength) for a statistic that clears its threshold,
    None otherwise.
    """
    if abs(value) < threshold or value == 0:
        return None
    direction = "positive" if value > 0 else "negative"
    if kind == CONTINUOUS:
        strength = abs(value)
    else:
        strength = min(abs(value) / 2, 1.0)
    return direction, strength


def initial_status(strength: float) -> str:
    return "observed" if strength > OBSERVED_THRESHOLD else "hypothesis"


# ============================================================================
# Date alignment
# ============================================================================

def daily_values(entries: List[Dict[str, Any]], field: str) -> Dict[str, float]:
    """date → mean of the field's numeric readings that day."""
    buckets: Dict[str, List[float]] = defaultdict(list)
    for e in entries:
        value = extract_field(e, field)
        if is_number(value):
            buckets[e["date"]].append(float(value))
    return {d: sum(vs) / len(vs) for d, vs in buckets.items()}


def presence_dates(entries: List[Dict[str, Any]], field: Optional[str]) -> Set[str]:
    """Dates with at least one entry (that has `field` set, if given)."""
    if field is None:
        return {e["date"] for e in entries}
    return {e["date"] for e in entries if extract_field(e, field)}


# ============================================================================
# Engine
# ============================================================================

class CorrelationEngine:
    """Runs the relationship table against a MetricStore."""

    def __init__(
        self,
        store: MetricStore,
        relationships: Sequence[RelationshipSpec] = RELATIONSHIPS,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ):
        self.store = store
        self.relationships = tuple(relationships)
        self.window_days = window_days

    def _build(
        self,
        spec: RelationshipSpec,
        direction: str,
        strength: float,
        evidence: List[str],
        statistic: float,
    ) -> Dict[str, Any]:
        return {
            "systems": list(spec.systems),
            "pattern": spec.phrase(direction),
            "strength": strength,
            "direction": direction,
            "evidence": evidence,
            "status": initial_status(strength),
            "fingerprint": correlation_fingerprint(list(spec.systems), spec.key),
            "relationship": spec.key,
            "statistic": round(statistic, 4),
        }

    def _continuous(self, spec: RelationshipSpec, x_entries, y_entries) -> Optional[Dict[str, Any]]:
        xs_by_date = daily_values(x_entries, spec.x_field)
        ys_by_date = daily_values(y_entries, spec.y_field)
        common = sorted(xs_by_date.keys() & ys_by_date.keys())
        if len(common) < MIN_COMMON_DATES:
            logger.debug("%s: %d common dates, need %d", spec.key, len(common), MIN_COMMON_DATES)
            return None

        xs = [xs_by_date[d] for d in common]
        ys = [ys_by_date[d] for d in common]
        r = pearson(xs, ys)
        verdict = classify(r, spec.threshold, spec.kind)
        if verdict is None:
            logger.debug("%s: r=%.3f below %.2f", spec.key, r, spec.threshold)
            return None

        evidence = [spec.evidence.format(date=d, x=x, y=y) for d, x, y in zip(common, xs, ys)]
        direction, strength = verdict
        return self._build(spec, direction, strength, evidence, r)

    def _presence(self, spec: RelationshipSpec, x_entries, y_entries) -> Optional[Dict[str, Any]]:
        present_dates = presence_dates(x_entries, spec.x_field)
        ys_by_date = daily_values(y_entries, spec.y_field)

        present = sorted(d for d in ys_by_date if d in present_dates)
        absent = sorted(d for d in ys_by_date if d not in present_dates)
        if len(present) < MIN_GROUP_DATES or len(absent) < MIN_GROUP_DATES:
            logger.debug(
                "%s: %d present / %d absent days, need %d each",
                spec.key, len(present), len(absent), MIN_GROUP_DATES,
            )
            return None

        diff = mean_difference(
            [ys_by_date[d] for d in present],
            [ys_by_date[d] for d in absent],
        )
        verdict = classify(diff, spec.threshold, spec.kind)
        if verdict is None:
            logger.debug("%s: difference %.2f below %.2f", spec.key, diff, spec.threshold)
            return None

        evidence = [
            spec.evidence.format(
                date=d,
                y=ys_by_date[d],
                label=spec.present_label if d in present_dates else spec.absent_label,
            )
            for d in sorted(ys_by_date)
        ]
        direction, strength = verdict
        return self._build(spec, direction, strength, evidence, diff)

    def analyze_pair(self, spec: RelationshipSpec, days: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Evaluate one relationship. None when data is short or the effect is weak."""
        if days is None:
            days = self.window_days
        x_system, y_system = spec.systems
        x_entries = self.store.get_recent_entries(x_system, days)
        y_entries = self.store.get_recent_entries(y_system, days)

        if spec.kind == CONTINUOUS:
            return self._continuous(spec, x_entries, y_entries)
        return self._presence(spec, x_entries, y_entries)

    def analyze_correlations(self, days: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Run every relationship, persist what qualifies, and return the
        stored records (with their ids, so callers can confirm them).

        Pairs with too little data or a weak effect are simply absent from
        the result. A record that couldn't be written is returned as built,
        without an id.
        """
        if days is None:
            days = self.window_days
        confirmed = set(self.store.confirmed_fingerprints())
        found = []

        for spec in self.relationships:
            fingerprint = correlation_fingerprint(list(spec.systems), spec.key)
            if fingerprint in confirmed:
                logger.debug("%s already confirmed, skipping", spec.key)
                continue

            result = self.analyze_pair(spec, days)
            if result is None:
                continue
            stored = self.store.add_correlation(result)
            if stored is None:
                logger.warning("Could not persist %s correlation", spec.key)
                stored = result
            found.append(stored)

        self.store.mark_correlation_analysis()
        logger.info("Correlation analysis over %d days: %d found", days, len(found))
        self.store.bus.emit(Events.ANALYSIS_COMPLETED, {
            "kind": "correlations",
            "found": len(found),
            "days": days,
        }, source="correlations")
        return found


def format_correlations(correlations: List[Dict[str, Any]]) -> str:
    """Readable digest, strongest first."""
    if not correlations:
        return "No correlations found yet."

    lines = []
    for c in sorted(correlations, key=lambda c: -c["strength"]):
        systems = " ↔ ".join(c["systems"])
        lines.append(
            f"[{c.get('status', 'hypothesis')}] {systems}: {c['pattern']} "
            f"(strength {c['strength']:.2f}, {c['direction']})"
        )
    return "\n".join(lines)
