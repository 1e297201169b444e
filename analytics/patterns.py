# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
LifeTrack Pattern Detector — temporal and behavioral regularities in notes.

Storage: <data_dir>/patterns.json (PatternsDocument)

Two analyses:

  temporal   — of the most recently modified notes (default 50), which
               weekday and which hour of day were they created on? The
               busiest day/hour is reported if it holds 3+ notes.
  behavioral — over insights extracted by analytics.insight_rules:
               3+ goals → recurring theme words (len > 4, seen 2+ times,
               top 5); 2+ challenges → count plus up to 3 examples;
               2+ habits → the habits being kept.

Patterns live under a hierarchical key ("productivity.time_patterns",
"behavioral.goal_themes", ...). Each carries a fingerprint of what it
describes; detecting the same thing again refreshes the stored record
(evidence, confidence, last_seen, times_seen) instead of adding a copy.

The observations/recommendations summary lists are replaced wholesale on
every full run.
"""

import hashlib
import logging
import re
from collections import Counter, defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from analytics.events import EventBus, Events, bus as default_bus
from analytics.insight_rules import DEFAULT_RULES, InsightRule, extract_insights
from analytics.schemas import (
    ExtractedInsight, Note, Pattern, PatternsDocument,
    StorageError, load_validated, save_validated,
)

logger = logging.getLogger("lifetrack.patterns")

CATEGORY_KEYS: Dict[str, str] = {
    "productivity": "productivity.time_patterns",
    "goals": "behavioral.goal_themes",
    "challenges": "behavioral.challenges",
    "habits": "behavioral.habits",
    "correlation": "correlations.cross_system",
    "trend": "trends.general",
}

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

DEFAULT_SAMPLE_SIZE = 50
MIN_TEMPORAL_COUNT = 3
WEEKLY_CONFIDENCE = 0.7
DAILY_CONFIDENCE = 0.65

MIN_GOALS = 3
MIN_THEME_WORD_LENGTH = 5  # "longer than four characters"
MIN_THEME_COUNT = 2
MAX_THEMES = 5
GOAL_THEME_CONFIDENCE = 0.6

MIN_CHALLENGES = 2
MAX_EXAMPLES = 3
CHALLENGE_CONFIDENCE = 0.65
CHALLENGE_SUGGESTION = (
    "Pick one recurring challenge and break it into a small first step for this week"
)

MIN_HABITS = 2
HABIT_CONFIDENCE = 0.6

OBSERVED_THRESHOLD = 0.7

_WORD = re.compile(r"[a-z][a-z']*")


def category_key(category: str) -> str:
    return CATEGORY_KEYS.get(category, f"general.{category}")


def pattern_fingerprint(pattern_type: str, category: str, key: str) -> str:
    raw = f"{pattern_type}:{category}:{key}"
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


def theme_words(texts: Iterable[str]) -> List[Tuple[str, int]]:
    """(word, count) for words longer than four letters seen at least twice."""
    counts = Counter(
        w for text in texts for w in _WORD.findall(text.lower())
        if len(w) >= MIN_THEME_WORD_LENGTH
    )
    ranked = sorted(
        ((w, c) for w, c in counts.items() if c >= MIN_THEME_COUNT),
        key=lambda wc: (-wc[1], wc[0]),
    )
    return ranked[:MAX_THEMES]


class PatternDetector:
    """Detects patterns and keeps the pattern store."""

    def __init__(
        self,
        path: Path,
        bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = datetime.now,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        rules: Sequence[InsightRule] = DEFAULT_RULES,
    ):
        self.path = Path(path)
        self.bus = bus or default_bus
        self.clock = clock
        self.sample_size = sample_size
        self.rules = tuple(rules)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _load(self) -> PatternsDocument:
        logger.debug("Loading patterns from %s", self.path)
        return load_validated(self.path, PatternsDocument)

    def _save(self, doc: PatternsDocument, operation: str) -> bool:
        try:
            save_validated(self.path, doc)
        except StorageError as e:
            logger.error("Pattern store write failed (op=%s): %s", operation, e)
            return False
        return True

    def _make(
        self,
        pattern_type: str,
        category: str,
        key: str,
        description: str,
        confidence: float,
        evidence: List[str],
        actionable: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = self.clock().isoformat()
        fingerprint = pattern_fingerprint(pattern_type, category, key)
        return Pattern(
            id=f"pattern_{hashlib.sha256(f'{fingerprint}:{now}'.encode()).hexdigest()[:12]}",
            type=pattern_type,
            category=category,
            description=description,
            confidence=confidence,
            evidence=evidence,
            discovered=now,
            status="observed" if confidence > OBSERVED_THRESHOLD else "hypothesis",
            actionable_insight=actionable,
            fingerprint=fingerprint,
            last_seen=now,
        ).model_dump()

    # ------------------------------------------------------------------
    # Temporal
    # ------------------------------------------------------------------

    def analyze_temporal_patterns(
        self,
        notes: Sequence[Note],
        sample_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Busiest weekday and hour among the most recently modified notes."""
        if sample_size is None:
            sample_size = self.sample_size
        recent = sorted(notes, key=lambda n: n.modified, reverse=True)[:sample_size]
        if not recent:
            return []

        by_day = Counter(n.created.weekday() for n in recent)
        by_hour = Counter(n.created.hour for n in recent)
        patterns = []

        day, day_count = min(by_day.items(), key=lambda kv: (-kv[1], kv[0]))
        if day_count >= MIN_TEMPORAL_COUNT:
            name = DAY_NAMES[day]
            patterns.append(self._make(
                "time_based", "productivity", f"weekday:{day}",
                f"Most active on {name}s",
                WEEKLY_CONFIDENCE,
                [f"{day_count} of the last {len(recent)} notes were created on a {name}"],
                f"Plan your most important work for {name}s, when you write the most",
            ))

        hour, hour_count = min(by_hour.items(), key=lambda kv: (-kv[1], kv[0]))
        if hour_count >= MIN_TEMPORAL_COUNT:
            patterns.append(self._make(
                "time_based", "productivity", f"hour:{hour}",
                f"Most active around {hour:02d}:00",
                DAILY_CONFIDENCE,
                [f"{hour_count} of the last {len(recent)} notes were created between "
                 f"{hour:02d}:00 and {(hour + 1) % 24:02d}:00"],
                f"Protect the {hour:02d}:00 hour for focused work",
            ))

        logger.debug("Temporal analysis over %d notes: %d patterns", len(recent), len(patterns))
        return patterns

    # ------------------------------------------------------------------
    # Behavioral
    # ------------------------------------------------------------------

    @staticmethod
    def _group(insights: Iterable[ExtractedInsight]) -> Dict[str, List[ExtractedInsight]]:
        groups: Dict[str, List[ExtractedInsight]] = defaultdict(list)
        for insight in insights:
            groups[insight.type].append(insight)
        return groups

    def analyze_behavioral_patterns(self, insights: Sequence[ExtractedInsight]) -> List[Dict[str, Any]]:
        """Goal themes and recurring challenges."""
        groups = self._group(insights)
        patterns = []

        goals = groups.get("goal", [])
        if len(goals) >= MIN_GOALS:
            themes = theme_words(g.content for g in goals)
            if themes:
                words = [w for w, _ in themes]
                patterns.append(self._make(
                    "behavioral", "goals", "themes:" + ",".join(sorted(words)),
                    f"Recurring goal themes: {', '.join(words)}",
                    GOAL_THEME_CONFIDENCE,
                    [f"'{w}' appears {c} times across {len(goals)} goals" for w, c in themes],
                    f"Your goals keep coming back to '{words[0]}'; consider making it an explicit priority",
                ))

        challenges = groups.get("challenge", [])
        if len(challenges) >= MIN_CHALLENGES:
            patterns.append(self._make(
                "behavioral", "challenges", "challenges",
                f"{len(challenges)} recurring challenges mentioned in notes",
                CHALLENGE_CONFIDENCE,
                [c.content for c in challenges[:MAX_EXAMPLES]],
                CHALLENGE_SUGGESTION,
            ))

        return patterns

    def analyze_habit_patterns(self, insights: Sequence[ExtractedInsight]) -> List[Dict[str, Any]]:
        habits = self._group(insights).get("habit", [])
        if len(habits) < MIN_HABITS:
            return []
        return [self._make(
            "behavioral", "habits", "habits",
            f"{len(habits)} habits described in notes",
            HABIT_CONFIDENCE,
            [h.content for h in habits[:MAX_EXAMPLES]],
            "Log these habits as metric entries to see whether they move your mood or energy",
        )]

    def analyze_correlation_patterns(self, correlations: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Mirror cross-system correlations as patterns, so briefings read one
        list. Takes plain correlation records; never touches the metric store.
        """
        patterns = []
        for c in correlations:
            systems = sorted(c["systems"])
            patterns.append(self._make(
                "correlation", "correlation",
                f"{','.join(systems)}:{c.get('relationship') or c['pattern']}",
                c["pattern"],
                c["strength"],
                list(c.get("evidence", []))[:MAX_EXAMPLES],
            ))
        return patterns

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _merge(self, doc: PatternsDocument, patterns: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """Fold patterns into the document. Returns (stored, newly_added)."""
        stored, added = [], []
        for p in patterns:
            bucket = doc.patterns.setdefault(category_key(p["category"]), [])
            existing = next((e for e in bucket if e.fingerprint == p["fingerprint"]), None)
            if existing is None:
                record = Pattern.model_validate(p)
                bucket.append(record)
                added.append(record.model_dump())
                stored.append(record.model_dump())
                continue

            existing.description = p["description"]
            existing.evidence = p["evidence"]
            existing.confidence = p["confidence"]
            if existing.status != "confirmed":
                existing.status = p["status"]
            existing.actionable_insight = p["actionable_insight"]
            existing.last_seen = p["last_seen"]
            existing.times_seen += 1
            stored.append(existing.model_dump())
        return stored, added

    def record_patterns(self, patterns: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Persist patterns (deduplicated by fingerprint). Returns what's stored."""
        if not patterns:
            return []
        doc = self._load()
        stored, added = self._merge(doc, patterns)
        if not self._save(doc, "record_patterns"):
            return []
        self._announce(added)
        return stored

    def _announce(self, added: List[Dict[str, Any]]):
        for p in added:
            logger.info("New pattern %s: %s", p["id"], p["description"])
            self.bus.emit(Events.PATTERN_DETECTED, {
                "id": p["id"],
                "category": p["category"],
                "type": p["type"],
            }, source="patterns")

    def run_full_analysis(
        self,
        notes: Sequence[Note],
        insights: Optional[Sequence[ExtractedInsight]] = None,
        correlations: Sequence[Dict[str, Any]] = (),
    ) -> Tuple[List[Dict[str, Any]], List[str], List[str]]:
        """
        Temporal + behavioral analysis, persisted.

        When insights aren't supplied they are extracted from the notes
        with this detector's rule set. Correlation records, if given, are
        mirrored as correlation patterns.

        Returns (patterns, observations, recommendations).
        """
        if insights is None:
            insights = extract_insights(notes, self.rules)

        detected = (
            self.analyze_temporal_patterns(notes)
            + self.analyze_behavioral_patterns(insights)
            + self.analyze_habit_patterns(insights)
            + self.analyze_correlation_patterns(correlations)
        )
        observations = [p["description"] for p in detected]
        recommendations = [p["actionable_insight"] for p in detected if p.get("actionable_insight")]

        doc = self._load()
        stored, added = self._merge(doc, detected)
        doc.insights.observations = observations
        doc.recommendations.based_on_patterns = recommendations
        doc.last_analysis = self.clock().isoformat()
        if self._save(doc, "run_full_analysis"):
            self._announce(added)
        else:
            stored = detected

        logger.info(
            "Pattern analysis: %d notes, %d insights, %d patterns (%d new)",
            len(notes), len(insights), len(stored), len(added),
        )
        self.bus.emit(Events.ANALYSIS_COMPLETED, {
            "kind": "patterns",
            "found": len(stored),
            "new": len(added),
        }, source="patterns")
        return stored, observations, recommendations

    # ------------------------------------------------------------------
    # Queries and lifecycle
    # ------------------------------------------------------------------

    def get_patterns(self, category: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
        doc = self._load()
        if category:
            records = list(doc.patterns.get(category_key(category), []))
        else:
            records = [p for bucket in doc.patterns.values() for p in bucket]
        if status:
            records = [p for p in records if p.status == status]
        return [p.model_dump() for p in records]

    def confirm_pattern(self, pattern_id: str) -> bool:
        """Mark a pattern confirmed in place. Unknown id → False."""
        doc = self._load()
        for bucket in doc.patterns.values():
            for p in bucket:
                if p.id == pattern_id:
                    p.status = "confirmed"
                    if not self._save(doc, "confirm_pattern"):
                        return False
                    logger.info("Confirmed pattern %s", pattern_id)
                    self.bus.emit(Events.PATTERN_CONFIRMED, {"id": pattern_id}, source="patterns")
                    return True
        logger.warning("Pattern %s not found for confirmation", pattern_id)
        return False

    def get_summary(self) -> Dict[str, Any]:
        doc = self._load()
        return {
            "last_analysis": doc.last_analysis,
            "total_patterns": sum(len(b) for b in doc.patterns.values()),
            "by_category": {k: len(v) for k, v in sorted(doc.patterns.items())},
            "observations": list(doc.insights.observations),
            "recommendations": list(doc.recommendations.based_on_patterns),
        }
