# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
The hand-picked relationships the correlation engine checks.

Each relationship names two systems, how to read a value from each, the minimum
effect worth reporting, and one phrasing per direction. The negative
phrasings offer the less obvious reading ("oversleeping").
Adding a relationship means adding a row here, nothing else.

Two kinds:
  continuous — numeric on both sides, Pearson r over common dates
  presence   — did the x-system log anything that day (optionally: with
               a given field set), compared by mean y on present vs.
               absent days
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

CONTINUOUS = "continuous"
PRESENCE = "presence"

MIN_COMMON_DATES = 3
MIN_GROUP_DATES = 2


@dataclass(frozen=True)
class RelationshipSpec:
    key: str
    systems: Tuple[str, str]
    kind: str
    x_field: Optional[str]  # presence specs: None means "any entry that day"
    y_field: str
    threshold: float
    positive: str
    negative: str
    evidence: str  # continuous: {date} {x} {y}; presence: {date} {y} {label}
    present_label: str = ""
    absent_label: str = ""

    def phrase(self, direction: str) -> str:
        return self.positive if direction == "positive" else self.negative


RELATIONSHIPS: Tuple[RelationshipSpec, ...] = (
    RelationshipSpec(
        key="sleep_energy",
        systems=("health", "energy"),
        kind=CONTINUOUS,
        x_field="sleep_hours",
        y_field="level",
        threshold=0.4,
        positive="More sleep correlates with higher energy levels",
        negative="Longer sleep correlates with lower energy (might indicate oversleeping)",
        evidence="{x:g}hrs sleep → {y:g}/10 energy",
    ),
    RelationshipSpec(
        key="energy_mood",
        systems=("energy", "mood"),
        kind=CONTINUOUS,
        x_field="level",
        y_field="valence",
        threshold=0.4,
        positive="Higher energy levels correlate with better mood",
        negative="Higher energy correlates with lower mood (could be restlessness or anxiety)",
        evidence="{x:g}/10 energy → {y:g}/5 mood",
    ),
    RelationshipSpec(
        key="exercise_mood",
        systems=("health", "mood"),
        kind=PRESENCE,
        x_field="exercise",
        y_field="valence",
        threshold=0.5,
        positive="Exercise days correlate with better mood",
        negative="Exercise days correlate with lower mood (might indicate overtraining or fatigue)",
        evidence="{date}: {label} → {y:g}/5 mood",
        present_label="exercised",
        absent_label="no exercise",
    ),
    RelationshipSpec(
        key="learning_mood",
        systems=("learning", "mood"),
        kind=PRESENCE,
        x_field=None,
        y_field="valence",
        threshold=0.3,
        positive="Learning days correlate with better mood",
        negative="Learning days correlate with lower mood (might indicate cognitive overload)",
        evidence="{date}: {label} → {y:g}/5 mood",
        present_label="learned something",
        absent_label="no learning",
    ),
    RelationshipSpec(
        key="sleep_mood",
        systems=("health", "mood"),
        kind=CONTINUOUS,
        x_field="sleep_hours",
        y_field="valence",
        threshold=0.4,
        positive="Better sleep correlates with better mood",
        negative="More sleep correlates with lower mood (low mood can drive oversleeping)",
        evidence="{x:g}hrs sleep → {y:g}/5 mood",
    ),
)

RELATIONSHIPS_BY_KEY: Dict[str, RelationshipSpec] = {r.key: r for r in RELATIONSHIPS}
