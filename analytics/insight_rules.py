# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
Lexical insight rules — pull goals, habits, challenges, values and
learnings out of note text.

A rule is a regex with one capture group, the insight type it yields,
and a fixed confidence. Rules run line by line, case-insensitive; the
capture is the rest of the line after the trigger phrase.

The pattern detector only consumes ExtractedInsight records, so a
different rule set can be dropped in without touching detection.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from analytics.schemas import ExtractedInsight, Note

logger = logging.getLogger("lifetrack.insight_rules")

MIN_CAPTURE_LENGTH = 3


@dataclass(frozen=True)
class InsightRule:
    pattern: str
    insight_type: str
    confidence: float

    def compiled(self) -> "re.Pattern":
        return re.compile(self.pattern, re.IGNORECASE)


DEFAULT_RULES: Sequence[InsightRule] = (
    # goals
    InsightRule(r"^\s*(?:[-*]\s*)?goal:\s*(.+)$", "goal", 0.9),
    InsightRule(r"\bmy goal is(?: to)?\s+(.+)$", "goal", 0.85),
    InsightRule(r"\bi want to\s+(.+)$", "goal", 0.7),
    InsightRule(r"\bi will\s+(.+)$", "goal", 0.6),
    # habits
    InsightRule(r"^\s*(?:[-*]\s*)?habit:\s*(.+)$", "habit", 0.9),
    InsightRule(r"\bevery (?:day|morning|evening|night) i\s+(.+)$", "habit", 0.75),
    InsightRule(r"\bi always\s+(.+)$", "habit", 0.6),
    # challenges
    InsightRule(r"^\s*(?:[-*]\s*)?challenge:\s*(.+)$", "challenge", 0.9),
    InsightRule(r"\bstruggling with\s+(.+)$", "challenge", 0.8),
    InsightRule(r"\bi find it hard to\s+(.+)$", "challenge", 0.75),
    # values
    InsightRule(r"^\s*(?:[-*]\s*)?value:\s*(.+)$", "value", 0.9),
    InsightRule(r"\bi believe\s+(.+)$", "value", 0.6),
    InsightRule(r"\b(.+?)\s+is important to me\b", "value", 0.7),
    # learnings
    InsightRule(r"^\s*(?:[-*]\s*)?(?:learned|til):\s*(.+)$", "learning", 0.9),
    InsightRule(r"\bi learned(?: that)?\s+(.+)$", "learning", 0.75),
)


def _clean(text: str) -> str:
    return text.strip().rstrip(".!").strip()


def extract_from_text(
    text: str,
    source: Optional[str] = None,
    rules: Sequence[InsightRule] = DEFAULT_RULES,
) -> List[ExtractedInsight]:
    """Apply every rule to every line. One insight per (type, content)."""
    compiled = [(rule, rule.compiled()) for rule in rules]
    seen = set()
    insights = []

    for line in text.splitlines():
        if not line.strip():
            continue
        for rule, regex in compiled:
            match = regex.search(line)
            if not match:
                continue
            content = _clean(match.group(1))
            if len(content) < MIN_CAPTURE_LENGTH:
                continue
            key = (rule.insight_type, content.lower())
            if key in seen:
                continue
            seen.add(key)
            insights.append(ExtractedInsight(
                type=rule.insight_type,
                content=content,
                source=source,
                confidence=rule.confidence,
            ))
    return insights


def extract_insights(
    notes: Iterable[Note],
    rules: Sequence[InsightRule] = DEFAULT_RULES,
) -> List[ExtractedInsight]:
    """Run the rules over a batch of notes, deduplicating across notes."""
    seen = set()
    results = []
    for note in notes:
        for insight in extract_from_text(note.content, source=note.name, rules=rules):
            key = (insight.type, insight.content.lower())
            if key in seen:
                continue
            seen.add(key)
            results.append(insight)

    logger.debug("Extracted %d insights", len(results))
    return results
