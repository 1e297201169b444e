# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""Lexical insight rules — triggers, cleanup, dedup, custom rule sets."""

from datetime import datetime

from analytics.insight_rules import (
    DEFAULT_RULES, InsightRule, extract_from_text, extract_insights,
)
from analytics.schemas import Note


def _note(name, content):
    ts = datetime(2024, 1, 1, 9)
    return Note(path=f"notes/{name}.md", name=name, content=content, created=ts, modified=ts)


def _pairs(insights):
    return [(i.type, i.content) for i in insights]


class TestDefaultRules:

    def test_goal_prefix(self):
        result = extract_from_text("Goal: Run a marathon.")
        assert _pairs(result) == [("goal", "Run a marathon")]
        assert result[0].confidence == 0.9

    def test_goal_phrases(self):
        text = "I want to learn Spanish\nThis year I will read more books"
        assert _pairs(extract_from_text(text)) == [
            ("goal", "learn Spanish"),
            ("goal", "read more books"),
        ]

    def test_case_insensitive(self):
        assert _pairs(extract_from_text("MY GOAL IS TO sleep by 11")) == [("goal", "sleep by 11")]

    def test_habits(self):
        text = "- habit: walk after lunch\nEvery morning I stretch for ten minutes"
        assert _pairs(extract_from_text(text)) == [
            ("habit", "walk after lunch"),
            ("habit", "stretch for ten minutes"),
        ]

    def test_challenges(self):
        text = "Struggling with late-night scrolling\nI find it hard to focus after lunch"
        assert _pairs(extract_from_text(text)) == [
            ("challenge", "late-night scrolling"),
            ("challenge", "focus after lunch"),
        ]

    def test_values_and_learnings(self):
        text = "Honesty is important to me\nTIL: pydantic validators run after parsing"
        assert _pairs(extract_from_text(text)) == [
            ("value", "Honesty"),
            ("learning", "pydantic validators run after parsing"),
        ]

    def test_short_capture_skipped(self):
        assert extract_from_text("goal: x") == []

    def test_plain_text_yields_nothing(self):
        assert extract_from_text("Went to the shop. Bought apples.\n\n") == []

    def test_source_attached(self):
        result = extract_from_text("challenge: deadlines", source="journal")
        assert result[0].source == "journal"


class TestExtractInsights:

    def test_dedup_across_notes(self):
        notes = [
            _note("a", "Goal: run a marathon"),
            _note("b", "goal: Run a marathon"),
            _note("c", "Struggling with sleep"),
        ]
        result = extract_insights(notes)
        assert _pairs(result) == [("goal", "run a marathon"), ("challenge", "sleep")]
        assert result[0].source == "a"

    def test_custom_rules_replace_defaults(self):
        rules = [InsightRule(r"^gratitude:\s*(.+)$", "value", 0.8)]
        notes = [_note("a", "gratitude: morning coffee\nGoal: ship it")]
        assert _pairs(extract_insights(notes, rules)) == [("value", "morning coffee")]

    def test_every_default_rule_compiles(self):
        for rule in DEFAULT_RULES:
            assert rule.compiled().groups == 1
