# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""Schema tests — defaults, validation rules, load/save helpers, salvage."""

import json

import pytest

from analytics.schemas import (
    SYSTEMS,
    Correlation, ExtractedInsight, MetricEntry, MetricsDocument, Pattern, PatternsDocument,
    StorageError,
    load_validated, save_validated,
)

NOW = "2024-01-03T21:00:00"


class TestMetricsDocument:

    def test_defaults_have_every_system(self):
        doc = MetricsDocument()
        assert sorted(doc.systems) == sorted(SYSTEMS)
        assert all(log.enabled and log.entries == [] for log in doc.systems.values())
        assert doc.metadata.total_entries == 0
        assert doc.correlations.discovered == []

    def test_missing_system_backfilled(self):
        doc = MetricsDocument.model_validate({"systems": {"mood": {"entries": []}}})
        assert "money" in doc.systems

    def test_entry_extra_fields_kept(self):
        entry = MetricEntry(id="e1", timestamp=NOW, date="2024-01-03", sleep_hours=7.5)
        assert entry.model_dump()["sleep_hours"] == 7.5

    def test_entry_date_must_match_timestamp(self):
        with pytest.raises(ValueError):
            MetricEntry(id="e1", timestamp=NOW, date="2024-01-04")


class TestRecordValidation:

    def test_correlation_needs_two_systems(self):
        with pytest.raises(ValueError):
            Correlation(id="c", systems=["mood"], pattern="p", strength=0.5, discovered=NOW)

    def test_correlation_strength_bounds(self):
        with pytest.raises(ValueError):
            Correlation(id="c", systems=["a", "b"], pattern="p", strength=-0.1, discovered=NOW)

    def test_correlation_direction(self):
        with pytest.raises(ValueError):
            Correlation(id="c", systems=["a", "b"], pattern="p", strength=0.5,
                        direction="sideways", discovered=NOW)

    def test_pattern_type_and_status(self):
        with pytest.raises(ValueError):
            Pattern(id="p", type="vibes", category="x", description="d", confidence=0.5, discovered=NOW)
        with pytest.raises(ValueError):
            Pattern(id="p", type="trend", category="x", description="d", confidence=0.5,
                    discovered=NOW, status="maybe")

    def test_insight_type(self):
        with pytest.raises(ValueError):
            ExtractedInsight(type="wish", content="a pony")


class TestLoadSave:

    def test_roundtrip(self, tmp_path):
        doc = PatternsDocument(last_analysis=NOW)
        doc.insights.observations.append("Most active on Mondays")
        path = tmp_path / "patterns.json"
        save_validated(path, doc)
        assert load_validated(path, PatternsDocument).model_dump() == doc.model_dump()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_validated(tmp_path / "nope.json", MetricsDocument) == MetricsDocument()

    def test_invalid_json_gives_defaults(self, tmp_path):
        path = tmp_path / "metrics.json"
        path.write_text("{oops")
        assert load_validated(path, MetricsDocument).metadata.total_entries == 0

    def test_schema_mismatch_gives_defaults(self, tmp_path):
        path = tmp_path / "metrics.json"
        path.write_text(json.dumps({"metadata": {"total_entries": "many"}}))
        assert load_validated(path, MetricsDocument).metadata.total_entries == 0

    def test_no_tmp_left_behind(self, tmp_path):
        path = tmp_path / "metrics.json"
        save_validated(path, MetricsDocument())
        assert path.exists()
        assert not (tmp_path / "metrics.json.tmp").exists()

    def test_unwritable_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(StorageError):
            save_validated(blocker / "metrics.json", MetricsDocument())

    def test_unknown_keys_survive(self, tmp_path):
        path = tmp_path / "metrics.json"
        path.write_text(json.dumps({"version": "1.0", "hand_added": {"x": 1}}))
        doc = load_validated(path, MetricsDocument)
        save_validated(path, doc)
        assert json.loads(path.read_text())["hand_added"] == {"x": 1}

    def test_invalid_records_dropped_rest_kept(self, tmp_path):
        good = {"id": "p1", "type": "trend", "category": "x", "description": "kept",
                "confidence": 0.5, "discovered": NOW}
        bad = dict(good, id="p2", status="maybe")
        path = tmp_path / "patterns.json"
        path.write_text(json.dumps({"last_analysis": NOW, "patterns": {"trends.general": [good, bad]}}))

        doc = load_validated(path, PatternsDocument)
        assert [p.id for p in doc.patterns["trends.general"]] == ["p1"]
        assert doc.last_analysis == NOW
        assert (tmp_path / "patterns.json.bak").exists()

    def test_valid_file_not_backed_up(self, tmp_path):
        path = tmp_path / "metrics.json"
        save_validated(path, MetricsDocument())
        load_validated(path, MetricsDocument)
        assert not (tmp_path / "metrics.json.bak").exists()
