# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
LifeTrack Schema Registry — Pydantic models for every JSON document.

Single source of truth for the two documents the analytics core owns:

    metrics.json   — per-system entry logs, correlations, insights
    patterns.json  — detected patterns, observations, recommendations

Usage:
    from analytics.schemas import MetricsDocument, load_validated, save_validated

    doc = load_validated(path, MetricsDocument)
    doc.metadata.total_entries += 1
    save_validated(path, doc)

All models use extra="allow" so system-specific entry fields (sleep_hours,
valence, ...) and hand-added keys survive a load/save cycle untouched.
"""

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger("lifetrack.schemas")

SCHEMA_VERSION = "1.0"

SYSTEMS = ("health", "energy", "mood", "learning", "money")
STATUSES = ("hypothesis", "observed", "confirmed")
DIRECTIONS = ("positive", "negative", "complex")
PATTERN_TYPES = ("time_based", "behavioral", "correlation", "trend")
INSIGHT_PERIODS = ("weekly", "monthly")
INSIGHT_TYPES = ("goal", "habit", "challenge", "value", "learning")


# ============================================================================
# Base config: all models inherit this
# ============================================================================

class LifeModel(BaseModel):
    """Base for all LifeTrack schemas. Allows extra fields for forward compat."""
    model_config = {"extra": "allow"}

    @classmethod
    def salvage(cls, data: Any) -> Any:
        """Raw data with invalid records removed. Documents override this."""
        return data


def _keep_valid(items: Any, schema: Type[LifeModel], where: str) -> Any:
    """Records from a raw list that validate against schema; the rest are logged and dropped."""
    if not isinstance(items, list):
        return items
    kept = []
    for item in items:
        try:
            schema.model_validate(item)
        except ValidationError as e:
            logger.warning("Dropping invalid %s in %s: %s", schema.__name__, where, e.errors()[0]["msg"])
            continue
        kept.append(item)
    return kept


# ============================================================================
# Exceptions: raised by internals, caught at the public-operation boundary
# ============================================================================

class LifeTrackError(Exception):
    """Base class for analytics errors."""

class StorageError(LifeTrackError):
    """A document could not be read or written."""

class UnknownSystemError(LifeTrackError):
    """The metric category is not one of the tracked systems."""


# ============================================================================
# METRICS DOCUMENT
# ============================================================================

class MetricEntry(LifeModel):
    """
    One dated observation. System-specific fields ride along as extras.

    `date` is the calendar-day prefix of `timestamp` and is the join key
    for every cross-system comparison.
    """
    id: str
    timestamp: str
    date: str
    note: Optional[str] = None

    @model_validator(mode="after")
    def _date_matches_timestamp(self):
        if self.date != self.timestamp[:10]:
            raise ValueError(
                f"entry date {self.date} does not match timestamp {self.timestamp}"
            )
        return self


class SystemLog(LifeModel):
    enabled: bool = True
    entries: List[MetricEntry] = Field(default_factory=list)


def _default_systems() -> Dict[str, SystemLog]:
    return {name: SystemLog() for name in SYSTEMS}


class Correlation(LifeModel):
    """A thresholded relationship between two tracked systems."""
    id: str
    systems: List[str]
    pattern: str
    strength: float = Field(ge=0.0, le=1.0)
    direction: str = "positive"
    evidence: List[str] = Field(default_factory=list)
    discovered: str
    status: str = "hypothesis"
    fingerprint: Optional[str] = None
    last_seen: Optional[str] = None
    confirmed_at: Optional[str] = None

    @field_validator("systems")
    @classmethod
    def _at_least_two(cls, v):
        if len(v) < 2:
            raise ValueError("a correlation involves at least two systems")
        return v

    @field_validator("direction")
    @classmethod
    def _known_direction(cls, v):
        if v not in DIRECTIONS:
            raise ValueError(f"unknown direction: {v}")
        return v

    @field_validator("status")
    @classmethod
    def _known_status(cls, v):
        if v not in STATUSES:
            raise ValueError(f"unknown status: {v}")
        return v


class CorrelationSets(LifeModel):
    discovered: List[Correlation] = Field(default_factory=list)
    confirmed: List[Correlation] = Field(default_factory=list)


class Insight(LifeModel):
    """Weekly/monthly narrative insight shown on the dashboard."""
    id: str
    content: str
    created: str
    source: Optional[str] = None


class InsightSets(LifeModel):
    weekly: List[Insight] = Field(default_factory=list)
    monthly: List[Insight] = Field(default_factory=list)


class MetricsMetadata(LifeModel):
    total_entries: int = 0
    tracking_start_date: Optional[str] = None
    tracking_days: int = 0
    last_correlation_analysis: Optional[str] = None


class MetricsDocument(LifeModel):
    """Metric store document: <data_dir>/metrics.json"""
    version: str = SCHEMA_VERSION
    last_updated: Optional[str] = None
    user: Dict[str, Any] = Field(default_factory=dict)
    systems: Dict[str, SystemLog] = Field(default_factory=_default_systems)
    correlations: CorrelationSets = Field(default_factory=CorrelationSets)
    insights: InsightSets = Field(default_factory=InsightSets)
    metadata: MetricsMetadata = Field(default_factory=MetricsMetadata)

    @model_validator(mode="after")
    def _all_systems_present(self):
        # Older files may predate a system; give it an empty log.
        for name in SYSTEMS:
            self.systems.setdefault(name, SystemLog())
        return self

    @classmethod
    def salvage(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        systems = data.get("systems")
        if isinstance(systems, dict):
            for name, log in systems.items():
                if isinstance(log, dict):
                    log["entries"] = _keep_valid(log.get("entries", []), MetricEntry, f"systems.{name}")
        for section, schema in (("correlations", Correlation), ("insights", Insight)):
            sets = data.get(section)
            if isinstance(sets, dict):
                for key, items in sets.items():
                    sets[key] = _keep_valid(items, schema, f"{section}.{key}")
        return data


# ============================================================================
# PATTERNS DOCUMENT
# ============================================================================

class Pattern(LifeModel):
    """A temporal or behavioral regularity found in notes."""
    id: str
    type: str
    category: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: List[str] = Field(default_factory=list)
    discovered: str
    status: str = "hypothesis"
    actionable_insight: Optional[str] = None
    fingerprint: Optional[str] = None
    last_seen: Optional[str] = None
    times_seen: int = 1

    @field_validator("type")
    @classmethod
    def _known_type(cls, v):
        if v not in PATTERN_TYPES:
            raise ValueError(f"unknown pattern type: {v}")
        return v

    @field_validator("status")
    @classmethod
    def _known_status(cls, v):
        if v not in STATUSES:
            raise ValueError(f"unknown status: {v}")
        return v


class PatternObservations(LifeModel):
    observations: List[str] = Field(default_factory=list)


class PatternRecommendations(LifeModel):
    based_on_patterns: List[str] = Field(default_factory=list)


class PatternsDocument(LifeModel):
    """Pattern store document: <data_dir>/patterns.json"""
    version: str = SCHEMA_VERSION
    last_analysis: Optional[str] = None
    patterns: Dict[str, List[Pattern]] = Field(default_factory=dict)
    insights: PatternObservations = Field(default_factory=PatternObservations)
    recommendations: PatternRecommendations = Field(default_factory=PatternRecommendations)

    @classmethod
    def salvage(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        patterns = data.get("patterns")
        if isinstance(patterns, dict):
            for key, items in patterns.items():
                patterns[key] = _keep_valid(items, Pattern, f"patterns.{key}")
        return data


# ============================================================================
# COLLABORATOR INPUTS: not persisted by this core
# ============================================================================

class Note(LifeModel):
    """A note handed over by the vault reader."""
    path: str
    name: str
    content: str = ""
    tags: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
    created: datetime
    modified: datetime


class ExtractedInsight(LifeModel):
    """A categorized snippet pulled out of note text by a lexical rule."""
    type: str
    content: str
    source: Optional[str] = None
    confidence: float = 0.5

    @field_validator("type")
    @classmethod
    def _known_type(cls, v):
        if v not in INSIGHT_TYPES:
            raise ValueError(f"unknown insight type: {v}")
        return v


# ============================================================================
# UTILITY: validated load/save helpers
# ============================================================================

T = TypeVar("T", bound=LifeModel)


def load_validated(path: Path, schema: Type[T]) -> T:
    """
    Load JSON from file and validate against schema.

    A missing file yields schema() with all defaults. A file that parses
    but holds invalid records loses only those records. An unreadable
    file, or one that can't be salvaged, yields the defaults. In both
    failure cases the original is first copied to <name>.bak, since the
    next save replaces it. Callers never see a read failure.
    """
    if not path.exists():
        return schema()

    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Unreadable %s (%s), using empty %s", path, e, schema.__name__)
        _backup(path)
        return schema()

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.warning("%s has %d invalid field(s), keeping the valid records", path, e.error_count())

    _backup(path)
    try:
        return schema.model_validate(schema.salvage(data))
    except ValidationError as e:
        logger.warning("Unrecoverable %s (%s), using empty %s", path, e.errors()[0]["msg"], schema.__name__)
        return schema()


def _backup(path: Path):
    """Copy a damaged document to <name>.bak before it gets overwritten."""
    bak = path.with_suffix(path.suffix + ".bak")
    try:
        shutil.copy2(str(path), str(bak))
    except OSError as e:
        logger.error("Could not back up %s: %s", path, e)


def _atomic_rename(tmp: Path, dest: Path):
    """Flush, fsync, then rename — crash-safe atomic write."""
    fd = os.open(str(tmp), os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)
    os.replace(str(tmp), str(dest))


def save_validated(path: Path, model: LifeModel):
    """
    Write a model to JSON via .tmp + rename.

    Raises StorageError when the file can't be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(model.model_dump_json(indent=2))
        _atomic_rename(tmp, path)
    except OSError as e:
        raise StorageError(f"failed to write {path}: {e}") from e
