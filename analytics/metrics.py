# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
LifeTrack Metric Store — dated observations per life system.

Storage: <data_dir>/metrics.json (one JSON document, see MetricsDocument)

Five systems are tracked: health, energy, mood, learning, money. Every
entry carries a `date` (YYYY-MM-DD) derived from its timestamp; that date
string is the join key the correlation engine aligns systems on.

The store also owns the correlation sets (discovered / confirmed) and the
weekly/monthly insights shown on the dashboard.

Every mutating call loads the whole document, changes it, and writes it
back (.tmp + rename). There is no locking: one writer per data dir. Two
processes writing at once can lose an update (last writer wins).

Mutating calls never raise on storage trouble. They log and return
False/None, so callers must check the result.
"""

import hashlib
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from analytics.events import EventBus, Events, bus as default_bus
from analytics.schemas import (
    SYSTEMS, INSIGHT_PERIODS,
    Correlation, Insight, MetricEntry, MetricsDocument,
    StorageError, UnknownSystemError,
    load_validated, save_validated,
)

logger = logging.getLogger("lifetrack.metrics")

# Generated fields: never taken from caller input
_RESERVED_FIELDS = {"id", "timestamp", "date"}


def extract_field(entry: Dict[str, Any], field: str) -> Any:
    """Read a possibly dotted field ("exercise.duration_minutes") from an entry."""
    value: Any = entry
    for part in field.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def correlation_fingerprint(systems: List[str], key: str) -> str:
    raw = f"{','.join(sorted(systems))}:{key}"
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


class MetricStore:
    """Read/modify/write access to the metrics document."""

    def __init__(
        self,
        path: Path,
        bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.path = Path(path)
        self.bus = bus or default_bus
        self.clock = clock

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _load(self) -> MetricsDocument:
        logger.debug("Loading metrics from %s", self.path)
        return load_validated(self.path, MetricsDocument)

    def _save(self, doc: MetricsDocument, operation: str, system: Optional[str] = None) -> bool:
        doc.last_updated = self.clock().isoformat()
        try:
            save_validated(self.path, doc)
        except StorageError as e:
            logger.error("Metrics write failed (op=%s, system=%s): %s", operation, system, e)
            return False
        return True

    def _generate_id(self, prefix: str, seed: str) -> str:
        raw = f"{prefix}:{seed}:{self.clock().isoformat()}"
        return f"{prefix}_{hashlib.sha256(raw.encode()).hexdigest()[:12]}"

    def _today(self) -> str:
        return self.clock().date().isoformat()

    def _window_start(self, days: int) -> str:
        """First date of a trailing `days`-day window that ends today."""
        return (self.clock().date() - timedelta(days=max(days, 1) - 1)).isoformat()

    @staticmethod
    def _check_system(system: str):
        if system not in SYSTEMS:
            raise UnknownSystemError(f"unknown system: {system}")

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def add_entry(
        self,
        system: str,
        fields: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> Optional[Dict[str, Any]]:
        """
        Record one observation for `system`.

        `fields` and keyword arguments are merged into the entry. id,
        timestamp and date are always generated here.

        Returns the stored entry, or None if the system is unknown or
        disabled, or the document couldn't be written.
        """
        try:
            self._check_system(system)
        except UnknownSystemError as e:
            logger.warning("Rejected entry: %s", e)
            return None

        doc = self._load()
        log = doc.systems[system]
        if not log.enabled:
            logger.warning("Rejected entry: system %s is disabled", system)
            return None

        payload = dict(fields or {})
        payload.update(extra)
        ignored = _RESERVED_FIELDS & payload.keys()
        if ignored:
            logger.debug("Ignoring caller-supplied %s on %s entry", sorted(ignored), system)

        now = self.clock()
        timestamp = now.isoformat()
        data = {k: v for k, v in payload.items() if k not in _RESERVED_FIELDS}
        data.update(
            id=self._generate_id(system, str(doc.metadata.total_entries)),
            timestamp=timestamp,
            date=timestamp[:10],
        )
        try:
            entry = MetricEntry.model_validate(data)
        except ValueError as e:
            logger.warning("Rejected %s entry: %s", system, e)
            return None

        log.entries.append(entry)
        meta = doc.metadata
        meta.total_entries += 1
        if not meta.tracking_start_date:
            meta.tracking_start_date = entry.date
        start = datetime.fromisoformat(meta.tracking_start_date).date()
        meta.tracking_days = (now.date() - start).days

        if not self._save(doc, "add_entry", system):
            return None

        logger.info("Added %s entry %s (%s)", system, entry.id, entry.date)
        self.bus.emit(Events.ENTRY_ADDED, {
            "system": system,
            "id": entry.id,
            "date": entry.date,
        }, source="metrics")
        return entry.model_dump()

    def get_entries(
        self,
        system: str,
        limit: Optional[int] = None,
        offset: int = 0,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Entries for one system, most recent first.

        Dates are compared as strings (YYYY-MM-DD sorts lexically), both
        bounds inclusive. Offset is applied before limit.
        """
        if system not in SYSTEMS:
            logger.warning("get_entries: unknown system %s", system)
            return []

        entries = [e.model_dump() for e in self._load().systems[system].entries]
        if start_date:
            entries = [e for e in entries if e["date"] >= start_date]
        if end_date:
            entries = [e for e in entries if e["date"] <= end_date]

        entries.sort(key=lambda e: e["timestamp"], reverse=True)
        if offset:
            entries = entries[offset:]
        if limit is not None:
            entries = entries[:limit]
        return entries

    def get_recent_entries(self, system: str, days: int) -> List[Dict[str, Any]]:
        """Entries inside the trailing `days`-day window (today included)."""
        return self.get_entries(system, start_date=self._window_start(days), end_date=self._today())

    def calculate_average(self, system: str, field: str, days: int = 7) -> Optional[float]:
        """
        Mean of a numeric field over the trailing window.

        Entries lacking the field, or holding a non-number, are skipped.
        Returns None (not 0) when nothing numeric is found.
        """
        values = [
            v for v in (extract_field(e, field) for e in self.get_recent_entries(system, days))
            if is_number(v)
        ]
        if not values:
            return None
        return sum(values) / len(values)

    def get_system_summary(self, system: str, days: int = 30) -> Dict[str, Any]:
        """Count, date range and per-field averages for one system."""
        entries = self.get_recent_entries(system, days)
        if not entries:
            return {"system": system, "entries": 0, "averages": {}}

        sums: Dict[str, List[float]] = {}
        for e in entries:
            for key, value in e.items():
                if key in _RESERVED_FIELDS or not is_number(value):
                    continue
                sums.setdefault(key, []).append(value)

        dates = sorted(e["date"] for e in entries)
        return {
            "system": system,
            "entries": len(entries),
            "first_date": dates[0],
            "last_date": dates[-1],
            "averages": {k: round(sum(v) / len(v), 2) for k, v in sorted(sums.items())},
        }

    def set_system_enabled(self, system: str, enabled: bool) -> bool:
        if system not in SYSTEMS:
            logger.warning("set_system_enabled: unknown system %s", system)
            return False
        doc = self._load()
        doc.systems[system].enabled = enabled
        return self._save(doc, "set_system_enabled", system)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def get_dashboard(self, days: int = 7, insight_limit: int = 5) -> Dict[str, Any]:
        """Per-system density over the window, confirmed count, latest insights."""
        doc = self._load()
        start, end = self._window_start(days), self._today()

        systems = {}
        for name in SYSTEMS:
            count = sum(1 for e in doc.systems[name].entries if start <= e.date <= end)
            systems[name] = {
                "entries": count,
                "per_day": round(count / days, 2) if days > 0 else 0.0,
            }

        insights = [i.model_dump() for i in doc.insights.weekly + doc.insights.monthly]
        insights.sort(key=lambda i: i["created"], reverse=True)

        return {
            "period_days": days,
            "systems": systems,
            "confirmed_correlations": len(doc.correlations.confirmed),
            "recent_insights": insights[:insight_limit],
            "tracking_days": doc.metadata.tracking_days,
            "total_entries": doc.metadata.total_entries,
        }

    # ------------------------------------------------------------------
    # Correlations
    # ------------------------------------------------------------------

    def add_correlation(self, correlation: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Record a discovered correlation and return the stored record.

        A correlation with the same fingerprint already in the discovered
        set is refreshed in place (keeps its id and discovery time). One
        that matches a confirmed record, fails validation, or can't be
        written returns None.
        """
        doc = self._load()
        now = self.clock().isoformat()

        data = dict(correlation)
        data.setdefault("fingerprint", correlation_fingerprint(
            data.get("systems", []), data.get("pattern", ""),
        ))
        data.setdefault("id", self._generate_id("corr", data["fingerprint"]))
        data.setdefault("discovered", now)
        data["last_seen"] = now
        try:
            record = Correlation.model_validate(data)
        except ValueError as e:
            logger.warning("Rejected correlation: %s", e)
            return None

        if any(c.fingerprint == record.fingerprint for c in doc.correlations.confirmed):
            logger.debug("Correlation %s already confirmed, not re-adding", record.fingerprint)
            return None

        discovered = doc.correlations.discovered
        for i, existing in enumerate(discovered):
            if existing.fingerprint == record.fingerprint:
                discovered[i] = record.model_copy(update={
                    "id": existing.id,
                    "discovered": existing.discovered,
                })
                if not self._save(doc, "add_correlation"):
                    return None
                logger.info("Refreshed correlation %s (%s)", existing.id, record.pattern)
                return discovered[i].model_dump()

        discovered.append(record)
        if not self._save(doc, "add_correlation"):
            return None

        logger.info("Discovered correlation %s: %s", record.id, record.pattern)
        self.bus.emit(Events.CORRELATION_DISCOVERED, {
            "id": record.id,
            "systems": record.systems,
            "strength": record.strength,
            "direction": record.direction,
        }, source="metrics")
        return record.model_dump()

    def confirm_correlation(self, correlation_id: str) -> bool:
        """Move a correlation from discovered to confirmed. Unknown id → False."""
        doc = self._load()
        discovered = doc.correlations.discovered
        for i, c in enumerate(discovered):
            if c.id == correlation_id:
                record = discovered.pop(i)
                record.status = "confirmed"
                record.confirmed_at = self.clock().isoformat()
                doc.correlations.confirmed.append(record)
                if not self._save(doc, "confirm_correlation"):
                    return False
                logger.info("Confirmed correlation %s", correlation_id)
                self.bus.emit(Events.CORRELATION_CONFIRMED, {
                    "id": correlation_id,
                    "systems": record.systems,
                }, source="metrics")
                return True

        logger.warning("Correlation %s not found for confirmation", correlation_id)
        return False

    def get_correlations(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        doc = self._load()
        records = doc.correlations.discovered + doc.correlations.confirmed
        if status:
            records = [c for c in records if c.status == status]
        return [c.model_dump() for c in records]

    def confirmed_fingerprints(self) -> List[str]:
        return [c.fingerprint for c in self._load().correlations.confirmed if c.fingerprint]

    def mark_correlation_analysis(self) -> bool:
        doc = self._load()
        doc.metadata.last_correlation_analysis = self.clock().isoformat()
        return self._save(doc, "mark_correlation_analysis")

    # ------------------------------------------------------------------
    # Insights and user context
    # ------------------------------------------------------------------

    def add_insight(
        self,
        content: str,
        period: str = "weekly",
        source: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        if period not in INSIGHT_PERIODS:
            logger.warning("Rejected insight: unknown period %s", period)
            return None

        doc = self._load()
        insight = Insight(
            id=self._generate_id("insight", content),
            content=content,
            created=self.clock().isoformat(),
            source=source,
        )
        getattr(doc.insights, period).append(insight)
        if not self._save(doc, "add_insight"):
            return None

        self.bus.emit(Events.INSIGHT_ADDED, {"id": insight.id, "period": period}, source="metrics")
        return insight.model_dump()

    def update_user(self, **fields: Any) -> bool:
        """Merge profile fields handed over by the personal-context store."""
        doc = self._load()
        doc.user.update(fields)
        return self._save(doc, "update_user")

    def get_user(self) -> Dict[str, Any]:
        return dict(self._load().user)

    def get_metadata(self) -> Dict[str, Any]:
        return self._load().metadata.model_dump()
