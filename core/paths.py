# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
LifeTrack Paths — single source of truth for all data file locations.

Resolution order:
  1. LIFETRACK_DATA_DIR environment variable
  2. Default: ~/.lifetrack/memory/

Usage:
    from core.paths import get_paths
    p = get_paths()
    p.metrics_file      # ~/.lifetrack/memory/metrics.json
    p.patterns_file     # ~/.lifetrack/memory/patterns.json

For tests:
    from core.paths import configure
    configure(tmp_path)  # all paths now rooted under tmp_path
"""

import os
from pathlib import Path
from typing import Optional


class LifePaths:
    """Central registry of every file and directory LifeTrack uses."""

    def __init__(self, data_dir: Optional[Path] = None):
        if data_dir is not None:
            self._root = Path(data_dir)
        else:
            env = os.environ.get("LIFETRACK_DATA_DIR")
            if env:
                self._root = Path(env).expanduser()
            else:
                self._root = Path.home() / ".lifetrack" / "memory"

    @property
    def data_dir(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Documents owned by the analytics core
    # ------------------------------------------------------------------
    @property
    def metrics_file(self) -> Path:
        return self._root / "metrics.json"

    @property
    def patterns_file(self) -> Path:
        return self._root / "patterns.json"

    # ------------------------------------------------------------------
    # Config and logs
    # ------------------------------------------------------------------
    @property
    def config_file(self) -> Path:
        return self._root / "analytics-config.json"

    @property
    def log_file(self) -> Path:
        return self._root / "lifetrack.log"

    def ensure_dirs(self) -> None:
        """Create the data directory."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# ===========================================================================
# Process-wide default
# ===========================================================================

_instance: Optional[LifePaths] = None


def get_paths() -> LifePaths:
    """Return the global LifePaths instance (lazy-init)."""
    global _instance
    if _instance is None:
        _instance = LifePaths()
    return _instance


def configure(data_dir: Path) -> LifePaths:
    """
    Override the global paths. Used by tests and hosting apps with their
    own data dir.

    Returns the new instance for convenience.
    """
    global _instance
    _instance = LifePaths(data_dir=data_dir)
    return _instance


def reset() -> None:
    """Reset so next get_paths() re-reads env."""
    global _instance
    _instance = None
