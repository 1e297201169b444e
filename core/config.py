# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""
Analytics config — defaults, user overrides, logging setup.
"""

import json
import logging
from typing import Any, Dict, Optional

from core.paths import LifePaths, get_paths

DEFAULT_CONFIG: Dict[str, Any] = {
    "correlation_window_days": 14,
    "temporal_sample_size": 50,
    "dashboard_days": 7,
    "recent_insights_limit": 5,
}

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: int = logging.INFO,
    paths: Optional[LifePaths] = None,
    to_file: bool = True,
) -> logging.Logger:
    """Configure the lifetrack logger tree to log to file + stderr."""
    paths = paths or get_paths()

    logger = logging.getLogger("lifetrack")
    logger.setLevel(level)

    if to_file:
        paths.ensure_dirs()
        fh = logging.FileHandler(str(paths.log_file), mode="a")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(fh)

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(sh)

    return logger


def load_config(paths: Optional[LifePaths] = None) -> Dict[str, Any]:
    """Load analytics config, falling back to defaults."""
    paths = paths or get_paths()
    config = dict(DEFAULT_CONFIG)
    if paths.config_file.exists():
        try:
            user = json.loads(paths.config_file.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logging.getLogger("lifetrack.config").warning(
                "Ignoring unreadable config %s: %s", paths.config_file, e,
            )
            return config
        if isinstance(user, dict):
            config.update({k: v for k, v in user.items() if k in DEFAULT_CONFIG})
    return config
