# Copyright (c) 2026 Nenad Vasic. All rights reserved.
# Licensed under the Business Source License 1.1 (BSL-1.1)
# See LICENSE file in the project root for full license text.

"""Paths + config tests."""

import logging
from pathlib import Path

import pytest

from core.config import DEFAULT_CONFIG, load_config, setup_logging
from core.paths import LifePaths, configure, get_paths, reset


class TestPaths:

    def test_configure_roots_everything(self, tmp_path):
        p = configure(tmp_path / "data")
        assert get_paths() is p
        assert p.metrics_file == tmp_path / "data" / "metrics.json"
        assert p.patterns_file == tmp_path / "data" / "patterns.json"
        assert p.config_file.name == "analytics-config.json"

    def test_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LIFETRACK_DATA_DIR", str(tmp_path / "env"))
        reset()
        assert get_paths().data_dir == tmp_path / "env"

    def test_default_under_home(self, monkeypatch):
        monkeypatch.delenv("LIFETRACK_DATA_DIR", raising=False)
        assert LifePaths().data_dir == Path.home() / ".lifetrack" / "memory"

    def test_ensure_dirs(self, tmp_path):
        p = LifePaths(tmp_path / "a" / "b")
        p.ensure_dirs()
        assert p.data_dir.is_dir()


class TestLoadConfig:

    def test_defaults_when_missing(self, isolated_paths):
        assert load_config(isolated_paths) == DEFAULT_CONFIG

    def test_known_keys_override(self, isolated_paths):
        isolated_paths.config_file.write_text('{"dashboard_days": 14, "theme": "dark"}')
        config = load_config(isolated_paths)
        assert config["dashboard_days"] == 14
        assert "theme" not in config

    def test_invalid_json_falls_back(self, isolated_paths, caplog):
        isolated_paths.config_file.write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="lifetrack.config"):
            assert load_config(isolated_paths) == DEFAULT_CONFIG
        assert "Ignoring unreadable config" in caplog.text

    def test_non_object_ignored(self, isolated_paths):
        isolated_paths.config_file.write_text("[1, 2]")
        assert load_config(isolated_paths) == DEFAULT_CONFIG

    def test_defaults_not_mutated(self, isolated_paths):
        load_config(isolated_paths)["dashboard_days"] = 99
        assert DEFAULT_CONFIG["dashboard_days"] == 7


class TestSetupLogging:

    @pytest.fixture(autouse=True)
    def clean_handlers(self):
        logger = logging.getLogger("lifetrack")
        before = list(logger.handlers)
        yield
        for h in logger.handlers[:]:
            if h not in before:
                logger.removeHandler(h)
                h.close()

    def test_writes_to_log_file(self, isolated_paths):
        logger = setup_logging(paths=isolated_paths)
        logging.getLogger("lifetrack.metrics").info("entry added")
        for h in logger.handlers:
            h.flush()
        assert "entry added" in isolated_paths.log_file.read_text()

    def test_stderr_only(self, isolated_paths):
        logger = setup_logging(level=logging.DEBUG, paths=isolated_paths, to_file=False)
        assert logger.level == logging.DEBUG
        assert not isolated_paths.log_file.exists()
