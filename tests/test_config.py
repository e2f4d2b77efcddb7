"""Tests for OfficeConfig env and YAML loading."""

from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from agent_office.engine.config import OfficeConfig


def test_defaults() -> None:
    config = OfficeConfig()

    assert config.host == "127.0.0.1"
    assert config.port == 3847
    assert config.max_port_attempts == 10
    assert config.poll_interval_seconds == 0.2
    assert config.history_size == 1000
    assert config.lock_stale_seconds == 30.0
    assert config.auto_open is True
    assert config.session_file is None


def test_from_env_overrides() -> None:
    env = {
        "OFFICE_HOST": "0.0.0.0",
        "OFFICE_PORT": "4000",
        "OFFICE_AUTO_OPEN": "false",
        "OFFICE_POLL_INTERVAL": "0.5",
        "OFFICE_HISTORY_SIZE": "50",
        "OFFICE_LOG_LEVEL": "debug",
        "OFFICE_SESSION_FILE": "/tmp/gk-session-x.json",
    }
    with patch.dict("os.environ", env, clear=True):
        config = OfficeConfig.from_env()

    assert config.host == "0.0.0.0"
    assert config.port == 4000
    assert config.auto_open is False
    assert config.poll_interval_seconds == 0.5
    assert config.history_size == 50
    assert config.log_level == "DEBUG"
    assert config.session_file == "/tmp/gk-session-x.json"


def test_from_env_without_vars_uses_defaults() -> None:
    with patch.dict("os.environ", {}, clear=True):
        assert OfficeConfig.from_env() == OfficeConfig()


def test_merge_yaml_office_section() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "office.yaml"
        path.write_text(yaml.safe_dump({
            "office": {"port": "4100", "auto_open": "no", "poll_interval_seconds": 1, "bogus": 1},
        }), encoding="utf-8")

        config = OfficeConfig().merge_yaml(path)

    assert config.port == 4100
    assert config.auto_open is False
    assert config.poll_interval_seconds == 1.0
    assert isinstance(config.poll_interval_seconds, float)


def test_merge_yaml_top_level_mapping() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "office.yaml"
        path.write_text("host: 10.0.0.1\n", encoding="utf-8")

        assert OfficeConfig().merge_yaml(path).host == "10.0.0.1"


def test_merge_yaml_invalid_raises() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "office.yaml"
        path.write_text("office: [unclosed\n", encoding="utf-8")

        with pytest.raises(yaml.YAMLError):
            OfficeConfig().merge_yaml(path)


def test_merge_skips_none_and_returns_copy() -> None:
    base = OfficeConfig()

    merged = base.merge({"port": None, "auto_open": False, "session_file": "x.json"})

    assert merged is not base
    assert merged.port == 3847
    assert merged.auto_open is False
    assert merged.session_file == "x.json"
    assert base.auto_open is True
