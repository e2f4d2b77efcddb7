"""Configuration loaded from environment variables and an optional YAML file.

All settings have sensible defaults. Override via OFFICE_* env vars, or
an ``office:`` section in a YAML file:

    office:
      port: 4000
      host: 0.0.0.0
      auto_open: false
      poll_interval_seconds: 0.5
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class OfficeConfig:
    """Dashboard, watcher and server settings."""

    host: str = "127.0.0.1"
    port: int = 3847
    # Retries on the next higher port when the address is in use.
    max_port_attempts: int = 10
    auto_open: bool = True

    # Native change notifications are unreliable on some platforms, so the
    # watcher polls the session file's mtime.
    poll_interval_seconds: float = 0.2
    history_size: int = 1000

    # Cross-process instance lock
    lock_stale_seconds: float = 30.0
    lock_refresh_seconds: float = 10.0

    log_level: str = "INFO"
    # Explicit session file; bypasses .gemini/.env discovery when set.
    session_file: str | None = None

    @classmethod
    def from_env(cls) -> OfficeConfig:
        """Load configuration from OFFICE_* environment variables."""
        office_vars = {
            k: v for k, v in os.environ.items() if k.startswith("OFFICE_")
        }
        if office_vars:
            logger.info(
                "OfficeConfig.from_env: OFFICE_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(office_vars.items())),
            )
        else:
            logger.debug("OfficeConfig.from_env: no OFFICE_* env vars set, using defaults")

        return cls(
            host=os.getenv("OFFICE_HOST", cls.host),
            port=int(os.getenv("OFFICE_PORT", str(cls.port))),
            max_port_attempts=int(os.getenv(
                "OFFICE_MAX_PORT_ATTEMPTS", str(cls.max_port_attempts)
            )),
            auto_open=os.getenv(
                "OFFICE_AUTO_OPEN", "1" if cls.auto_open else "0"
            ).lower() in _TRUTHY,
            poll_interval_seconds=float(os.getenv(
                "OFFICE_POLL_INTERVAL", str(cls.poll_interval_seconds)
            )),
            history_size=int(os.getenv(
                "OFFICE_HISTORY_SIZE", str(cls.history_size)
            )),
            lock_stale_seconds=float(os.getenv(
                "OFFICE_LOCK_STALE_SECONDS", str(cls.lock_stale_seconds)
            )),
            log_level=os.getenv("OFFICE_LOG_LEVEL", cls.log_level).upper(),
            session_file=os.getenv("OFFICE_SESSION_FILE") or None,
        )

    def merge_yaml(self, path: str | Path) -> OfficeConfig:
        """Return a copy overlaid with the ``office:`` section of a YAML file."""
        path = Path(path)
        logger.info("OfficeConfig.merge_yaml: loading %s (exists=%s)", path, path.exists())
        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            logger.error("OfficeConfig.merge_yaml: YAML parse error in %s: %s", path, exc)
            raise

        section = raw.get("office", raw) if isinstance(raw, dict) else {}
        if not isinstance(section, dict):
            logger.warning("OfficeConfig.merge_yaml: 'office' section in %s is not a mapping", path)
            return self
        return self.merge(section)

    def merge(self, overrides: dict[str, Any]) -> OfficeConfig:
        """Return a copy with known keys from *overrides* applied."""
        known = {f.name: f for f in fields(self)}
        updates: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in known:
                logger.warning("OfficeConfig: ignoring unknown setting %r", key)
                continue
            if value is None:
                continue
            current = getattr(self, key)
            if isinstance(current, bool):
                updates[key] = value if isinstance(value, bool) else str(value).lower() in _TRUTHY
            elif isinstance(current, int):
                updates[key] = int(value)
            elif isinstance(current, float):
                updates[key] = float(value)
            else:
                updates[key] = str(value)
        return replace(self, **updates)
