"""Active-session discovery.

The session manager records the active session in ``.gemini/.env`` under
the project root, and stores session files in
``~/.gemkit/projects/<PROJECT_DIR>/gk-session-<id>.json``.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

LOCAL_GEMINI_DIR = ".gemini"
ENV_FILE = ".env"
LOCAL_PLANS_DIR = "plans"
GEMKIT_PROJECTS_DIR = Path.home() / ".gemkit" / "projects"

_ENV_LINE = re.compile(r"^([A-Z_][A-Z0-9_]*)=(.*)$", re.MULTILINE)


@dataclass(frozen=True)
class SessionEnv:
    active_session_id: str = ""
    project_dir: str = ""
    project_hash: str = ""
    active_plan: str = ""

    @property
    def has_active_session(self) -> bool:
        return bool(self.active_session_id and self.project_dir)


def get_local_env_path(project_path: Path) -> Path:
    return project_path / LOCAL_GEMINI_DIR / ENV_FILE


def get_plans_dir(project_path: Path) -> Path:
    return project_path / LOCAL_PLANS_DIR


def get_session_path(
    project_dir: str,
    session_id: str,
    projects_root: Path | None = None,
) -> Path:
    root = projects_root if projects_root is not None else GEMKIT_PROJECTS_DIR
    return root / project_dir / f"gk-session-{session_id}.json"


def read_env(project_path: Path | None = None) -> SessionEnv:
    """Read the active session pointer. Missing or unreadable files yield empty values."""
    project_path = project_path or Path.cwd()
    env_path = get_local_env_path(project_path)
    try:
        content = env_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return SessionEnv()
    except OSError:
        logger.warning("Could not read %s", env_path, exc_info=True)
        return SessionEnv()

    values = {m.group(1): m.group(2).strip() for m in _ENV_LINE.finditer(content)}
    return SessionEnv(
        active_session_id=values.get("ACTIVE_GK_SESSION_ID", ""),
        project_dir=values.get("PROJECT_DIR", ""),
        project_hash=values.get("GK_PROJECT_HASH", ""),
        active_plan=values.get("ACTIVE_PLAN", ""),
    )
