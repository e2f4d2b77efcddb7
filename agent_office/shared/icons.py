"""Role display helpers: icons, character types and display names."""

from __future__ import annotations

import re
from enum import Enum


class CharacterType(str, Enum):
    """Desk character a viewer draws for an agent role."""
    ORCHESTRATOR = "orchestrator"
    RESEARCHER = "researcher"
    CODER = "coder"
    PLANNER = "planner"
    TESTER = "tester"
    DESIGNER = "designer"
    WRITER = "writer"
    MANAGER = "manager"
    OTHER = "other"


# Checked in order, first match wins.
_CHARACTER_RULES: list[tuple[tuple[str, ...], CharacterType]] = [
    (("main",), CharacterType.ORCHESTRATOR),
    (("research", "scout"), CharacterType.RESEARCHER),
    (("code", "executor", "debug"), CharacterType.CODER),
    (("plan",), CharacterType.PLANNER),
    (("test",), CharacterType.TESTER),
    (("design", "ui", "ux", "artist"), CharacterType.DESIGNER),
    (("doc", "writer"), CharacterType.WRITER),
    (("manager", "git"), CharacterType.MANAGER),
]

_ROLE_ICONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"research|search|analyze", re.I), "\U0001f50d"),
    (re.compile(r"code|implement|execute|develop", re.I), "\U0001f4bb"),
    (re.compile(r"plan|architect", re.I), "\U0001f4cb"),
    (re.compile(r"debug|fix|troubleshoot", re.I), "\U0001f41b"),
    (re.compile(r"test|qa|quality", re.I), "\U0001f9ea"),
    (re.compile(r"design|ui|ux", re.I), "\U0001f3a8"),
    (re.compile(r"review|audit|check", re.I), "✅"),
    (re.compile(r"doc|write|content", re.I), "\U0001f4dd"),
]

DEFAULT_ICON = "\U0001f916"
ORCHESTRATOR_ICON = "\U0001f451"


def get_character_type(role: str) -> CharacterType:
    r = (role or "").lower()
    for needles, character in _CHARACTER_RULES:
        if any(n in r for n in needles):
            return character
    return CharacterType.OTHER


def get_icon_for_role(role: str, is_orchestrator: bool = False) -> str:
    if is_orchestrator:
        return ORCHESTRATOR_ICON
    for pattern, icon in _ROLE_ICONS:
        if pattern.search(role or ""):
            return icon
    return DEFAULT_ICON


def format_display_name(role: str) -> str:
    """``code-executor`` -> ``Code Executor``."""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), (role or "").replace("-", " "))
