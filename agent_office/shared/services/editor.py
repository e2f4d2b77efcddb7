"""Open a plan document in the user's editor."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
import webbrowser
from pathlib import Path

logger = logging.getLogger(__name__)

# Session app names that are also editor commands.
KNOWN_EDITORS = (
    "code", "cursor", "windsurf", "zed", "vim", "nvim", "nano", "subl",
    "atom", "idea", "webstorm", "notepad++", "antigravity",
)


def resolve_editor_command(path: Path, app_name: str | None = None) -> list[str]:
    """Pick an editor: $EDITOR/$VISUAL, then the session's IDE, then VS Code."""
    editor = os.getenv("EDITOR") or os.getenv("VISUAL")
    if editor:
        return [*shlex.split(editor), str(path)]
    app = (app_name or "").lower()
    for candidate in KNOWN_EDITORS:
        if candidate in app:
            return [candidate, str(path)]
    return ["code", str(path)]


def open_in_editor(path: Path, app_name: str | None = None) -> None:
    """Launch the editor detached. Raises OSError when it cannot be started."""
    command = resolve_editor_command(path, app_name)
    logger.info("Opening %s with %s", path, command[0])
    subprocess.Popen(
        command,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=sys.platform != "win32",
    )


def open_browser(url: str) -> None:
    if not webbrowser.open(url):
        logger.info("Open %s in your browser", url)
