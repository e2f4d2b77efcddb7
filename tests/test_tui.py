"""Tests for the terminal viewer."""

from __future__ import annotations

import asyncio
import json
import tempfile
from pathlib import Path

from rich.text import Text

from agent_office.adapters.events import EventType, OfficeEvent
from agent_office.engine.config import OfficeConfig
from agent_office.shared.models.projection import (
    AgentView,
    AgentViewState,
    NotificationType,
    OfficeNotification,
    OfficeProjection,
)
from agent_office.tui.widgets.desks import desk_body, progress_bar


def _session_file(tmp: str) -> Path:
    path = Path(tmp) / "gk-session-tui.json"
    path.write_text(json.dumps({
        "gkSessionId": "s1",
        "activePlan": "260101-auth",
        "agents": [
            {"gkSessionId": "s1", "agentType": "Main Agent", "agentRole": "main",
             "status": "active"},
            {"gkSessionId": "a1", "parentGkSessionId": "s1", "agentRole": "researcher",
             "status": "active", "injected": {"skills": ["pdf"]}},
        ],
    }), encoding="utf-8")
    return path


def test_progress_bar_is_fixed_width() -> None:
    assert progress_bar(0).plain.startswith("░" * 16)
    assert progress_bar(100).plain.startswith("█" * 16)
    assert progress_bar(250).plain.endswith("100%")


def test_desk_body_shows_state_skill_and_bubble() -> None:
    view = AgentView(id="a1", role="coder", state=AgentViewState.WORKING,
                     active_skill="pdf", progress=40, speech_bubble="On it",
                     has_fire_effect=True)

    body = desk_body(view)

    assert isinstance(body, Text)
    assert "working" in body.plain
    assert "pdf" in body.plain
    assert "On it" in body.plain


def test_tui_renders_session_and_toggles_panels() -> None:
    async def _run() -> None:
        from agent_office.tui.app import OfficeApp
        from agent_office.tui.widgets.event_log import EventLog
        from agent_office.tui.widgets.panels import DocumentsPanel, InboxPanel
        from agent_office.tui.widgets.status_bar import StatusBar

        with tempfile.TemporaryDirectory() as tmp:
            config = OfficeConfig(session_file=str(_session_file(tmp)), poll_interval_seconds=60)
            app = OfficeApp(config=config, project_path=Path(tmp))
            async with app.run_test(size=(140, 40)) as pilot:
                await pilot.pause()

                bar = app.query_one("#status-bar", StatusBar)
                assert bar.session_id == "s1"
                assert bar.active_plan == "260101-auth"
                assert bar.total == 1
                assert bar.working == 1
                assert bar.status == "watching"

                inbox = app.query_one("#inbox", InboxPanel)
                assert inbox.display
                await pilot.press("i")
                assert not inbox.display
                await pilot.press("d")
                assert not app.query_one("#documents", DocumentsPanel).display

                bus = app.dashboard.bus
                bus.set_state(OfficeProjection(
                    session_id="s1",
                    current_notification=OfficeNotification(
                        "Task completed! Check your inbox", NotificationType.SUCCESS, 7,
                    ),
                ))
                bus.emit(OfficeEvent(EventType.SESSION_COMPLETE, "s1",
                                     message="All tasks completed", timestamp=7))
                await pilot.pause()

                assert app.query_one("#notification").has_class("visible")
                assert bar.status == "complete"
                assert len(app.query_one("#event-log", EventLog).lines) >= 1

    asyncio.run(_run())


def test_tui_exits_when_no_session() -> None:
    async def _run() -> None:
        from agent_office.tui.app import OfficeApp

        with tempfile.TemporaryDirectory() as tmp:
            config = OfficeConfig(session_file=str(Path(tmp) / "missing.json"))
            app = OfficeApp(config=config, project_path=Path(tmp))
            async with app.run_test():
                pass
            assert app.return_code == 1

    asyncio.run(_run())
