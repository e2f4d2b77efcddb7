"""Tests for the session file watcher."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from agent_office.adapters.events import EventType, OfficeEvent
from agent_office.engine.errors import SessionNotFoundError, SnapshotParseError
from agent_office.engine.models import SessionSnapshot
from agent_office.engine.watcher import SessionFileWatcher


def _session(*agents: dict) -> dict:
    return {"gkSessionId": "s1", "projectDir": "proj", "agents": list(agents)}


def _agent(agent_id: str, status: str = "active", **extra) -> dict:
    return {"gkSessionId": agent_id, "parentGkSessionId": "s1", "status": status, **extra}


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    def snapshot(self, snap: SessionSnapshot) -> None:
        self.calls.append(("state", snap))

    def event(self, event: OfficeEvent) -> None:
        self.calls.append(("event", event))

    def error(self, exc: Exception) -> None:
        self.calls.append(("error", exc))

    def of(self, kind: str) -> list:
        return [payload for k, payload in self.calls if k == kind]


def _write(path: Path, content: str, bump: int) -> None:
    path.write_text(content, encoding="utf-8")
    # Force a strictly newer mtime regardless of filesystem resolution.
    stamp = 1_700_000_000 + bump
    os.utime(path, (stamp, stamp))


def _watcher(rec: _Recorder, path: Path, **kwargs) -> SessionFileWatcher:
    return SessionFileWatcher(rec.snapshot, rec.event, rec.error, session_path=path, **kwargs)


@pytest.mark.asyncio
async def test_initial_load_publishes_snapshot_without_events() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "gk-session-s1.json"
        _write(path, json.dumps(_session(_agent("a1"))), 0)
        rec = _Recorder()
        watcher = _watcher(rec, path, poll_interval=60)

        assert watcher.start()
        try:
            assert watcher.running
            assert len(rec.of("state")) == 1
            assert rec.of("event") == []
        finally:
            watcher.stop()
        assert not watcher.running


@pytest.mark.asyncio
async def test_change_publishes_snapshot_before_events() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "gk-session-s1.json"
        _write(path, json.dumps(_session(_agent("a1"))), 0)
        rec = _Recorder()
        watcher = _watcher(rec, path, poll_interval=60)
        watcher.start()
        try:
            _write(path, json.dumps(_session(_agent("a1", "completed"), _agent("a2"))), 1)
            watcher.check_for_changes()
        finally:
            watcher.stop()

        kinds = [k for k, _ in rec.calls]
        assert kinds == ["state", "state", "event", "event", "event"]
        events = rec.of("event")
        assert [e.event_type for e in events] == [
            EventType.TASK_COMPLETE, EventType.DELIVERING, EventType.RECEIVED_WORK,
        ]


@pytest.mark.asyncio
async def test_unchanged_mtime_is_ignored() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "gk-session-s1.json"
        _write(path, json.dumps(_session(_agent("a1"))), 5)
        rec = _Recorder()
        watcher = _watcher(rec, path, poll_interval=60)
        watcher.start()
        try:
            watcher.check_for_changes()
            watcher.check_for_changes()
        finally:
            watcher.stop()

        assert len(rec.of("state")) == 1


@pytest.mark.asyncio
async def test_malformed_file_reported_once_then_recovers() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "gk-session-s1.json"
        _write(path, json.dumps(_session(_agent("a1"))), 0)
        rec = _Recorder()
        watcher = _watcher(rec, path, poll_interval=60)
        watcher.start()
        try:
            _write(path, '{"gkSessionId": "s1", "agents": [', 1)
            watcher.check_for_changes()
            watcher.check_for_changes()

            errors = rec.of("error")
            assert len(errors) == 1
            assert isinstance(errors[0], SnapshotParseError)

            _write(path, json.dumps(_session(_agent("a1", "completed"))), 1)
            watcher.check_for_changes()
        finally:
            watcher.stop()

        assert len(rec.of("state")) == 2
        assert [e.event_type for e in rec.of("event")] == [
            EventType.TASK_COMPLETE, EventType.DELIVERING, EventType.SESSION_COMPLETE,
        ]


@pytest.mark.asyncio
async def test_truncated_multibyte_write_at_start_is_reported() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "gk-session-s1.json"
        path.write_bytes(b'{"gkSessionId": "s1", "agents": [{"prompt": "caf\xc3')
        os.utime(path, (1_700_000_000, 1_700_000_000))
        rec = _Recorder()
        watcher = _watcher(rec, path, poll_interval=60)

        assert watcher.start()
        try:
            watcher.check_for_changes()
            errors = rec.of("error")
            assert len(errors) == 1
            assert isinstance(errors[0], SnapshotParseError)
            assert rec.of("state") == []

            _write(path, json.dumps(_session(_agent("a1", prompt="café"))), 1)
            watcher.check_for_changes()
        finally:
            watcher.stop()

        assert len(rec.of("state")) == 1
        assert rec.of("state")[0].agents[0].prompt == "café"
        assert len(rec.of("error")) == 1


@pytest.mark.asyncio
async def test_temporarily_missing_file_is_tolerated() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "gk-session-s1.json"
        _write(path, json.dumps(_session(_agent("a1"))), 0)
        rec = _Recorder()
        watcher = _watcher(rec, path, poll_interval=60)
        watcher.start()
        try:
            path.unlink()
            watcher.check_for_changes()
            _write(path, json.dumps(_session(_agent("a1"), _agent("a2"))), 2)
            watcher.check_for_changes()
        finally:
            watcher.stop()

        assert rec.of("error") == []
        assert [e.agent_id for e in rec.of("event")] == ["a2"]


@pytest.mark.asyncio
async def test_poll_loop_picks_up_changes() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "gk-session-s1.json"
        _write(path, json.dumps(_session(_agent("a1"))), 0)
        rec = _Recorder()
        watcher = _watcher(rec, path, poll_interval=0.01)
        watcher.start()
        try:
            _write(path, json.dumps(_session(_agent("a1"), _agent("a2"))), 3)
            for _ in range(100):
                if rec.of("event"):
                    break
                await asyncio.sleep(0.01)
        finally:
            watcher.stop()

        assert [e.event_type for e in rec.of("event")] == [EventType.RECEIVED_WORK]


@pytest.mark.asyncio
async def test_missing_session_file_fails_start() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        rec = _Recorder()
        watcher = _watcher(rec, Path(tmp) / "absent.json")

        assert not watcher.start()
        assert not watcher.running
        errors = rec.of("error")
        assert len(errors) == 1
        assert isinstance(errors[0], SessionNotFoundError)
        assert errors[0].path.endswith("absent.json")


@pytest.mark.asyncio
async def test_missing_env_pointer_fails_start() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        rec = _Recorder()
        watcher = SessionFileWatcher(rec.snapshot, rec.event, rec.error, project_path=Path(tmp))

        assert not watcher.start()
        assert isinstance(rec.of("error")[0], SessionNotFoundError)


@pytest.mark.asyncio
async def test_session_resolved_from_env_pointer() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        (root / ".gemini").mkdir()
        (root / ".gemini" / ".env").write_text(
            "ACTIVE_GK_SESSION_ID=s1\nPROJECT_DIR=proj\n", encoding="utf-8",
        )
        projects = root / "projects"
        session_file = projects / "proj" / "gk-session-s1.json"
        session_file.parent.mkdir(parents=True)
        _write(session_file, json.dumps(_session(_agent("a1"))), 0)

        rec = _Recorder()
        with patch("agent_office.engine.environment.GEMKIT_PROJECTS_DIR", projects):
            watcher = SessionFileWatcher(rec.snapshot, rec.event, rec.error, project_path=root)
            assert watcher.start()
        watcher.stop()

        assert watcher.session_path == session_file
        assert rec.of("state")[0].session_id == "s1"


def test_stop_before_start_is_safe() -> None:
    rec = _Recorder()
    watcher = SessionFileWatcher(rec.snapshot, rec.event, rec.error, session_path="x.json")

    watcher.stop()
    watcher.stop()
    watcher.check_for_changes()

    assert rec.calls == []
