"""Tests for snapshot diffing into office events."""

from __future__ import annotations

from agent_office.adapters.events import EventType
from agent_office.engine.diff import diff_sessions
from agent_office.engine.models import AgentRecord, AgentStatus, SessionSnapshot
from agent_office.shared.icons import CharacterType

TS = 1_700_000_000_000


def _agent(agent_id: str, status: str = "active", skills=(), parent: str | None = "s1",
           role: str = "code-executor") -> AgentRecord:
    return AgentRecord(
        agent_id=agent_id,
        parent_id=parent,
        role=role,
        status=AgentStatus(status),
        skills=tuple(skills),
    )


def _snap(*agents: AgentRecord) -> SessionSnapshot:
    return SessionSnapshot(session_id="s1", agents=tuple(agents))


def _types(events) -> list[EventType]:
    return [e.event_type for e in events]


def test_new_agent_emits_received_work() -> None:
    events = diff_sessions(_snap(), _snap(_agent("a1")), timestamp=TS)

    assert _types(events) == [EventType.RECEIVED_WORK]
    event = events[0]
    assert event.agent_id == "a1"
    assert event.target_agent_id == "s1"
    assert event.timestamp == TS
    assert event.character_type == CharacterType.CODER


def test_new_agent_with_skills_also_activates_first_skill() -> None:
    events = diff_sessions(_snap(), _snap(_agent("a1", skills=["pdf", "docx"])), timestamp=TS)

    assert _types(events) == [EventType.RECEIVED_WORK, EventType.SKILL_ACTIVATED]
    assert events[1].skill == "pdf"
    assert events[1].message == "Activated skill: pdf"


def test_new_agent_already_completed_has_no_task_complete() -> None:
    events = diff_sessions(_snap(), _snap(_agent("a1", status="completed")), timestamp=TS)

    assert _types(events) == [EventType.RECEIVED_WORK]


def test_active_to_completed_emits_task_complete_then_delivering() -> None:
    prev = _snap(_agent("a1"), _agent("a2"))
    curr = _snap(_agent("a1", status="completed"), _agent("a2"))

    events = diff_sessions(prev, curr, timestamp=TS)

    assert _types(events) == [EventType.TASK_COMPLETE, EventType.DELIVERING]
    assert all(e.agent_id == "a1" for e in events)


def test_active_to_failed_emits_nothing_for_the_agent() -> None:
    prev = _snap(_agent("a1"), _agent("a2"))
    curr = _snap(_agent("a1", status="failed"), _agent("a2"))

    assert diff_sessions(prev, curr, timestamp=TS) == []


def test_every_newly_added_skill_is_activated() -> None:
    prev = _snap(_agent("a1", skills=["pdf"]))
    curr = _snap(_agent("a1", skills=["pdf", "xlsx", "pptx"]))

    events = diff_sessions(prev, curr, timestamp=TS)

    assert _types(events) == [EventType.SKILL_ACTIVATED, EventType.SKILL_ACTIVATED]
    assert [e.skill for e in events] == ["xlsx", "pptx"]


def test_completion_and_new_skill_in_one_tick_keep_order() -> None:
    prev = _snap(_agent("a1"), _agent("a2"))
    curr = _snap(_agent("a1", status="completed", skills=["pdf"]), _agent("a2"), _agent("a3"))

    events = diff_sessions(prev, curr, timestamp=TS)

    assert [(e.event_type, e.agent_id) for e in events] == [
        (EventType.TASK_COMPLETE, "a1"),
        (EventType.DELIVERING, "a1"),
        (EventType.SKILL_ACTIVATED, "a1"),
        (EventType.RECEIVED_WORK, "a3"),
    ]


def test_session_complete_when_last_active_agent_finishes() -> None:
    prev = _snap(_agent("a1", status="completed"), _agent("a2"))
    curr = _snap(_agent("a1", status="completed"), _agent("a2", status="failed"))

    events = diff_sessions(prev, curr, timestamp=TS)

    assert _types(events) == [EventType.SESSION_COMPLETE]
    assert events[0].agent_id == "s1"
    assert events[0].message == "All tasks completed"


def test_session_complete_is_last_event() -> None:
    prev = _snap(_agent("a1"))
    curr = _snap(_agent("a1", status="completed"))

    events = diff_sessions(prev, curr, timestamp=TS)

    assert _types(events) == [
        EventType.TASK_COMPLETE,
        EventType.DELIVERING,
        EventType.SESSION_COMPLETE,
    ]


def test_no_session_complete_without_prior_active_agent() -> None:
    done = _snap(_agent("a1", status="completed"))

    assert EventType.SESSION_COMPLETE not in _types(diff_sessions(done, done, timestamp=TS))
    assert EventType.SESSION_COMPLETE not in _types(diff_sessions(None, done, timestamp=TS))


def test_no_session_complete_for_empty_snapshot() -> None:
    prev = _snap(_agent("a1"))

    assert diff_sessions(prev, _snap(), timestamp=TS) == []


def test_none_previous_is_treated_as_empty() -> None:
    curr = _snap(_agent("a1"), _agent("a2", skills=["pdf"]))

    assert diff_sessions(None, curr, timestamp=TS) == diff_sessions(_snap(), curr, timestamp=TS)


def test_diff_is_deterministic() -> None:
    prev = _snap(_agent("a1"), _agent("a2", skills=["x"]))
    curr = _snap(_agent("a1", status="completed"), _agent("a2", skills=["x", "y"]), _agent("a3"))

    assert diff_sessions(prev, curr, timestamp=TS) == diff_sessions(prev, curr, timestamp=TS)


def test_unchanged_snapshot_yields_no_events() -> None:
    snap = _snap(_agent("a1", skills=["pdf"]), _agent("a2", status="completed"))

    assert diff_sessions(snap, snap, timestamp=TS) == []


def test_missing_role_classifies_as_coder() -> None:
    events = diff_sessions(_snap(), _snap(_agent("a1", role="")), timestamp=TS)

    assert events[0].character_type == CharacterType.CODER
