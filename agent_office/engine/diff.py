"""Diff engine: compare consecutive snapshots and derive domain events.

Ordering within one call is deterministic. Agents are visited in
current-snapshot order; for each agent, new-agent detection happens
before status and skill comparison. ``session_complete`` is always last.

A skill counts as newly activated when it appears in the agent's
injected skill list and was absent from the previous list (full-list
delta, not just the first entry).
"""
from __future__ import annotations

from agent_office.adapters.events import EventType, OfficeEvent, event_message, now_ms
from agent_office.engine.models import AgentRecord, AgentStatus, SessionSnapshot
from agent_office.shared.icons import get_character_type


def _make_event(
    event_type: EventType,
    agent: AgentRecord,
    timestamp: int,
    skill: str | None = None,
) -> OfficeEvent:
    return OfficeEvent(
        event_type=event_type,
        agent_id=agent.agent_id,
        target_agent_id=agent.parent_id,
        skill=skill or agent.first_skill,
        message=event_message(event_type, skill),
        timestamp=timestamp,
        character_type=get_character_type(agent.role or "coder"),
    )


def diff_sessions(
    prev: SessionSnapshot | None,
    curr: SessionSnapshot,
    timestamp: int | None = None,
) -> list[OfficeEvent]:
    """Return the events that explain the move from *prev* to *curr*.

    *prev* of None is treated as an empty snapshot. All events of one call
    share *timestamp* (defaults to the current wall clock in ms).
    """
    ts = now_ms() if timestamp is None else timestamp
    events: list[OfficeEvent] = []
    prev_agents = {a.agent_id: a for a in prev.agents} if prev else {}

    for agent in curr.agents:
        before = prev_agents.get(agent.agent_id)

        if before is None:
            events.append(_make_event(EventType.RECEIVED_WORK, agent, ts))
            if agent.skills:
                events.append(
                    _make_event(EventType.SKILL_ACTIVATED, agent, ts, agent.skills[0])
                )
            continue

        if before.status == AgentStatus.ACTIVE and agent.status == AgentStatus.COMPLETED:
            events.append(_make_event(EventType.TASK_COMPLETE, agent, ts))
            events.append(_make_event(EventType.DELIVERING, agent, ts))

        for skill in agent.skills:
            if skill not in before.skills:
                events.append(_make_event(EventType.SKILL_ACTIVATED, agent, ts, skill))

    all_terminal = all(a.status.is_terminal for a in curr.agents)
    was_active = prev is not None and any(a.status == AgentStatus.ACTIVE for a in prev.agents)
    if curr.agents and all_terminal and was_active:
        events.append(OfficeEvent(
            event_type=EventType.SESSION_COMPLETE,
            agent_id=curr.session_id,
            message=event_message(EventType.SESSION_COMPLETE),
            timestamp=ts,
        ))

    return events
