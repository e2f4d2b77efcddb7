"""Agent desk state machine.

Defines valid visual transitions and applies events to agent views.
Invalid transitions leave the view unchanged rather than raising; a
missed animation is harmless, a crashed viewer is not.

State Diagram:

    IDLE ──┬──> WORKING ──┬──> DELIVERING ──> IDLE
           │              │
           ├──> WALKING ──┼──> IDLE / WORKING / DELIVERING
           │              │
           └──> RECEIVING ┴──> WORKING / IDLE
"""
from __future__ import annotations

from dataclasses import replace

from agent_office.adapters.events import EventType, OfficeEvent
from agent_office.shared.models.projection import (
    AgentView,
    AgentViewState,
    NotificationType,
    OfficeNotification,
    OfficeProjection,
)

VALID_TRANSITIONS: dict[AgentViewState, set[AgentViewState]] = {
    AgentViewState.IDLE: {
        AgentViewState.WORKING,
        AgentViewState.WALKING,
        AgentViewState.RECEIVING,
    },
    AgentViewState.WORKING: {
        AgentViewState.IDLE,
        AgentViewState.DELIVERING,
        AgentViewState.WALKING,
    },
    AgentViewState.WALKING: {
        AgentViewState.IDLE,
        AgentViewState.WORKING,
        AgentViewState.DELIVERING,
    },
    AgentViewState.DELIVERING: {
        AgentViewState.IDLE,
        AgentViewState.WALKING,
    },
    AgentViewState.RECEIVING: {
        AgentViewState.WORKING,
        AgentViewState.IDLE,
    },
}

# Events absent from this table never move an agent.
EVENT_TARGETS: dict[EventType, AgentViewState] = {
    EventType.AGENT_IDLE: AgentViewState.IDLE,
    EventType.AGENT_WORKING: AgentViewState.WORKING,
    EventType.SKILL_ACTIVATED: AgentViewState.WORKING,
    EventType.HANDOFF_START: AgentViewState.WALKING,
    EventType.RECEIVED_WORK: AgentViewState.RECEIVING,
    EventType.DELIVERING: AgentViewState.DELIVERING,
    EventType.TASK_COMPLETE: AgentViewState.IDLE,
}

_NOTIFICATIONS: dict[EventType, NotificationType] = {
    EventType.SKILL_ACTIVATED: NotificationType.SKILL,
    EventType.HANDOFF_START: NotificationType.HANDOFF,
    EventType.HANDOFF_COMPLETE: NotificationType.HANDOFF,
    EventType.TASK_COMPLETE: NotificationType.SUCCESS,
}


def is_valid_transition(current: AgentViewState, target: AgentViewState) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def transition_agent(agent: AgentView, event: OfficeEvent) -> AgentView:
    """Return *agent* moved by *event*, or *agent* itself if the move is not allowed."""
    target = EVENT_TARGETS.get(event.event_type)
    if target is None or not is_valid_transition(agent.state, target):
        return agent
    return replace(
        agent,
        state=target,
        active_skill=event.skill if event.skill is not None else agent.active_skill,
        has_fire_effect=event.event_type == EventType.SKILL_ACTIVATED,
        speech_bubble=event.message or None,
    )


def generate_notification(event: OfficeEvent) -> OfficeNotification | None:
    kind = _NOTIFICATIONS.get(event.event_type)
    if kind is None:
        return None
    messages = {
        EventType.SKILL_ACTIVATED: f"Skill activated: {event.skill}",
        EventType.HANDOFF_START: "Agent delivering information...",
        EventType.HANDOFF_COMPLETE: "Handoff complete!",
        EventType.TASK_COMPLETE: "Task completed! Check your inbox",
    }
    return OfficeNotification(
        message=messages[event.event_type],
        notification_type=kind,
        timestamp=event.timestamp,
    )


def process_event(projection: OfficeProjection, event: OfficeEvent) -> OfficeProjection:
    """Apply *event* to the matching agent and banner; returns a new projection."""
    changes: dict = {}
    agent = projection.agents.get(event.agent_id)
    if agent is not None:
        moved = transition_agent(agent, event)
        if moved is not agent:
            changes["agents"] = {**projection.agents, event.agent_id: moved}
    elif projection.orchestrator is not None and projection.orchestrator.id == event.agent_id:
        moved = transition_agent(projection.orchestrator, event)
        if moved is not projection.orchestrator:
            changes["orchestrator"] = moved

    notification = generate_notification(event)
    if notification is not None:
        changes["current_notification"] = notification

    return replace(projection, **changes) if changes else projection
