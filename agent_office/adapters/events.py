"""Domain events derived from consecutive session snapshots.

Events are immutable and are the only way the diff engine reports
change. They never carry enough to rebuild the projection; viewers get
that from the state channel.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from agent_office.shared.icons import CharacterType


class EventType(str, Enum):
    AGENT_IDLE = "agent_idle"
    AGENT_WORKING = "agent_working"
    SKILL_ACTIVATED = "skill_activated"
    HANDOFF_START = "handoff_start"
    HANDOFF_COMPLETE = "handoff_complete"
    RECEIVED_WORK = "received_work"
    DELIVERING = "delivering"
    TASK_COMPLETE = "task_complete"
    SESSION_COMPLETE = "session_complete"


@dataclass(frozen=True)
class OfficeEvent:
    """A single meaningful transition observed in the session."""
    event_type: EventType
    agent_id: str
    message: str = ""
    timestamp: int = 0
    target_agent_id: str | None = None
    skill: str | None = None
    character_type: CharacterType | None = None


def event_message(event_type: EventType, skill: str | None = None) -> str:
    """Human-readable message shown in speech bubbles and logs."""
    messages = {
        EventType.AGENT_IDLE: "Waiting for work",
        EventType.AGENT_WORKING: "Working...",
        EventType.SKILL_ACTIVATED: f"Activated skill: {skill or 'unknown'}",
        EventType.HANDOFF_START: "Passing work...",
        EventType.HANDOFF_COMPLETE: "Handoff complete!",
        EventType.RECEIVED_WORK: "Received work",
        EventType.DELIVERING: "Delivering results...",
        EventType.TASK_COMPLETE: "Task complete!",
        EventType.SESSION_COMPLETE: "All tasks completed",
    }
    return messages[event_type]


def now_ms() -> int:
    return int(time.time() * 1000)


def event_to_dict(event: OfficeEvent) -> dict[str, Any]:
    """Convert an event to the camelCase dict sent to viewers."""
    d: dict[str, Any] = {
        "type": event.event_type.value,
        "agentId": event.agent_id,
        "targetAgentId": event.target_agent_id,
        "skill": event.skill,
        "message": event.message,
        "timestamp": event.timestamp,
    }
    if event.character_type is not None:
        d["characterType"] = event.character_type.value
    return d
