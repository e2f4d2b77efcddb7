"""Session snapshot models read from the session manager's JSON file.

The session file is owned by an external process. Everything here is a
read-only view of it: parsing never raises on missing optional fields,
every one of them falls back to None or an empty collection.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

MAIN_AGENT_TYPE = "Main Agent"
SUB_AGENT_TYPE = "Sub Agent"


class AgentStatus(str, Enum):
    """Lifecycle status of an agent record as written to the session file."""
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AgentStatus.COMPLETED, AgentStatus.FAILED)

    @classmethod
    def parse(cls, value: Any) -> AgentStatus:
        try:
            return cls(value)
        except ValueError:
            logger.debug("Unknown agent status %r, treating as active", value)
            return cls.ACTIVE


@dataclass(frozen=True)
class TokenUsage:
    input: int = 0
    output: int = 0
    cached: int = 0
    thoughts: int = 0
    tool: int = 0
    total: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> TokenUsage | None:
        if not isinstance(data, dict):
            return None
        return cls(**{
            name: _as_int(data.get(name))
            for name in ("input", "output", "cached", "thoughts", "tool", "total")
        })


@dataclass(frozen=True)
class AgentRecord:
    """One agent row of a session snapshot."""
    agent_id: str
    parent_id: str | None = None
    agent_type: str = SUB_AGENT_TYPE
    role: str = ""
    status: AgentStatus = AgentStatus.ACTIVE
    prompt: str | None = None
    model: str | None = None
    skills: tuple[str, ...] = ()
    token_usage: TokenUsage | None = None
    start_time: str | None = None
    end_time: str | None = None
    error: str | None = None

    @property
    def first_skill(self) -> str | None:
        return self.skills[0] if self.skills else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentRecord:
        injected = data.get("injected")
        skills: tuple[str, ...] = ()
        if isinstance(injected, dict) and isinstance(injected.get("skills"), list):
            skills = tuple(str(s) for s in injected["skills"] if s)
        return cls(
            agent_id=str(data.get("gkSessionId") or ""),
            parent_id=_as_str(data.get("parentGkSessionId")),
            agent_type=_as_str(data.get("agentType")) or SUB_AGENT_TYPE,
            role=_as_str(data.get("agentRole")) or "",
            status=AgentStatus.parse(data.get("status")),
            prompt=_as_str(data.get("prompt")),
            model=_as_str(data.get("model")),
            skills=skills,
            token_usage=TokenUsage.from_dict(data.get("tokenUsage")),
            start_time=_as_str(data.get("startTime")),
            end_time=_as_str(data.get("endTime")),
            error=_as_str(data.get("error")),
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """A single point-in-time read of the session file."""
    session_id: str
    project_dir: str | None = None
    active_plan: str | None = None
    app_name: str | None = None
    agents: tuple[AgentRecord, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionSnapshot:
        if not isinstance(data, dict):
            raise TypeError(f"session document must be an object, got {type(data).__name__}")
        raw_agents = data.get("agents")
        agents = tuple(
            AgentRecord.from_dict(a)
            for a in (raw_agents if isinstance(raw_agents, list) else [])
            if isinstance(a, dict)
        )
        return cls(
            session_id=str(data.get("gkSessionId") or ""),
            project_dir=_as_str(data.get("projectDir")),
            active_plan=_as_str(data.get("activePlan")),
            app_name=_as_str(data.get("appName")),
            agents=agents,
        )


def parse_timestamp_ms(value: str | float | None) -> int | None:
    """Parse an ISO-8601 or epoch (seconds or milliseconds) timestamp into epoch milliseconds."""
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        epoch = float(value)
    except (TypeError, ValueError):
        pass
    else:
        if not math.isfinite(epoch):
            return None
        # Values below 1e11 are epoch seconds.
        return int(epoch * 1000) if abs(epoch) < 1e11 else int(epoch)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (TypeError, ValueError, OverflowError):
        return None
    return int(parsed.timestamp() * 1000)


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_str(value: Any) -> str | None:
    if value is None or value == "" or isinstance(value, (dict, list)):
        return None
    return str(value)
