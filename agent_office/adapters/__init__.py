"""Adapters package - Bridge between the session engine and viewers.

This package contains the office event bus, the event types it carries,
and the dashboard wiring that connects the watcher to the web and
terminal frontends.
"""
from __future__ import annotations

__all__ = [
    "EventType",
    "OfficeEvent",
    "OfficeEventBus",
    "event_to_dict",
]

from agent_office.adapters.events import EventType, OfficeEvent, event_to_dict
from agent_office.adapters.event_bus import OfficeEventBus
