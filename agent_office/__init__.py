"""Agent Office — live office-floor visualization of a multi-agent session."""

__version__ = "0.1.0"
