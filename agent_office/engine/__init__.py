"""Session engine: snapshot parsing, diffing and projection of agent sessions."""
from .models import (
    AgentRecord,
    AgentStatus,
    SessionSnapshot,
    TokenUsage,
)
from .config import OfficeConfig
from .errors import (
    LockHeldError,
    OfficeError,
    PortUnavailableError,
    SessionNotFoundError,
    SnapshotParseError,
)

__all__ = [
    # Models
    "AgentRecord",
    "AgentStatus",
    "SessionSnapshot",
    "TokenUsage",
    # Config
    "OfficeConfig",
    # Errors
    "LockHeldError",
    "OfficeError",
    "PortUnavailableError",
    "SessionNotFoundError",
    "SnapshotParseError",
]
