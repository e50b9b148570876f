"""Event models published on pub/sub topics for presentation layers."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .insights import InsightBundle
from .session import SessionState

TOPIC_SESSION_STATE = "session.state"
TOPIC_STATUS = "session.status"
TOPIC_TRANSCRIPT = "transcript.updated"
TOPIC_INSIGHTS = "insights.updated"


@dataclass
class SessionStateEvent:
    """Session lifecycle transition."""
    session_id: Optional[str]
    old_state: SessionState
    new_state: SessionState
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class StatusEvent:
    """Inline status message, e.g. 'no speech detected' or 'AI summary timed out'."""
    session_id: Optional[str]
    message: str
    level: str = "info"
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class TranscriptUpdateEvent:
    """The visible transcript changed."""
    session_id: str
    text: str
    resolved_sequences: int
    is_final: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class InsightUpdateEvent:
    """A newer insight bundle was applied."""
    session_id: str
    bundle: InsightBundle
    timestamp: datetime = field(default_factory=datetime.now)
