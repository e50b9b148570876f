"""Services layer for MeetingMind application logic."""

from .event_publisher import SessionEventPublisher
from .session_manager import SessionManager
from .session_controller import SessionController

__all__ = [
    "SessionEventPublisher",
    "SessionManager",
    "SessionController",
]
