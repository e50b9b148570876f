"""Console presentation for MeetingMind."""

from .console_view import ConsoleView

__all__ = ["ConsoleView"]
