"""On-disk storage for MeetingMind sessions."""

from .file_manager import FileManager

__all__ = ["FileManager"]
