"""File management module for session audio, transcripts and metadata."""

import json
import logging
import uuid
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional


logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"
TRANSCRIPT_FILE = "transcript.txt"
AUDIO_FILE = "recording.wav"


class FileManager:
    """Manages the on-disk layout: one directory per session under ``sessions/``."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_dir = self.data_dir / "sessions"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.sessions_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def create_session_directory(self) -> str:
        """Create new session directory with timestamp and random suffix.

        Returns:
            Session ID (timestamp-based with random suffix)
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        while True:
            session_id = f"{timestamp}_{uuid.uuid4().hex[:4]}"
            session_path = self.sessions_dir / session_id
            try:
                session_path.mkdir(parents=True, exist_ok=False)
                break
            except FileExistsError:
                logger.debug(f"Session directory {session_path} already exists, picking another suffix")

        logger.info(f"Created session directory: {session_path}")
        return session_id

    def get_session_path(self, session_id: str) -> Path:
        return self.sessions_dir / session_id

    def working_audio_path(self, session_id: str) -> Path:
        """Path of the WAV file that capture writes for this session."""
        return self.get_session_path(session_id) / AUDIO_FILE

    def write_json(self, session_id: str, filename: str, data: Dict[str, Any]) -> str:
        path = self.get_session_path(session_id) / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved {path}")
        return str(path)

    def write_text(self, session_id: str, filename: str, text: str) -> str:
        path = self.get_session_path(session_id) / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        logger.info(f"Saved {path}")
        return str(path)

    def load_session_data(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Load a saved session, or None if it does not exist or is unreadable.

        Args:
            session_id: Session identifier
        """
        info_file = self.get_session_path(session_id) / SESSION_FILE

        if not info_file.exists():
            logger.warning(f"Session file not found: {info_file}")
            return None

        try:
            with open(info_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading session {session_id}: {e}")
            return None
