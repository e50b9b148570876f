"""Persists completed sessions: metadata, transcript and insights."""

import logging
from typing import Dict, Any, List

from ..storage.file_manager import FileManager, SESSION_FILE, TRANSCRIPT_FILE
from ..models.session import Session

logger = logging.getLogger(__name__)


class SessionManager:
    """Completion handler that writes a finished session to its directory."""

    def __init__(self, file_manager: FileManager):
        self.file_manager = file_manager

    def __call__(self, session: Session) -> Dict[str, Any]:
        return self.save_session(session)

    def save_session(self, session: Session) -> Dict[str, Any]:
        """Save ``session.json`` and a readable ``transcript.txt``.

        Returns:
            Dictionary with saved file paths, or the error on failure
        """
        try:
            saved_files = [
                self.file_manager.write_json(session.session_id, SESSION_FILE, session.to_dict()),
                self.file_manager.write_text(session.session_id, TRANSCRIPT_FILE, self.render_text(session)),
            ]
        except OSError as e:
            logger.error(f"Error saving session {session.session_id}: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"Saved session data for {session.session_id}: {len(saved_files)} files")
        return {
            "success": True,
            "session_id": session.session_id,
            "session_path": str(self.file_manager.get_session_path(session.session_id)),
            "saved_files": saved_files,
        }

    @staticmethod
    def render_text(session: Session) -> str:
        lines: List[str] = [
            f"Session: {session.session_id}",
            f"Started: {session.started_at.isoformat()}",
            f"Duration: {session.duration_seconds:.1f}s",
            f"State: {session.state.value}",
            "",
            "TRANSCRIPT",
            session.transcript or "(no speech transcribed)",
        ]

        bundle = session.insights
        if bundle is not None:
            if bundle.is_degraded:
                lines += ["", f"AI: {bundle.status_message}"]
            sections = [
                ("SUMMARY", bundle.summary),
                ("KEY POINTS", bundle.key_points),
                ("KEY DECISIONS", bundle.decisions),
                ("ACTION ITEMS", bundle.action_items),
                ("FOLLOW-UPS", bundle.follow_ups),
                ("OPEN QUESTIONS", bundle.open_questions),
                ("SUGGESTED QUESTIONS", bundle.suggested_questions),
                ("MEETING INSIGHTS", bundle.meeting_insights),
            ]
            for title, items in sections:
                if items:
                    lines += ["", title] + [f"- {item}" for item in items]

        return "\n".join(lines) + "\n"
