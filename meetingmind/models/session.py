"""Session-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .insights import InsightBundle
from .transcription import TranscriptSegment


class SessionState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Session:
    """One recording from start() to stop().

    The transcript is written exactly once by :meth:`complete`; after that
    only insight artifacts may be attached.
    """
    session_id: str
    started_at: datetime
    audio_path: str
    state: SessionState = SessionState.RECORDING
    ended_at: Optional[datetime] = None
    transcript: str = ""
    segments: List[TranscriptSegment] = field(default_factory=list)
    insights: Optional[InsightBundle] = None
    error: Optional[str] = None
    used_final_pass: bool = False

    @property
    def duration_seconds(self) -> float:
        end = self.ended_at or datetime.now()
        return (end - self.started_at).total_seconds()

    @property
    def is_completed(self) -> bool:
        return self.state is SessionState.COMPLETED

    def complete(self, transcript: str, segments: List[TranscriptSegment]) -> None:
        if self.is_completed:
            raise ValueError(f"Session {self.session_id} is already completed")
        self.transcript = transcript
        self.segments = list(segments)
        self.state = SessionState.COMPLETED

    def attach_insights(self, bundle: InsightBundle) -> None:
        self.insights = bundle

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "state": self.state.value,
            "audio_path": self.audio_path,
            "transcript": self.transcript,
            "segments": [
                {
                    "text": s.text,
                    "start_seconds": s.start_seconds,
                    "end_seconds": s.end_seconds,
                    "confidence": s.confidence,
                    "sequence": s.sequence,
                    "service": s.service,
                }
                for s in self.segments
            ],
            "insights": self.insights.to_dict() if self.insights else None,
            "error": self.error,
            "used_final_pass": self.used_final_pass,
        }
