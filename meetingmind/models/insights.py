"""Insight data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class InsightStatus(Enum):
    OK = "ok"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"


@dataclass
class InsightBundle:
    """LLM-derived artifacts for a transcript snapshot.

    Live bundles fill ``suggested_questions`` and ``meeting_insights``; the
    final bundle also carries the structured summary sections. A bundle whose
    status is not OK is degraded and explains itself in ``status_message``.
    """
    suggested_questions: List[str] = field(default_factory=list)
    meeting_insights: List[str] = field(default_factory=list)
    summary: List[str] = field(default_factory=list)
    decisions: List[str] = field(default_factory=list)
    action_items: List[str] = field(default_factory=list)
    follow_ups: List[str] = field(default_factory=list)
    key_points: List[str] = field(default_factory=list)
    open_questions: List[str] = field(default_factory=list)
    status: InsightStatus = InsightStatus.OK
    status_message: Optional[str] = None
    is_final: bool = False
    generation: int = 0
    transcript_chars: int = 0
    generated_at: datetime = field(default_factory=datetime.now)
    raw_text: str = ""

    @property
    def is_degraded(self) -> bool:
        return self.status is not InsightStatus.OK

    @classmethod
    def degraded(cls, status: InsightStatus, message: str, is_final: bool = False,
                 transcript_chars: int = 0) -> "InsightBundle":
        """Build a bundle that carries only an explicit unavailability marker."""
        return cls(status=status, status_message=message, is_final=is_final,
                   transcript_chars=transcript_chars)

    def to_dict(self) -> dict:
        return {
            "suggested_questions": list(self.suggested_questions),
            "meeting_insights": list(self.meeting_insights),
            "summary": list(self.summary),
            "decisions": list(self.decisions),
            "action_items": list(self.action_items),
            "follow_ups": list(self.follow_ups),
            "key_points": list(self.key_points),
            "open_questions": list(self.open_questions),
            "status": self.status.value,
            "status_message": self.status_message,
            "is_final": self.is_final,
            "generation": self.generation,
            "transcript_chars": self.transcript_chars,
            "generated_at": self.generated_at.isoformat(),
        }
