"""Data models for the MeetingMind application."""

from .audio import AudioStats, AudioFormat
from .transcription import Chunk, TranscriptSegment, ChunkStatus, ChunkResult
from .insights import InsightBundle, InsightStatus
from .session import Session, SessionState
from .events import (
    TOPIC_SESSION_STATE,
    TOPIC_STATUS,
    TOPIC_TRANSCRIPT,
    TOPIC_INSIGHTS,
    SessionStateEvent,
    StatusEvent,
    TranscriptUpdateEvent,
    InsightUpdateEvent,
)

__all__ = [
    "AudioStats",
    "AudioFormat",
    "Chunk",
    "TranscriptSegment",
    "ChunkStatus",
    "ChunkResult",
    "InsightBundle",
    "InsightStatus",
    "Session",
    "SessionState",
    # Pub/sub
    "TOPIC_SESSION_STATE",
    "TOPIC_STATUS",
    "TOPIC_TRANSCRIPT",
    "TOPIC_INSIGHTS",
    "SessionStateEvent",
    "StatusEvent",
    "TranscriptUpdateEvent",
    "InsightUpdateEvent",
]
