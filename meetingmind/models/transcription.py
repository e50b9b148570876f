"""Transcription data models."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .audio import AudioFormat


@dataclass(frozen=True)
class Chunk:
    """A contiguous, sequence-numbered slice of a session's audio buffer.

    ``start`` and ``end`` are PCM byte offsets into the buffer. Consecutive
    chunks of a session partition it: ``chunk[n].start == chunk[n-1].end``.
    """
    session_id: str
    sequence: int
    start: int
    end: int
    pcm: bytes = field(repr=False)
    audio_format: AudioFormat = field(default_factory=AudioFormat)
    is_final: bool = False
    created_at: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def start_seconds(self) -> float:
        return self.audio_format.seconds(self.start)

    @property
    def end_seconds(self) -> float:
        return self.audio_format.seconds(self.end)

    @property
    def duration_seconds(self) -> float:
        return self.audio_format.seconds(self.size)


@dataclass(frozen=True)
class TranscriptSegment:
    """A piece of recognized text with its position in the session timeline."""
    text: str
    start_seconds: float
    end_seconds: float
    confidence: float
    is_final: bool = True
    sequence: Optional[int] = None
    service: str = ""


class ChunkStatus(Enum):
    """Outcome of transcribing one chunk."""
    OK = "ok"
    NO_SPEECH = "no_speech"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class ChunkResult:
    """Result a transcription worker posts for one chunk."""
    session_id: str
    sequence: int
    segments: List[TranscriptSegment]
    status: ChunkStatus
    error: Optional[str] = None
    processing_time: float = 0.0

    @property
    def text(self) -> str:
        return " ".join(s.text.strip() for s in self.segments if s.text.strip())
