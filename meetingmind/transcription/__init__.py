"""Transcription module for MeetingMind.

Engine implementations are imported from their own modules (or built with
:func:`meetingmind.transcription.factory.create_engines`) so that importing
the pipeline does not load speech-model libraries.
"""

from .base import TranscriptionEngine
from .scheduler import ChunkScheduler
from .consumers import TranscriptionDispatcher
from .accumulator import TranscriptAccumulator
from .collector import TranscriptCollector
from .model_assets import ModelAssetStore

__all__ = [
    "TranscriptionEngine",
    "ChunkScheduler",
    "TranscriptionDispatcher",
    "TranscriptAccumulator",
    "TranscriptCollector",
    "ModelAssetStore",
]
