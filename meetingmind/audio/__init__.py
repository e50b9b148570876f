"""Audio capture and working-buffer module."""

from .capture import AudioCapture
from .buffer import SessionAudioBuffer
from .replay import ReplayAudioCapture

__all__ = [
    'AudioCapture',
    'SessionAudioBuffer',
    'ReplayAudioCapture',
]
