"""Append-only WAV working file shared by audio capture and the chunk scheduler."""

import logging
import threading
import wave
from pathlib import Path
from typing import BinaryIO, Optional, Union

from ..models.audio import AudioFormat

logger = logging.getLogger(__name__)


class SessionAudioBuffer:
    """Single-producer, single-consumer PCM buffer backed by a WAV file.

    The capture thread appends; every append is flushed before ``length`` is
    advanced, so any reader that observes ``length == n`` can read bytes
    ``[0, n)`` from disk. ``length`` counts PCM bytes only and never decreases.
    """

    def __init__(self, path: Union[str, Path], audio_format: Optional[AudioFormat] = None):
        self.path = Path(path)
        self.audio_format = audio_format or AudioFormat()
        self._lock = threading.Lock()
        self._length = 0
        self._data_offset: Optional[int] = None
        self._file: Optional[BinaryIO] = None
        self._writer: Optional[wave.Wave_write] = None
        self._closed = False

    def open(self) -> "SessionAudioBuffer":
        """Create the working file and write the WAV header."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, 'wb')
        self._writer = wave.open(self._file, 'wb')
        self._writer.setnchannels(self.audio_format.channels)
        self._writer.setsampwidth(self.audio_format.sample_width)
        self._writer.setframerate(self.audio_format.sample_rate)
        logger.info(f"Opened audio working file: {self.path}")
        return self

    @property
    def length(self) -> int:
        """PCM bytes durably written so far."""
        with self._lock:
            return self._length

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def duration_seconds(self) -> float:
        return self.audio_format.seconds(self.length)

    def append(self, data: bytes) -> None:
        """Append PCM frames and flush them to disk. Producer thread only."""
        if not data:
            return
        if self._writer is None or self._closed:
            raise ValueError(f"Audio buffer {self.path} is not open for writing")

        self._writer.writeframes(data)
        self._file.flush()
        if self._data_offset is None:
            # The wave module seeks back to the end after patching the header
            self._data_offset = self._file.tell() - len(data)

        with self._lock:
            self._length += len(data)

    def read(self, start: int, end: int) -> bytes:
        """Read PCM bytes ``[start, end)``; ``end`` must not exceed ``length``."""
        if start < 0 or end < start:
            raise ValueError(f"Invalid buffer range [{start}, {end})")
        length = self.length
        if end > length:
            raise ValueError(f"Range end {end} is beyond buffer length {length}")
        if start == end:
            return b""

        with open(self.path, 'rb') as f:
            f.seek(self._data_offset + start)
            data = f.read(end - start)

        if len(data) != end - start:
            raise IOError(f"Short read from {self.path}: wanted {end - start} bytes, got {len(data)}")
        return data

    def close(self) -> None:
        """Finalize the WAV header. The file stays on disk and readable."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._writer is not None:
                self._writer.close()
        finally:
            if self._file is not None:
                self._file.close()
        logger.info(f"Closed audio working file: {self.path} "
                    f"({self.length} bytes, {self.duration_seconds:.1f}s)")
