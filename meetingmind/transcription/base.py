"""Abstract base class for transcription engines."""

import dataclasses
import logging
import threading
import time
import wave
from abc import ABC, abstractmethod
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..errors import TranscriptionError, TranscriptionTimeout
from ..models.audio import AudioFormat
from ..models.transcription import Chunk, TranscriptSegment

logger = logging.getLogger(__name__)

AudioInput = Union[Chunk, bytes, str, Path]


class TranscriptionEngine(ABC):
    """Uniform contract for local and remote speech-to-text engines.

    Subclasses implement :meth:`initialize` and :meth:`_transcribe_pcm`.
    :meth:`transcribe` owns the deadline: the engine call runs on its own
    daemon thread and is abandoned when the timeout expires, so callers never
    block longer than ``timeout`` no matter what the engine does.
    """

    ENGINE_ID = "base"

    def __init__(self, language: str = "en", audio_format: Optional[AudioFormat] = None):
        self.language = language
        self.audio_format = audio_format or AudioFormat()
        self._ready = False
        self._stats_lock = threading.Lock()
        self.total_calls = 0
        self.total_timeouts = 0
        self.total_failures = 0

    @property
    def is_ready(self) -> bool:
        return self._ready

    @abstractmethod
    def initialize(self) -> None:
        """Prepare models or clients.

        Raises:
            ModelAssetUnavailableError: local model files could not be obtained
            TranscriptionError: any other initialization failure
        """

    @abstractmethod
    def _transcribe_pcm(self, pcm: bytes, offset_seconds: float) -> List[TranscriptSegment]:
        """Recognize 16-bit PCM; segment times are shifted by ``offset_seconds``."""

    def cleanup(self) -> None:
        """Release engine resources."""
        self._ready = False

    def transcribe(self, audio: AudioInput, timeout: float) -> List[TranscriptSegment]:
        """Transcribe a chunk, raw PCM, or a WAV file within ``timeout`` seconds.

        Returns:
            Segments in time order; an empty list means no speech.

        Raises:
            TranscriptionTimeout: the deadline passed; the call is abandoned
            TranscriptionError: the engine failed or is not initialized
        """
        if not self._ready:
            raise TranscriptionError(f"{self.ENGINE_ID} engine is not initialized")

        pcm, offset_seconds, sequence = self._resolve_audio(audio)
        if not pcm:
            return []

        with self._stats_lock:
            self.total_calls += 1
        label = f"chunk {sequence}" if sequence is not None else f"{len(pcm)} bytes"
        start_time = time.time()

        future: Future = Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._transcribe_pcm(pcm, offset_seconds))
            except Exception as e:
                future.set_exception(e)

        worker = threading.Thread(target=run, name=f"{self.ENGINE_ID}-transcribe", daemon=True)
        worker.start()

        try:
            segments = future.result(timeout=timeout)
        except FutureTimeoutError as e:
            with self._stats_lock:
                self.total_timeouts += 1
            logger.warning(f"{self.ENGINE_ID}: {label} exceeded {timeout:.1f}s deadline, abandoning call")
            raise TranscriptionTimeout(f"{self.ENGINE_ID} transcription of {label} timed out after {timeout:.1f}s") from e
        except TranscriptionError:
            with self._stats_lock:
                self.total_failures += 1
            raise
        except Exception as e:
            with self._stats_lock:
                self.total_failures += 1
            raise TranscriptionError(f"{self.ENGINE_ID} transcription of {label} failed: {e}") from e

        logger.debug(f"{self.ENGINE_ID}: {label} -> {len(segments)} segments "
                     f"in {time.time() - start_time:.2f}s")
        if sequence is not None:
            segments = [dataclasses.replace(s, sequence=sequence) for s in segments]
        return segments

    def _resolve_audio(self, audio: AudioInput) -> Tuple[bytes, float, Optional[int]]:
        if isinstance(audio, Chunk):
            return audio.pcm, audio.start_seconds, audio.sequence
        if isinstance(audio, (bytes, bytearray)):
            return bytes(audio), 0.0, None
        return self._read_wav(Path(audio)), 0.0, None

    def _read_wav(self, path: Path) -> bytes:
        try:
            with wave.open(str(path), 'rb') as wf:
                if (wf.getframerate() != self.audio_format.sample_rate
                        or wf.getnchannels() != self.audio_format.channels
                        or wf.getsampwidth() != self.audio_format.sample_width):
                    raise TranscriptionError(f"Unsupported audio format in {path}")
                return wf.readframes(wf.getnframes())
        except (OSError, EOFError, wave.Error) as e:
            raise TranscriptionError(f"Cannot read audio file {path}: {e}") from e

    def get_stats(self) -> Dict[str, Any]:
        return {
            "engine": self.ENGINE_ID,
            "ready": self._ready,
            "total_calls": self.total_calls,
            "total_timeouts": self.total_timeouts,
            "total_failures": self.total_failures,
        }
