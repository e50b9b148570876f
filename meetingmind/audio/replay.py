"""Audio capture that replays a WAV file or PCM bytes instead of reading a device.

Used by ``meetingmind --replay`` and by the test-suite: it drives the exact
same buffer and scheduler path as the microphone.
"""

import time
import wave
import logging
from pathlib import Path
from typing import Optional, Callable, Union

from .buffer import SessionAudioBuffer
from .capture import AudioCapture
from ..errors import CaptureError

logger = logging.getLogger(__name__)


def load_wav_pcm(path: Union[str, Path], sample_rate: int = 16000) -> bytes:
    """Read 16-bit mono PCM from a WAV file with the expected sample rate."""
    with wave.open(str(path), 'rb') as wf:
        if wf.getsampwidth() != 2 or wf.getnchannels() != 1 or wf.getframerate() != sample_rate:
            raise CaptureError(
                f"{path} must be 16-bit mono {sample_rate}Hz, got "
                f"{wf.getsampwidth() * 8}-bit {wf.getnchannels()}ch {wf.getframerate()}Hz"
            )
        return wf.readframes(wf.getnframes())


class ReplayAudioCapture(AudioCapture):
    """Replays PCM through the capture contract.

    With ``pcm`` set, a background thread appends it frame-block by
    frame-block (at real-time pace when ``realtime`` is True) and then idles
    until stopped. With no ``pcm``, nothing is read on a thread and the caller
    pushes audio synchronously with :meth:`feed`.
    """

    def __init__(
        self,
        pcm: Optional[bytes] = None,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        realtime: bool = False,
        fail_on_open: Optional[str] = None,
        fail_after_bytes: Optional[int] = None,
        on_error: Optional[Callable[[CaptureError], None]] = None,
    ):
        super().__init__(sample_rate=sample_rate, chunk_size=chunk_size, channels=1, on_error=on_error)
        self.pcm = pcm
        self.realtime = realtime
        self.fail_on_open = fail_on_open
        self.fail_after_bytes = fail_after_bytes
        self._position = 0

    @classmethod
    def from_wav(cls, path: Union[str, Path], **kwargs) -> "ReplayAudioCapture":
        sample_rate = kwargs.get("sample_rate", 16000)
        return cls(pcm=load_wav_pcm(path, sample_rate), **kwargs)

    @property
    def finished(self) -> bool:
        return self.pcm is not None and self._position >= len(self.pcm)

    def start(self, target_path: Union[str, Path]) -> None:
        self._position = 0
        if self.pcm is not None:
            super().start(target_path)
            return

        # Push mode: open the device stand-in and buffer, but no reader thread
        try:
            self._stream = self._open_audio_stream()
        except OSError as e:
            raise CaptureError(f"Failed to open audio input device: {e}") from e
        self.stop_event.clear()
        self.error = None
        self.total_frames = 0
        self.buffer = SessionAudioBuffer(target_path, self.audio_format).open()
        self.is_recording = True

    def feed(self, pcm: bytes) -> None:
        """Append PCM synchronously (push mode only)."""
        if self.pcm is not None:
            raise RuntimeError("feed() is only available when no replay source is set")
        if not self.is_recording:
            raise CaptureError("Replay capture is not recording")
        self.buffer.append(pcm)
        self.total_frames += len(pcm) // self.audio_format.block_align

    def stop(self) -> None:
        if self.pcm is not None:
            super().stop()
            return
        if not self.is_recording:
            logger.warning("No recording in progress")
            return
        self.is_recording = False
        self.buffer.close()
        logger.info(f"Replay stopped. Total frames: {self.total_frames}")

    def _open_audio_stream(self):
        if self.fail_on_open:
            raise OSError(self.fail_on_open)
        logger.info(f"Replay stream opened: {len(self.pcm or b'')} bytes at {self.sample_rate}Hz")
        return self

    def _read_frames(self) -> bytes:
        block = self.chunk_size * self.audio_format.block_align
        if self.finished:
            # Source exhausted: hold the stream open like a quiet device until stopped
            self.stop_event.wait()
            return b""
        if self.fail_after_bytes is not None and self._position >= self.fail_after_bytes:
            raise OSError("Input device disconnected")
        data = self.pcm[self._position:self._position + block]
        self._position += len(data)
        if self.realtime:
            time.sleep(self.audio_format.seconds(len(data)))
        return data

    def _close_stream(self) -> None:
        self._stream = None
