"""Audio capture module that records the microphone into a session working file."""

import pyaudio
import time
import logging
from threading import Thread, Event
from pathlib import Path
from typing import Optional, Callable, Union
from datetime import datetime

from .buffer import SessionAudioBuffer
from ..errors import CaptureError
from ..models.audio import AudioStats, AudioFormat


logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous microphone capture into an append-only WAV buffer."""

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        device_index: Optional[int] = None,
        on_error: Optional[Callable[[CaptureError], None]] = None,
        stop_timeout: float = 10.0,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            sample_rate: Audio sample rate (16kHz for Whisper compatibility)
            chunk_size: Frames read from the device per iteration
            channels: Number of audio channels (1 for mono)
            device_index: PyAudio input device, None for the system default
            on_error: Called from the capture thread if the device fails mid-stream
            stop_timeout: Longest wait in stop() for the last device read
        """
        self.audio_format = AudioFormat(sample_rate=sample_rate, channels=channels, sample_width=2)
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.device_index = device_index
        self.on_error = on_error
        self.stop_timeout = stop_timeout

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        self.error: Optional[CaptureError] = None
        self._length_at_stop: Optional[int] = None

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_frames = 0

        self.buffer: Optional[SessionAudioBuffer] = None
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self._stream = None

    @property
    def is_active(self) -> bool:
        return self.is_recording

    def start(self, target_path: Union[str, Path]) -> None:
        """Open the input device and start recording into ``target_path``.

        The device is opened before this returns, so a missing microphone or a
        denied permission raises :class:`CaptureError` here rather than on the
        background thread.
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info(f"Starting audio recording into {target_path}")
        self.stop_event.clear()
        self.error = None
        self._length_at_stop = None
        self.total_frames = 0

        try:
            self._stream = self._open_audio_stream()
        except (OSError, IOError) as e:
            self._release_device()
            raise CaptureError(f"Failed to open audio input device: {e}") from e

        self.buffer = SessionAudioBuffer(target_path, self.audio_format)
        try:
            self.buffer.open()
        except OSError as e:
            self._close_stream()
            raise CaptureError(f"Failed to create audio working file {target_path}: {e}") from e

        self.start_time = datetime.now()
        self.is_recording = True
        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()

    def stop(self) -> None:
        """Stop recording, release the device and finalize the working file.

        Waits for the capture thread to finish its last read so every byte it
        appends is in the buffer before this returns. If the device is stuck
        for longer than ``stop_timeout`` the thread is left behind; whatever it
        still appends is logged as dropped when it exits.
        """
        if self.recording_thread is None:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

        thread = self.recording_thread
        deadline = time.time() + self.stop_timeout
        while thread.is_alive():
            remaining = deadline - time.time()
            if remaining <= 0:
                break
            thread.join(timeout=min(2.0, remaining))
            if thread.is_alive():
                logger.warning("Recording thread is still finishing its last read")
        if thread.is_alive():
            self._length_at_stop = self.buffer.length
            logger.error(f"Recording thread did not stop within {self.stop_timeout}s; "
                         f"audio after {self._length_at_stop} bytes will not be transcribed")
        self.recording_thread = None

        self.is_recording = False
        logger.info(f"Recording stopped. Total frames: {self.total_frames}")

    def _open_audio_stream(self):
        self.pyaudio_instance = pyaudio.PyAudio()
        stream = self.pyaudio_instance.open(
            format=pyaudio.paInt16,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.device_index,
            frames_per_buffer=self.chunk_size,
        )
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/read")
        return stream

    def _read_frames(self) -> bytes:
        return self._stream.read(self.chunk_size, exception_on_overflow=False)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                data = self._read_frames()
                if not data:
                    break
                self.buffer.append(data)
                self.total_frames += len(data) // self.audio_format.block_align
        except (OSError, IOError, ValueError) as e:
            self.error = CaptureError(f"Audio capture failed mid-stream: {e}")
            logger.error(f"{self.error}; partial audio kept at {self.buffer.path}")
        finally:
            self._close_stream()
            self.buffer.close()
            if self._length_at_stop is not None:
                logger.warning(f"{self.buffer.length - self._length_at_stop} bytes captured after "
                               f"stop() gave up were not transcribed")
            self.is_recording = False

        if self.error is not None and self.on_error is not None:
            self.on_error(self.error)

    def _close_stream(self) -> None:
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self._stream = None
        self._release_device()

    def _release_device(self) -> None:
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            bytes_written=self.buffer.length if self.buffer else 0,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_frames=self.total_frames,
        )
