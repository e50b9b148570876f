"""Periodic cutting of newly captured audio into sequence-numbered chunks."""

import logging
import threading
from typing import Callable, List, Optional, Tuple

from ..audio.buffer import SessionAudioBuffer
from ..models.transcription import Chunk

logger = logging.getLogger(__name__)


class ChunkScheduler:
    """Emits ``[cut_pointer, length)`` of the session buffer every tick.

    Chunks partition the buffer: each starts where the previous ended and
    sequences are dense from 0. A tick with less than ``min_new_data_bytes``
    of new audio emits nothing and leaves the cut pointer alone; only the
    flush on stop may emit a smaller chunk.
    """

    def __init__(self,
                 buffer: SessionAudioBuffer,
                 session_id: str,
                 on_chunk: Callable[[Chunk], None],
                 interval_seconds: float = 5.0,
                 min_new_data_bytes: int = 20480):
        self.buffer = buffer
        self.session_id = session_id
        self.on_chunk = on_chunk
        self.interval_seconds = interval_seconds
        self.min_new_data_bytes = min_new_data_bytes

        self._lock = threading.Lock()
        self._cut_pointer = 0
        self._sequence_counter = 0
        self._flushed = False
        self.emitted: List[Tuple[int, int, int]] = []  # (sequence, start, end)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def cut_pointer(self) -> int:
        with self._lock:
            return self._cut_pointer

    @property
    def chunks_emitted(self) -> int:
        with self._lock:
            return self._sequence_counter

    def start(self) -> None:
        if self._thread is not None:
            logger.warning("Chunk scheduler already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=f"ChunkScheduler-{self.session_id}", daemon=True)
        self._thread.start()
        logger.info(f"Chunk scheduler started: every {self.interval_seconds}s, "
                    f"min {self.min_new_data_bytes} new bytes")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.tick()
            except (OSError, ValueError) as e:
                # A failed read leaves the cut pointer where it was; the next tick retries
                logger.error(f"Chunk cut failed for session {self.session_id}: {e}")

    def tick(self) -> Optional[Chunk]:
        """Cut a chunk if enough new audio arrived since the last cut."""
        return self._cut(final=False)

    def cancel(self) -> None:
        """Stop the timer immediately; an in-progress tick finishes."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)
            if self._thread.is_alive():
                logger.warning("Chunk scheduler thread did not stop cleanly")
        self._thread = None

    def flush(self) -> Optional[Chunk]:
        """Emit whatever remains after the last cut, regardless of size."""
        return self._cut(final=True)

    def stop(self, flush: bool = True) -> Optional[Chunk]:
        self.cancel()
        return self.flush() if flush else None

    def _cut(self, final: bool) -> Optional[Chunk]:
        with self._lock:
            if self._flushed:
                return None
            audio_format = self.buffer.audio_format
            length = self.buffer.length
            length -= length % audio_format.block_align
            new_bytes = length - self._cut_pointer

            if final:
                self._flushed = True
                if new_bytes <= 0:
                    logger.debug(f"Final flush for session {self.session_id}: no remaining audio")
                    return None
            elif new_bytes < self.min_new_data_bytes:
                logger.debug(f"Skipping cut: {new_bytes} new bytes < {self.min_new_data_bytes}")
                return None

            chunk = Chunk(
                session_id=self.session_id,
                sequence=self._sequence_counter,
                start=self._cut_pointer,
                end=length,
                pcm=self.buffer.read(self._cut_pointer, length),
                audio_format=audio_format,
                is_final=final,
            )
            self._cut_pointer = length
            self._sequence_counter += 1
            self.emitted.append((chunk.sequence, chunk.start, chunk.end))

        logger.info(f"Emitting chunk {chunk.sequence} [{chunk.start}, {chunk.end}) "
                    f"{chunk.duration_seconds:.1f}s{' (final)' if final else ''}")
        self.on_chunk(chunk)
        return chunk
