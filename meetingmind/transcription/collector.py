"""Drains transcription results into the accumulator and publishes changes."""

import logging
import queue
import threading
from typing import Optional

from .accumulator import TranscriptAccumulator
from ..models.transcription import ChunkResult, ChunkStatus

logger = logging.getLogger(__name__)


class TranscriptCollector:
    """Single consumer of the result queue.

    Keeps all accumulator writes on one thread and publishes the visible
    transcript whenever it changes.
    """

    def __init__(self, result_queue: "queue.Queue[Optional[ChunkResult]]",
                 accumulator: TranscriptAccumulator, publisher=None):
        self.result_queue = result_queue
        self.accumulator = accumulator
        self.publisher = publisher
        self.results_by_status = {status: 0 for status in ChunkStatus}
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="TranscriptCollector", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            result = self.result_queue.get()
            if result is None:
                break
            self.handle(result)

    def handle(self, result: ChunkResult) -> None:
        self.results_by_status[result.status] += 1
        changed = self.accumulator.append(result.sequence, result.segments)

        if result.status is ChunkStatus.NO_SPEECH and self.publisher:
            self.publisher.publish_status(result.session_id, "No speech detected", "debug")

        if changed and self.publisher:
            self.publisher.publish_transcript(
                result.session_id,
                self.accumulator.current_text(),
                self.accumulator.resolved_count,
            )

    def drain(self, timeout: float = 5.0) -> None:
        """Process every result already queued, then stop the thread."""
        if self._thread is None:
            return
        self.result_queue.put(None)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Transcript collector did not finish draining in time")
        self._thread = None
