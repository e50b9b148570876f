"""Sequence-ordered reassembly of chunk transcription results."""

import logging
import threading
from typing import Dict, List, Optional

from ..models.transcription import TranscriptSegment

logger = logging.getLogger(__name__)


class TranscriptAccumulator:
    """Builds the session transcript from results that may arrive out of order.

    Results are buffered by chunk sequence. The visible text is the
    contiguous resolved prefix: sequence ``k`` only becomes visible once every
    sequence below it has resolved, so text is never inserted in front of
    something a reader has already seen. A failed chunk resolves with no
    segments and therefore never blocks later chunks.
    """

    def __init__(self, session_id: Optional[str] = None):
        self._lock = threading.Lock()
        self.session_id = session_id
        self._results: Dict[int, List[TranscriptSegment]] = {}
        self._contiguous = 0  # sequences [0, _contiguous) are resolved
        self._frozen = False
        self._final_text: Optional[str] = None

    def reset(self, session_id: str) -> None:
        with self._lock:
            self.session_id = session_id
            self._results = {}
            self._contiguous = 0
            self._frozen = False
            self._final_text = None

    @property
    def is_frozen(self) -> bool:
        with self._lock:
            return self._frozen

    @property
    def resolved_count(self) -> int:
        """Length of the contiguous resolved prefix."""
        with self._lock:
            return self._contiguous

    def append(self, sequence: int, segments: List[TranscriptSegment]) -> bool:
        """Record the result for ``sequence``.

        Returns:
            True if the visible transcript changed.
        """
        with self._lock:
            if self._frozen:
                logger.warning(f"Ignoring late result for chunk {sequence}: transcript is frozen")
                return False
            if sequence in self._results:
                logger.warning(f"Ignoring duplicate result for chunk {sequence}")
                return False

            self._results[sequence] = list(segments)
            before = self._contiguous
            while self._contiguous in self._results:
                self._contiguous += 1

            if self._contiguous == before:
                logger.debug(f"Chunk {sequence} buffered; waiting for chunk {self._contiguous}")
                return False

            return any(self._results[seq] for seq in range(before, self._contiguous))

    def current_text(self) -> str:
        with self._lock:
            if self._final_text is not None:
                return self._final_text
            return self._join(range(self._contiguous))

    def segments(self) -> List[TranscriptSegment]:
        with self._lock:
            if self._frozen:
                order = sorted(self._results)
            else:
                order = range(self._contiguous)
            return [s for seq in order for s in self._results[seq]]

    def pending_sequences(self) -> List[int]:
        """Sequences received but not yet visible."""
        with self._lock:
            return sorted(seq for seq in self._results if seq >= self._contiguous)

    def freeze(self, expected_count: Optional[int] = None) -> str:
        """Seal the transcript and return its final text.

        Sequences below ``expected_count`` that never reported are treated as
        empty; every buffered result is included in sequence order.
        """
        with self._lock:
            if self._frozen:
                return self._final_text
            missing = []
            if expected_count is not None:
                missing = [seq for seq in range(expected_count) if seq not in self._results]
            if missing:
                logger.warning(f"Freezing transcript with {len(missing)} unreported chunks: {missing}")
            self._frozen = True
            self._final_text = self._join(sorted(self._results))
            logger.info(f"Transcript frozen: {len(self._results)} chunks, {len(self._final_text)} chars")
            return self._final_text

    def _join(self, sequences) -> str:
        texts = []
        for seq in sequences:
            for segment in self._results[seq]:
                text = segment.text.strip()
                if text:
                    texts.append(text)
        return " ".join(texts)
