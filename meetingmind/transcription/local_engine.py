"""Local Whisper transcription engine using faster-whisper."""

import logging
import time
from typing import List, Optional

import numpy as np
from faster_whisper import WhisperModel

from .base import TranscriptionEngine
from .model_assets import ModelAssetStore
from ..errors import TranscriptionError
from ..models.audio import AudioFormat
from ..models.transcription import TranscriptSegment

logger = logging.getLogger(__name__)


class LocalWhisperEngine(TranscriptionEngine):
    """faster-whisper (CTranslate2) engine backed by a :class:`ModelAssetStore`.

    The live configuration favours latency (``tiny.en``, greedy decoding);
    the final pass uses a larger model with beam search.
    """

    ENGINE_ID = "whisper"

    def __init__(self,
                 asset_store: ModelAssetStore,
                 model_name: str = "tiny.en",
                 beam_size: int = 1,
                 compute_type: str = "int8",
                 device: str = "cpu",
                 language: str = "en",
                 no_speech_threshold: float = 0.6,
                 vad_filter: bool = True,
                 audio_format: Optional[AudioFormat] = None):
        super().__init__(language=language, audio_format=audio_format)
        self.asset_store = asset_store
        self.model_name = model_name
        self.beam_size = beam_size
        self.compute_type = compute_type
        self.device = device
        self.no_speech_threshold = no_speech_threshold
        self.vad_filter = vad_filter
        self._model: Optional[WhisperModel] = None

    def initialize(self) -> None:
        if self._ready:
            return
        model_path = self.asset_store.ensure(self.model_name)

        logger.info(f"Loading Whisper model '{self.model_name}' on {self.device} ({self.compute_type})")
        start_time = time.time()
        try:
            self._model = WhisperModel(str(model_path), device=self.device, compute_type=self.compute_type)
        except (RuntimeError, ValueError, OSError) as e:
            raise TranscriptionError(f"Failed to load Whisper model '{self.model_name}': {e}") from e

        self._ready = True
        logger.info(f"Whisper model '{self.model_name}' loaded in {time.time() - start_time:.1f}s")

    def _transcribe_pcm(self, pcm: bytes, offset_seconds: float) -> List[TranscriptSegment]:
        audio = np.frombuffer(pcm, dtype=np.int16).astype(np.float32) / 32768.0
        segments, _info = self._model.transcribe(
            audio,
            language=self.language,
            beam_size=self.beam_size,
            vad_filter=self.vad_filter,
            condition_on_previous_text=False,
        )

        # faster-whisper yields lazily: decoding happens while iterating
        results = []
        for segment in segments:
            text = segment.text.strip()
            if not text:
                continue
            if segment.no_speech_prob > self.no_speech_threshold:
                logger.debug(f"Dropping likely non-speech segment '{text}' "
                             f"(no_speech_prob={segment.no_speech_prob:.2f})")
                continue
            results.append(TranscriptSegment(
                text=text,
                start_seconds=offset_seconds + segment.start,
                end_seconds=offset_seconds + segment.end,
                confidence=float(np.clip(np.exp(segment.avg_logprob), 0.0, 1.0)),
                is_final=True,
                service=f"whisper/{self.model_name}",
            ))
        return results

    def cleanup(self) -> None:
        self._model = None
        super().cleanup()

    def get_stats(self):
        stats = super().get_stats()
        stats.update({
            "model": self.model_name,
            "beam_size": self.beam_size,
            "device": self.device,
        })
        return stats

