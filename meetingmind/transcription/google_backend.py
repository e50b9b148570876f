"""Google Speech-to-Text transcription engine."""

import time
import logging
from typing import List, Optional, Dict, Any

from .base import TranscriptionEngine
from ..errors import TranscriptionAuthError, TranscriptionError, TranscriptionTimeout
from ..models.audio import AudioFormat
from ..models.transcription import TranscriptSegment

from google.auth import exceptions as auth_exceptions
from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

# Synchronous recognize() accepts at most one minute of audio
MAX_WINDOW_SECONDS = 55


class GoogleSpeechEngine(TranscriptionEngine):
    """Google Speech-to-Text API engine for transcription."""

    ENGINE_ID = "google"

    def __init__(self,
                 credentials_path: str,
                 language: str = "en-US",
                 model: str = "latest_short",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 request_timeout: float = 10.0,
                 audio_format: Optional[AudioFormat] = None):
        """Initialize Google Speech engine.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Language code (e.g., 'en-US', 'es-ES')
            model: Recognition model; 'latest_short' for live chunks, 'latest_long' for the final pass
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            request_timeout: Per-request RPC timeout in seconds
        """
        super().__init__(language=language, audio_format=audio_format)
        if not credentials_path:
            raise ValueError("Google credentials path is required")
        self.credentials_path = credentials_path
        self.model = model
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.request_timeout = request_timeout
        self.client = None
        self.project_id = None
        self.service_name = f"google/{model}"
        self.config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.audio_format.sample_rate,
            audio_channel_count=self.audio_format.channels,
            language_code=self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            enable_word_time_offsets=True,
            model=self.model,
        )

    def initialize(self) -> None:
        """Initialize Google Speech client and verify credentials."""
        if self._ready:
            return
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        try:
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as e:
            raise TranscriptionError(f"Cannot load Google credentials from {self.credentials_path}: {e}") from e

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        self._ready = True
        logger.info(f"Google Speech-to-Text engine ready (project={self.project_id}, model={self.model})")

    def _transcribe_pcm(self, pcm: bytes, offset_seconds: float) -> List[TranscriptSegment]:
        window_bytes = MAX_WINDOW_SECONDS * self.audio_format.bytes_per_second
        segments = []
        for window_start in range(0, len(pcm), window_bytes):
            window = pcm[window_start:window_start + window_bytes]
            window_offset = offset_seconds + self.audio_format.seconds(window_start)
            segments.extend(self._recognize_window(window, window_offset))
        return segments

    def _recognize_window(self, pcm: bytes, offset_seconds: float) -> List[TranscriptSegment]:
        start_time = time.time()
        audio = speech.RecognitionAudio(content=pcm)
        try:
            response = self.client.recognize(config=self.config, audio=audio, timeout=self.request_timeout)
        except gax_exceptions.DeadlineExceeded as e:
            raise TranscriptionTimeout(f"Google Speech recognize deadline exceeded: {e}") from e
        except (gax_exceptions.Unauthenticated, gax_exceptions.PermissionDenied) as e:
            raise TranscriptionAuthError(f"Google Speech rejected credentials: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            raise TranscriptionError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            raise TranscriptionError(f"Google Speech API error: {e}") from e
        except auth_exceptions.GoogleAuthError as e:
            raise TranscriptionAuthError(f"Google credentials could not be refreshed: {e}") from e

        processing_time = time.time() - start_time
        if not response.results:
            logger.debug(f"No speech detected in {len(pcm)} bytes ({processing_time:.2f}s)")
            return []

        window_duration = self.audio_format.seconds(len(pcm))
        segments = []
        previous_end = 0.0
        for result in response.results:
            if not result.alternatives:
                continue
            alternative = result.alternatives[0]
            text = alternative.transcript.strip()
            if not text:
                continue
            start, end = self._result_bounds(result, alternative, previous_end, window_duration)
            previous_end = end
            segments.append(TranscriptSegment(
                text=text,
                start_seconds=offset_seconds + start,
                end_seconds=offset_seconds + end,
                confidence=min(1.0, max(0.0, float(alternative.confidence))),
                is_final=True,
                service=self.service_name,
            ))

        logger.debug(f"Google recognized {len(segments)} segments in {processing_time:.2f}s")
        return segments

    @staticmethod
    def _result_bounds(result, alternative, previous_end: float, window_duration: float):
        words = list(alternative.words)
        if words:
            return words[0].start_time.total_seconds(), words[-1].end_time.total_seconds()
        end_time = getattr(result, "result_end_time", None)
        end = end_time.total_seconds() if end_time else window_duration
        return previous_end, end

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        self.client = None
        super().cleanup()

    def get_stats(self) -> Dict[str, Any]:
        """Get Google-specific statistics."""
        stats = super().get_stats()
        stats.update({
            "service": self.service_name,
            "language": self.language,
            "use_enhanced": self.use_enhanced,
            "enable_punctuation": self.enable_automatic_punctuation,
        })
        return stats
