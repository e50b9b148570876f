"""Session state machine that drives capture, transcription and insights."""

import logging
import queue
import threading
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from ..audio.capture import AudioCapture
from ..config import MeetingMindConfig
from ..errors import CaptureError, InvalidStateError, TranscriptionError
from ..insights.coordinator import InsightCoordinator
from ..insights.engine import InsightEngine, create_insight_engine
from ..models.session import Session, SessionState
from ..models.transcription import TranscriptSegment
from ..storage.file_manager import FileManager
from ..transcription.accumulator import TranscriptAccumulator
from ..transcription.base import TranscriptionEngine
from ..transcription.collector import TranscriptCollector
from ..transcription.consumers import TranscriptionDispatcher
from ..transcription.factory import create_engines
from ..transcription.scheduler import ChunkScheduler
from .event_publisher import SessionEventPublisher
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

TRANSITIONS = {
    SessionState.IDLE: {SessionState.RECORDING},
    SessionState.RECORDING: {SessionState.PROCESSING, SessionState.FAILED},
    SessionState.PROCESSING: {SessionState.COMPLETED, SessionState.FAILED},
    SessionState.COMPLETED: {SessionState.IDLE},
    SessionState.FAILED: {SessionState.IDLE},
}

FINAL_PASS_POLICIES = ("always", "fallback", "never")

CompletionHandler = Callable[[Session], object]


class SessionController:
    """Owns one session at a time: Idle -> Recording -> Processing -> Completed.

    ``start()`` and ``stop()`` return quickly; finalization (draining chunks,
    the optional full-file pass, final insights, persistence) runs on a
    background thread. Use :meth:`wait_until_finished` to block on it.
    """

    def __init__(self,
                 config: MeetingMindConfig,
                 live_engine: TranscriptionEngine,
                 final_engine: Optional[TranscriptionEngine] = None,
                 insight_engine: Optional[InsightEngine] = None,
                 capture_factory: Optional[Callable[[], AudioCapture]] = None,
                 file_manager: Optional[FileManager] = None,
                 publisher: Optional[SessionEventPublisher] = None,
                 completion_handlers: Optional[Iterable[CompletionHandler]] = None):
        self.config = config
        self.live_engine = live_engine
        self.final_engine = final_engine
        self.insight_engine = insight_engine or InsightEngine(None)
        self.capture_factory = capture_factory or self._create_capture
        self.file_manager = file_manager or FileManager(config.get_data_directory())
        self.publisher = publisher or SessionEventPublisher()
        if completion_handlers is None:
            completion_handlers = [SessionManager(self.file_manager)]
        self.completion_handlers: List[CompletionHandler] = list(completion_handlers)

        self.final_pass = config.get('transcription.final_pass', 'fallback')
        if self.final_pass not in FINAL_PASS_POLICIES:
            raise ValueError(f"transcription.final_pass must be one of {FINAL_PASS_POLICIES}")

        self.accumulator = TranscriptAccumulator()
        self.coordinator = InsightCoordinator(
            self.insight_engine,
            publisher=self.publisher,
            interval_seconds=config.get('insights.interval_seconds', 20.0),
            min_transcript_chars=config.get('insights.min_transcript_chars', 30),
            timeout_seconds=config.get('insights.timeout_seconds', 15.0),
            final_timeout_seconds=config.get('insights.final_timeout_seconds', 30.0),
        )

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._finished = threading.Event()
        self._finished.set()
        self._finalizer: Optional[threading.Thread] = None

        self.session: Optional[Session] = None
        self.capture: Optional[AudioCapture] = None
        self.scheduler: Optional[ChunkScheduler] = None
        self.dispatcher: Optional[TranscriptionDispatcher] = None
        self.collector: Optional[TranscriptCollector] = None

    @classmethod
    def from_config(cls, config: MeetingMindConfig, **kwargs) -> "SessionController":
        """Build engines and the insight backend from configuration."""
        live_engine, final_engine = create_engines(config)
        kwargs.setdefault("insight_engine", create_insight_engine(config))
        return cls(config, live_engine, final_engine, **kwargs)

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def _create_capture(self) -> AudioCapture:
        return AudioCapture(
            sample_rate=self.config.get('audio.sample_rate', 16000),
            chunk_size=self.config.get('audio.chunk_size', 1024),
            channels=self.config.get('audio.channels', 1),
            device_index=self.config.get('audio.device_index'),
            stop_timeout=self.config.get('audio.stop_timeout_seconds', 10.0),
        )

    def _transition(self, new_state: SessionState, error: Optional[str] = None) -> None:
        """Move to ``new_state``; caller holds the lock."""
        old_state = self._state
        if new_state not in TRANSITIONS[old_state]:
            raise InvalidStateError(f"Invalid transition {old_state.value} -> {new_state.value}")
        self._state = new_state
        session_id = self.session.session_id if self.session else None
        if self.session is not None and new_state is not SessionState.IDLE:
            self.session.state = new_state
        logger.info(f"Session {session_id}: {old_state.value} -> {new_state.value}")
        self.publisher.publish_state(session_id, old_state, new_state, error)

    def start(self) -> Session:
        """Begin a new session and start capturing.

        Raises:
            InvalidStateError: a session is recording or still processing
            CaptureError: the audio device could not be opened; state stays Idle
        """
        with self._lock:
            if not self._finished.is_set():
                raise InvalidStateError("The previous session is still being finalized")
            if self._state in (SessionState.COMPLETED, SessionState.FAILED):
                self._transition(SessionState.IDLE)
            if self._state is not SessionState.IDLE:
                raise InvalidStateError(f"Cannot start a session while {self._state.value}")

            session_id = self.file_manager.create_session_directory()
            audio_path = self.file_manager.working_audio_path(session_id)

            capture = self.capture_factory()
            capture.on_error = self._on_capture_error
            try:
                capture.start(audio_path)
            except CaptureError as e:
                logger.error(f"Could not start session {session_id}: {e}")
                self.publisher.publish_status(session_id, f"Recording failed to start: {e}", "error")
                raise

            self.session = Session(session_id=session_id, started_at=datetime.now(), audio_path=str(audio_path))
            self.capture = capture
            self.accumulator.reset(session_id)

            result_queue: queue.Queue = queue.Queue()
            self.dispatcher = TranscriptionDispatcher(
                "live",
                self.live_engine,
                result_queue,
                max_concurrent_threads=self.config.get('transcription.max_concurrent_chunks', 2),
                timeout_per_audio_second=self.config.get('transcription.timeout_per_audio_second', 0.5),
                min_timeout_seconds=self.config.get('transcription.min_timeout_seconds', 3.0),
                max_timeout_seconds=self.config.get('transcription.max_timeout_seconds', 15.0),
                on_status=lambda message, level: self.publisher.publish_status(session_id, message, level),
            )
            self.collector = TranscriptCollector(result_queue, self.accumulator, self.publisher)
            self.scheduler = ChunkScheduler(
                capture.buffer,
                session_id,
                self.dispatcher.submit,
                interval_seconds=self.config.get('chunking.tick_interval_seconds', 5.0),
                min_new_data_bytes=self.config.get('chunking.min_new_data_bytes', 20480),
            )

            self.dispatcher.start()
            self.collector.start()
            self.scheduler.start()
            self.coordinator.start_session(session_id, self.accumulator.current_text)

            self._finished.clear()
            self._transition(SessionState.RECORDING)
            return self.session

    def stop(self) -> Session:
        """Stop capturing and finalize the session in the background.

        Raises:
            InvalidStateError: no session is recording
        """
        with self._lock:
            if self._state is not SessionState.RECORDING:
                raise InvalidStateError(f"Cannot stop while {self._state.value}")
            self.scheduler.cancel()
            self.session.ended_at = datetime.now()
            self._transition(SessionState.PROCESSING)
            session = self.session

        # No live insight calls while the backlog drains and the final pass runs
        self.coordinator.stop_cadence()
        self.capture.stop()
        self._finalizer = threading.Thread(target=self._finalize, args=(session,),
                                           name=f"Finalize-{session.session_id}", daemon=True)
        self._finalizer.start()
        return session

    def wait_until_finished(self, timeout: Optional[float] = None) -> bool:
        """Block until the current session is Completed or Failed and its handlers ran."""
        return self._finished.wait(timeout)

    def _drain_transcription(self) -> Tuple[str, List[TranscriptSegment]]:
        self.scheduler.flush()
        expected = self.scheduler.chunks_emitted
        self.dispatcher.shutdown(timeout=self.config.get('transcription.drain_timeout_seconds', 20.0))
        self.collector.drain()
        text = self.accumulator.freeze(expected)
        return text, self.accumulator.segments()

    def _finalize(self, session: Session) -> None:
        try:
            transcript = ""
            try:
                live_text, segments = self._drain_transcription()
                transcript, segments = self._run_final_pass(session, live_text, segments)

                if not transcript:
                    self.publisher.publish_status(session.session_id, "No speech was transcribed", "warning")
                self.publisher.publish_transcript(session.session_id, transcript,
                                                  self.scheduler.chunks_emitted, is_final=True)
                with self._lock:
                    session.complete(transcript, segments)
                    self._transition(SessionState.COMPLETED)
            except Exception as e:
                logger.error(f"Finalizing session {session.session_id} failed: {e}", exc_info=True)
                with self._lock:
                    failed = self._state is SessionState.PROCESSING
                    if failed:
                        session.error = str(e)
                        self._transition(SessionState.FAILED, str(e))
                if failed:
                    self.coordinator.stop_cadence()
                    self._run_completion_handlers(session)
                    return

            self._attach_final_insights(session, transcript)
            self._run_completion_handlers(session)
        finally:
            self._finished.set()

    def _attach_final_insights(self, session: Session, transcript: str) -> None:
        try:
            bundle = self.coordinator.finalize(transcript)
        except Exception as e:
            logger.error(f"Final insights for session {session.session_id} failed: {e}", exc_info=True)
            # The bundle is stored before it is published, so a failing listener does not lose it
            latest = self.coordinator.latest
            bundle = latest if latest is not None and latest.is_final else None
        if bundle is not None:
            session.attach_insights(bundle)

    def _run_final_pass(self, session: Session, live_text: str,
                        live_segments: List[TranscriptSegment]) -> Tuple[str, List[TranscriptSegment]]:
        wanted = self.final_pass == "always" or (self.final_pass == "fallback" and not live_text.strip())
        if not wanted or self.final_engine is None:
            return live_text, live_segments

        logger.info(f"Running final transcription pass over {session.audio_path}")
        self.publisher.publish_status(session.session_id, "Transcribing full recording", "info")
        try:
            if not self.final_engine.is_ready:
                self.final_engine.initialize()
            segments = self.final_engine.transcribe(
                session.audio_path, timeout=self.config.get('transcription.final_timeout_seconds', 600.0))
        except TranscriptionError as e:
            logger.warning(f"Final transcription pass failed, keeping live transcript: {e}")
            self.publisher.publish_status(session.session_id, f"Final transcription pass failed: {e}", "warning")
            return live_text, live_segments

        text = " ".join(s.text.strip() for s in segments if s.text.strip())
        if not text:
            return live_text, live_segments
        session.used_final_pass = True
        return text, segments

    def _on_capture_error(self, error: CaptureError) -> None:
        """Called on the capture thread when the device fails mid-recording."""
        with self._lock:
            if self._state is not SessionState.RECORDING:
                return
            self.scheduler.cancel()
            session = self.session
            session.ended_at = datetime.now()
            session.error = str(error)
            self._transition(SessionState.FAILED, str(error))

        threading.Thread(target=self._salvage, args=(session,),
                         name=f"Salvage-{session.session_id}", daemon=True).start()

    def _salvage(self, session: Session) -> None:
        """Keep whatever was transcribed before the capture failure."""
        try:
            self.coordinator.stop_cadence()
            text, segments = self._drain_transcription()
            session.transcript = text
            session.segments = segments
            self.publisher.publish_status(session.session_id,
                                          f"Recording failed: {session.error}. Partial audio kept at {session.audio_path}",
                                          "error")
            self._run_completion_handlers(session)
        finally:
            self._finished.set()

    def _run_completion_handlers(self, session: Session) -> None:
        for handler in self.completion_handlers:
            try:
                handler(session)
            except Exception as e:
                logger.error(f"Completion handler {handler!r} failed for {session.session_id}: {e}", exc_info=True)

    def close(self, timeout: float = 60.0) -> None:
        """Stop any active session, wait for it to finish and release engines."""
        if self.state is SessionState.RECORDING:
            self.stop()
        if not self.wait_until_finished(timeout):
            logger.warning(f"Session did not finish within {timeout}s of close()")
        self.coordinator.close()
        for engine in (self.live_engine, self.final_engine):
            if engine is not None:
                logger.info(f"Transcription engine stats: {engine.get_stats()}")
                engine.cleanup()
