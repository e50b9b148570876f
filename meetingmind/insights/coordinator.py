"""Schedules insight generation alongside transcription and applies results in order."""

import asyncio
import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Callable, Optional

from .engine import InsightEngine
from ..models.insights import InsightBundle, InsightStatus

logger = logging.getLogger(__name__)


class InsightCoordinator:
    """Runs InsightEngine calls on a private asyncio loop thread.

    Live requests are made on a timer, only when the transcript reached
    ``min_transcript_chars`` and changed since the last request. Every request
    takes a ticket from a monotonically increasing counter and a result is
    applied only when its ticket is newer than the last applied one: a slow
    call that finishes after a newer one is discarded rather than shown.
    In-flight calls are never cancelled.
    """

    def __init__(self,
                 engine: InsightEngine,
                 publisher=None,
                 interval_seconds: float = 20.0,
                 min_transcript_chars: int = 30,
                 timeout_seconds: float = 15.0,
                 final_timeout_seconds: float = 30.0):
        self.engine = engine
        self.publisher = publisher
        self.interval_seconds = interval_seconds
        self.min_transcript_chars = min_transcript_chars
        self.timeout_seconds = timeout_seconds
        self.final_timeout_seconds = final_timeout_seconds

        self._lock = threading.Lock()
        self._next_ticket = 0
        self._applied_ticket = -1
        self._min_ticket = 0  # results with lower tickets belong to a finished phase
        self._last_requested_text: Optional[str] = None
        self.session_id: Optional[str] = None
        self.latest: Optional[InsightBundle] = None
        self.discarded = 0

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[threading.Thread] = None
        self._cadence_stop = threading.Event()
        self._cadence_thread: Optional[threading.Thread] = None

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
            self._loop_thread = threading.Thread(target=self._run_loop, name="InsightLoop", daemon=True)
            self._loop_thread.start()
        return self._loop

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def start_session(self, session_id: str, text_source: Callable[[], str]) -> None:
        """Reset per-session state and start the live cadence."""
        self.stop_cadence()
        self._ensure_loop()
        with self._lock:
            self.session_id = session_id
            self.latest = None
            self._last_requested_text = None
            self._min_ticket = self._next_ticket

        self._cadence_stop.clear()
        self._cadence_thread = threading.Thread(
            target=self._cadence_loop, args=(text_source,), name="InsightCadence", daemon=True)
        self._cadence_thread.start()
        logger.info(f"Insight cadence started: every {self.interval_seconds}s, "
                    f"min {self.min_transcript_chars} chars")

    def _cadence_loop(self, text_source: Callable[[], str]) -> None:
        while not self._cadence_stop.wait(self.interval_seconds):
            self.request(text_source())

    def stop_cadence(self) -> None:
        self._cadence_stop.set()
        if self._cadence_thread is not None and self._cadence_thread is not threading.current_thread():
            self._cadence_thread.join(timeout=2.0)
        self._cadence_thread = None

    def request(self, transcript_text: str) -> Optional[Future]:
        """Start a live insight call for this snapshot unless it is too short or unchanged."""
        if len(transcript_text.strip()) < self.min_transcript_chars:
            logger.debug(f"Skipping insights: transcript has {len(transcript_text.strip())} chars "
                         f"(< {self.min_transcript_chars})")
            return None

        with self._lock:
            if transcript_text == self._last_requested_text:
                return None
            ticket = self._next_ticket
            self._next_ticket += 1
            self._last_requested_text = transcript_text

        logger.debug(f"Requesting live insights #{ticket} for {len(transcript_text)} chars")
        return asyncio.run_coroutine_threadsafe(
            self._generate(ticket, transcript_text, False, self.timeout_seconds), self._ensure_loop())

    def finalize(self, transcript_text: str) -> Optional[InsightBundle]:
        """Stop the cadence and generate the final bundle from the complete transcript.

        Blocks until the bundle is ready. Returns None when the transcript is
        below the minimum length, in which case the engine is not called.
        """
        self.stop_cadence()
        if len(transcript_text.strip()) < self.min_transcript_chars:
            logger.info(f"Skipping final insights: transcript has {len(transcript_text.strip())} chars")
            return None

        with self._lock:
            ticket = self._next_ticket
            self._next_ticket += 1
            # Live calls still in flight must not overwrite the final bundle
            self._min_ticket = ticket

        future = asyncio.run_coroutine_threadsafe(
            self._generate(ticket, transcript_text, True, self.final_timeout_seconds), self._ensure_loop())
        try:
            return future.result(timeout=self.final_timeout_seconds + 5.0)
        except FutureTimeoutError:
            bundle = InsightBundle.degraded(InsightStatus.TIMED_OUT, "AI summary timed out",
                                            is_final=True, transcript_chars=len(transcript_text))
            bundle.generation = ticket
            self._apply(ticket, bundle)
            return bundle

    async def _generate(self, ticket: int, text: str, final: bool, timeout: float) -> InsightBundle:
        bundle = await self.engine.generate(text, timeout=timeout, final=final)
        bundle.generation = ticket
        self._apply(ticket, bundle)
        return bundle

    def _apply(self, ticket: int, bundle: InsightBundle) -> bool:
        with self._lock:
            if ticket < self._min_ticket or ticket <= self._applied_ticket:
                self.discarded += 1
                logger.info(f"Discarding stale insight bundle #{ticket} "
                            f"(applied #{self._applied_ticket}, floor #{self._min_ticket})")
                return False
            self._applied_ticket = ticket
            self.latest = bundle
            session_id = self.session_id

        if self.publisher:
            self.publisher.publish_insights(session_id, bundle)
            if bundle.is_degraded:
                self.publisher.publish_status(session_id, bundle.status_message, "warning")
        return True

    def close(self) -> None:
        """Stop the cadence and the event loop thread."""
        self.stop_cadence()
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join(timeout=2.0)
        if not self._loop.is_running():
            self._loop.close()
        self._loop = None
        self._loop_thread = None
