"""Worker pool that transcribes emitted chunks and posts their results."""

import time
import logging
import threading
import queue
from typing import Callable, List, Optional

from ..errors import TranscriptionError, TranscriptionTimeout
from ..models.transcription import Chunk, ChunkResult, ChunkStatus
from .base import TranscriptionEngine

logger = logging.getLogger(__name__)


class TranscriptionDispatcher:
    """Manages a pool of worker threads that transcribe chunks from a queue.

    ``submit`` never blocks the scheduler. Each worker calls the engine with a
    deadline scaled to the chunk duration and posts a :class:`ChunkResult`
    onto ``result_queue`` for every chunk it takes, including failures and
    timeouts, so the accumulator can resolve every sequence.

    The engine is initialized on a background thread when the dispatcher
    starts; workers hold their chunks until it is ready. If initialization
    fails, every chunk resolves as FAILED and capture carries on.
    """

    def __init__(self,
                 name: str,
                 engine: TranscriptionEngine,
                 result_queue: "queue.Queue[ChunkResult]",
                 max_concurrent_threads: int = 2,
                 timeout_per_audio_second: float = 0.5,
                 min_timeout_seconds: float = 3.0,
                 max_timeout_seconds: float = 15.0,
                 on_status: Optional[Callable[[str, str], None]] = None):
        self.name = name
        self.engine = engine
        self.result_queue = result_queue
        self.max_concurrent_threads = max_concurrent_threads
        self.timeout_per_audio_second = timeout_per_audio_second
        self.min_timeout_seconds = min_timeout_seconds
        self.max_timeout_seconds = max_timeout_seconds
        self.on_status = on_status

        # Thread-safe queue for transcription tasks
        self.task_queue: "queue.Queue[Optional[Chunk]]" = queue.Queue()
        self.worker_threads: List[threading.Thread] = []
        self.shutdown_event = threading.Event()
        self.abandon_event = threading.Event()

        self.engine_ready = threading.Event()
        self.init_error: Optional[TranscriptionError] = None
        self._init_thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start engine initialization and the pool of worker threads."""
        self._init_thread = threading.Thread(target=self._initialize_engine, daemon=True)
        self._init_thread.name = f"init_{self.name}"
        self._init_thread.start()

        for i in range(self.max_concurrent_threads):
            thread = threading.Thread(target=self._worker_loop)
            thread.name = f"worker_{self.name}_{i}"
            thread.daemon = True
            thread.start()
            self.worker_threads.append(thread)
        logger.info(f"Started {len(self.worker_threads)} {self.name} transcription workers")

    def _initialize_engine(self) -> None:
        try:
            if not self.engine.is_ready:
                self.engine.initialize()
            logger.info(f"{self.name}: {self.engine.ENGINE_ID} engine ready")
        except TranscriptionError as e:
            self.init_error = e
            logger.error(f"{self.name}: engine initialization failed: {e}")
            self._status(f"Live transcription unavailable: {e}", "error")
        finally:
            self.engine_ready.set()

    def submit(self, chunk: Chunk) -> bool:
        """Queue a chunk for transcription. Never blocks."""
        if self.shutdown_event.is_set() and not chunk.is_final:
            logger.warning(f"{self.name}: rejecting chunk {chunk.sequence}, dispatcher is shutting down")
            return False
        logger.debug(f"Putting chunk {chunk.sequence} on queue for {self.name}; "
                     f"{chunk.size} bytes; pending={self.task_queue.qsize()}")
        self.task_queue.put(chunk)
        return True

    def chunk_timeout(self, chunk: Chunk) -> float:
        scaled = chunk.duration_seconds * self.timeout_per_audio_second
        return min(self.max_timeout_seconds, max(self.min_timeout_seconds, scaled))

    def _worker_loop(self) -> None:
        thread_name = threading.current_thread().name
        logger.debug(f"Worker thread {thread_name} starting")

        while True:
            # Block indefinitely until a task is available
            chunk = self.task_queue.get()

            if chunk is None:
                logger.debug(f"Worker {thread_name} received sentinel, exiting.")
                self.task_queue.task_done()
                break

            try:
                self.result_queue.put(self._process(chunk))
            except Exception as e:
                logger.error(f"Unhandled exception transcribing chunk {chunk.sequence} in {thread_name}: {e}",
                             exc_info=True)
                self.result_queue.put(ChunkResult(chunk.session_id, chunk.sequence, [],
                                                  ChunkStatus.FAILED, error=str(e)))
            finally:
                self.task_queue.task_done()

        logger.debug(f"Worker thread {thread_name} exiting")

    def _wait_for_engine(self) -> bool:
        while not self.engine_ready.wait(0.1):
            if self.abandon_event.is_set():
                return False
        return self.init_error is None

    def _process(self, chunk: Chunk) -> ChunkResult:
        """Transcribe one chunk; every outcome becomes a ChunkResult."""
        if not self._wait_for_engine():
            reason = str(self.init_error) if self.init_error else "engine not ready at shutdown"
            return ChunkResult(chunk.session_id, chunk.sequence, [], ChunkStatus.FAILED, error=reason)
        if self.abandon_event.is_set():
            return ChunkResult(chunk.session_id, chunk.sequence, [], ChunkStatus.FAILED,
                               error="abandoned at shutdown")

        timeout = self.chunk_timeout(chunk)
        start_time = time.time()
        logger.info(f"Transcribing chunk {chunk.sequence} ({chunk.duration_seconds:.1f}s, "
                    f"timeout {timeout:.1f}s) using {self.engine.ENGINE_ID}")
        try:
            segments = self.engine.transcribe(chunk, timeout=timeout)
        except TranscriptionTimeout as e:
            self._status(f"Chunk {chunk.sequence} transcription timed out", "warning")
            return ChunkResult(chunk.session_id, chunk.sequence, [], ChunkStatus.TIMED_OUT,
                               error=str(e), processing_time=time.time() - start_time)
        except TranscriptionError as e:
            self._status(f"Chunk {chunk.sequence} transcription failed: {e}", "warning")
            return ChunkResult(chunk.session_id, chunk.sequence, [], ChunkStatus.FAILED,
                               error=str(e), processing_time=time.time() - start_time)

        processing_time = time.time() - start_time
        if not segments:
            logger.info(f"Chunk {chunk.sequence}: no speech detected ({processing_time:.2f}s)")
            return ChunkResult(chunk.session_id, chunk.sequence, [], ChunkStatus.NO_SPEECH,
                               processing_time=processing_time)

        result = ChunkResult(chunk.session_id, chunk.sequence, segments, ChunkStatus.OK,
                             processing_time=processing_time)
        logger.info(f"✅ {self.name.upper()} chunk {chunk.sequence}: '{result.text}' ({processing_time:.2f}s)")
        return result

    def _status(self, message: str, level: str) -> None:
        if self.on_status:
            self.on_status(message, level)

    def shutdown(self, timeout: float = 20.0) -> bool:
        """Drain queued chunks for up to ``timeout`` seconds, then stop the workers.

        Returns:
            True if every queued chunk was processed before the deadline.
        """
        logger.info(f"Shutting down {self.name} dispatcher")
        self.shutdown_event.set()

        logger.info(f"[{self.name}] Waiting up to {timeout}s for task queue to empty...")
        deadline = time.time() + timeout
        drained = False
        while time.time() < deadline:
            if self.task_queue.unfinished_tasks == 0:
                drained = True
                break
            time.sleep(0.05)
        if not drained:
            logger.warning(f"[{self.name}] Timeout reached while waiting for queue. "
                           f"{self.task_queue.unfinished_tasks} tasks remain and will be abandoned.")

        self.abandon_event.set()
        for _ in self.worker_threads:
            self.task_queue.put(None)

        for thread in self.worker_threads:
            thread.join(2.0)
            if thread.is_alive():
                logger.warning(f"Worker thread {thread.name} did not terminate cleanly.")

        logger.info(f"{self.name} dispatcher shutdown complete.")
        return drained
