"""Pytest configuration and fixtures for MeetingMind tests."""

import asyncio
import pytest
import tempfile
import threading
import time
import logging
import uuid
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np
import wave

from pubsub import pub

from meetingmind.config import MeetingMindConfig
from meetingmind.errors import TranscriptionError
from meetingmind.models.events import (
    TOPIC_INSIGHTS,
    TOPIC_SESSION_STATE,
    TOPIC_STATUS,
    TOPIC_TRANSCRIPT,
)
from meetingmind.models.transcription import TranscriptSegment
from meetingmind.transcription.base import TranscriptionEngine


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests that run the whole pipeline")
    config.addinivalue_line("markers", "slow: tests that take several seconds")
    config.addinivalue_line("markers", "hardware: needs a real microphone; run with -m hardware")


def pytest_collection_modifyitems(config, items):
    if "hardware" in (config.getoption("-m") or ""):
        return
    skip_hardware = pytest.mark.skip(reason="needs a real microphone; run with -m hardware")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of a 440 Hz sine wave, 16-bit
    sample_rate = 16000
    duration = 1024 / sample_rate
    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    return (wave_data * 32767).astype(np.int16).tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        def read_silence(frames, exception_on_overflow=False):
            time.sleep(0.005)
            return b'\x00' * (frames * 2)

        # Configure mock stream
        mock_stream.read.side_effect = read_silence
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def sample_audio_file(temp_data_dir, audio_test_data):
    """Create a 16kHz mono WAV file: 2s tone, 2s silence."""
    file_path = Path(temp_data_dir) / "test_audio.wav"
    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(16000)
        wf.writeframes(audio_test_data("sine", 2.0) + audio_test_data("silence", 2.0))
    return str(file_path)


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=16000):
        """Generate audio data for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz

        Returns:
            bytes: Audio data as bytes
        """
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = 0.5 * np.sin(2 * np.pi * 440 * t)
        elif pattern == "noise":
            wave_data = np.random.default_rng(1234).uniform(-0.5, 0.5, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        return (wave_data * 32767).astype(np.int16).tobytes()

    return generate_audio


@pytest.fixture
def make_config(temp_data_dir):
    """Build a config rooted in the temp directory, with dot-path overrides."""
    def build(**overrides) -> MeetingMindConfig:
        config = MeetingMindConfig()
        config.set('storage.data_directory', str(Path(temp_data_dir) / "data"))
        config.set('models.directory', str(Path(temp_data_dir) / "models"))
        config.set('logging.file_path', str(Path(temp_data_dir) / "logs" / "test.log"))
        config.set('google_cloud.credentials_path', str(Path(temp_data_dir) / "missing.json"))
        config.set('insights.api_key_env', "MEETINGMIND_TEST_NO_KEY")
        for key, value in overrides.items():
            config.set(key.replace('__', '.'), value)
        return config
    return build


class ScriptedEngine(TranscriptionEngine):
    """Deterministic engine: silence yields nothing, anything else yields one segment.

    The segment text names where the audio started, e.g. ``"speech at 10s"``.
    ``delays`` maps a call's audio offset (whole seconds) to a sleep, which is
    how tests make chunks finish out of order or hang past their deadline.
    """

    ENGINE_ID = "scripted"

    def __init__(self, delays=None, fail_init: Optional[Exception] = None, fail_offsets=()):
        super().__init__(language="en")
        self.delays = dict(delays or {})
        self.fail_init = fail_init
        self.fail_offsets = set(fail_offsets)
        self.calls: List[float] = []
        self.initialize_calls = 0
        self._calls_lock = threading.Lock()

    def initialize(self) -> None:
        self.initialize_calls += 1
        if self.fail_init is not None:
            raise self.fail_init
        self._ready = True

    def _transcribe_pcm(self, pcm: bytes, offset_seconds: float) -> List[TranscriptSegment]:
        offset = int(round(offset_seconds))
        with self._calls_lock:
            self.calls.append(offset_seconds)
        if offset in self.delays:
            time.sleep(self.delays[offset])
        if offset in self.fail_offsets:
            raise TranscriptionError(f"scripted failure at {offset}s")

        samples = np.frombuffer(pcm, dtype=np.int16)
        if not samples.any():
            return []
        duration = len(pcm) / self.audio_format.bytes_per_second
        return [TranscriptSegment(
            text=f"speech at {offset}s",
            start_seconds=offset_seconds,
            end_seconds=offset_seconds + duration,
            confidence=0.9,
            service="scripted",
        )]


LIVE_REPLY = """SUGGESTED QUESTIONS:
- What is the deadline?

MEETING INSIGHTS:
- The team is discussing {marker}
"""

FINAL_REPLY = """SUMMARY:
- A meeting about {marker}

ACTION ITEMS:
- Follow up on {marker}
"""


class FakeInsightBackend:
    """LLM backend double: replies per prompt kind, optionally slow or failing.

    ``delays`` is a list consumed one entry per call, so the first call can be
    made slower than the second.
    """

    def __init__(self, delays=None, error: Optional[Exception] = None, final_delay: float = 0.0,
                 reply: Optional[str] = None):
        self.delays = list(delays or [])
        self.error = error
        self.final_delay = final_delay
        self.reply = reply
        self.prompts: List[str] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def send_prompt(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2000) -> str:
        with self._lock:
            self.prompts.append(prompt)
            delay = self.delays.pop(0) if self.delays else 0.0
        final = "KEY DECISIONS:" in prompt
        if final:
            delay = self.final_delay
        if delay:
            await asyncio.sleep(delay)
        if self.error is not None:
            raise self.error
        if self.reply is not None:
            return self.reply
        marker = prompt.rstrip().rsplit("\n", 1)[-1][:40]
        return (FINAL_REPLY if final else LIVE_REPLY).format(marker=marker)


class EventRecorder:
    """Collects pub/sub events; must be kept referenced while subscribed."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.states = []
        self.statuses = []
        self.transcripts = []
        self.insights = []

    def on_state(self, event):
        self.states.append(event)

    def on_status(self, event):
        self.statuses.append(event)

    def on_transcript(self, event):
        self.transcripts.append(event)

    def on_insights(self, event):
        self.insights.append(event)

    def subscriptions(self):
        return [
            (self.on_state, f"{self.prefix}{TOPIC_SESSION_STATE}"),
            (self.on_status, f"{self.prefix}{TOPIC_STATUS}"),
            (self.on_transcript, f"{self.prefix}{TOPIC_TRANSCRIPT}"),
            (self.on_insights, f"{self.prefix}{TOPIC_INSIGHTS}"),
        ]


@pytest.fixture
def event_recorder():
    """Subscribe an EventRecorder to a unique topic prefix for the test."""
    recorder = EventRecorder(prefix=f"t{uuid.uuid4().hex[:8]}")
    for listener, topic in recorder.subscriptions():
        pub.subscribe(listener, topic)
    yield recorder
    for listener, topic in recorder.subscriptions():
        pub.unsubscribe(listener, topic)


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is truthy or ``timeout`` expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())
