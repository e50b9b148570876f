"""Unit tests for SessionAudioBuffer."""

import wave
import threading
import pytest
from pathlib import Path

from meetingmind.audio.buffer import SessionAudioBuffer
from meetingmind.models.audio import AudioFormat


@pytest.mark.unit
class TestSessionAudioBuffer:

    def test_wav_header_matches_format(self, temp_data_dir):
        path = Path(temp_data_dir) / "session" / "recording.wav"
        buffer = SessionAudioBuffer(path).open()
        buffer.append(b'\x01\x00' * 16000)
        buffer.close()

        with wave.open(str(path), 'rb') as wf:
            assert wf.getframerate() == 16000
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getnframes() == 16000

    def test_length_grows_with_appends(self, temp_data_dir):
        buffer = SessionAudioBuffer(Path(temp_data_dir) / "a.wav").open()
        assert buffer.length == 0

        buffer.append(b'\x00' * 3200)
        buffer.append(b'')
        buffer.append(b'\x00' * 1600)

        assert buffer.length == 4800
        assert buffer.duration_seconds == pytest.approx(0.15)
        buffer.close()

    def test_read_returns_appended_bytes_while_open(self, temp_data_dir, audio_test_data):
        buffer = SessionAudioBuffer(Path(temp_data_dir) / "a.wav").open()
        first = audio_test_data("sine", 0.5)
        second = audio_test_data("noise", 0.5)
        buffer.append(first)
        buffer.append(second)

        assert buffer.read(0, len(first)) == first
        assert buffer.read(len(first), buffer.length) == second
        assert buffer.read(10, 10) == b""
        buffer.close()

    def test_read_still_works_after_close(self, temp_data_dir, audio_test_data):
        buffer = SessionAudioBuffer(Path(temp_data_dir) / "a.wav").open()
        data = audio_test_data("sine", 0.25)
        buffer.append(data)
        buffer.close()

        assert buffer.closed is True
        assert buffer.read(0, buffer.length) == data

    def test_read_beyond_length_is_rejected(self, temp_data_dir):
        buffer = SessionAudioBuffer(Path(temp_data_dir) / "a.wav").open()
        buffer.append(b'\x00' * 100)

        with pytest.raises(ValueError):
            buffer.read(0, 101)
        with pytest.raises(ValueError):
            buffer.read(50, 10)
        with pytest.raises(ValueError):
            buffer.read(-2, 10)
        buffer.close()

    def test_append_after_close_raises(self, temp_data_dir):
        buffer = SessionAudioBuffer(Path(temp_data_dir) / "a.wav").open()
        buffer.close()
        with pytest.raises(ValueError):
            buffer.append(b'\x00\x00')

    def test_close_is_idempotent(self, temp_data_dir):
        buffer = SessionAudioBuffer(Path(temp_data_dir) / "a.wav").open()
        buffer.close()
        buffer.close()
        assert buffer.closed

    def test_concurrent_reader_sees_prefix(self, temp_data_dir):
        """A reader that observes length n can always read [0, n)."""
        buffer = SessionAudioBuffer(Path(temp_data_dir) / "a.wav").open()
        block = bytes(range(256)) * 8
        errors = []
        done = threading.Event()

        def reader():
            while not done.is_set():
                n = buffer.length
                try:
                    data = buffer.read(0, n)
                except (ValueError, IOError) as e:
                    errors.append(e)
                    return
                if data != (block * (n // len(block) + 1))[:n]:
                    errors.append(AssertionError(f"mismatch at length {n}"))
                    return

        thread = threading.Thread(target=reader)
        thread.start()
        for _ in range(200):
            buffer.append(block)
        done.set()
        thread.join()
        buffer.close()

        assert errors == []
        assert buffer.length == 200 * len(block)

    def test_custom_format(self, temp_data_dir):
        audio_format = AudioFormat(sample_rate=8000, channels=2)
        path = Path(temp_data_dir) / "stereo.wav"
        buffer = SessionAudioBuffer(path, audio_format).open()
        buffer.append(b'\x00' * 32000)
        buffer.close()

        assert buffer.duration_seconds == pytest.approx(1.0)
        with wave.open(str(path), 'rb') as wf:
            assert wf.getnchannels() == 2
            assert wf.getframerate() == 8000
