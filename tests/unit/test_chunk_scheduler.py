"""Unit tests for ChunkScheduler."""

import pytest
from pathlib import Path
from unittest.mock import MagicMock

from conftest import wait_for
from meetingmind.audio.buffer import SessionAudioBuffer
from meetingmind.transcription.scheduler import ChunkScheduler

SECOND = 32000  # bytes of 16kHz mono 16-bit audio


@pytest.fixture
def buffer(temp_data_dir):
    buffer = SessionAudioBuffer(Path(temp_data_dir) / "recording.wav").open()
    yield buffer
    buffer.close()


@pytest.fixture
def on_chunk():
    return MagicMock()


def make_scheduler(buffer, on_chunk, **kwargs):
    kwargs.setdefault("interval_seconds", 60.0)
    return ChunkScheduler(buffer, "session-1", on_chunk, **kwargs)


@pytest.mark.unit
class TestChunkScheduler:

    def test_chunks_partition_the_buffer(self, buffer, on_chunk, audio_test_data):
        scheduler = make_scheduler(buffer, on_chunk)
        data = audio_test_data("noise", 12.0)

        buffer.append(data[:5 * SECOND])
        scheduler.tick()
        buffer.append(data[5 * SECOND:10 * SECOND])
        scheduler.tick()
        buffer.append(data[10 * SECOND:])
        scheduler.flush()

        chunks = [c.args[0] for c in on_chunk.call_args_list]
        assert [c.sequence for c in chunks] == [0, 1, 2]
        assert chunks[0].start == 0
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start == previous.end
        assert chunks[-1].end == len(data)
        assert b"".join(c.pcm for c in chunks) == data
        assert [c.is_final for c in chunks] == [False, False, True]
        assert scheduler.chunks_emitted == 3
        assert scheduler.emitted == [(c.sequence, c.start, c.end) for c in chunks]

    def test_chunk_times_follow_offsets(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk)
        buffer.append(b'\x00' * 5 * SECOND)
        scheduler.tick()
        buffer.append(b'\x00' * 5 * SECOND)
        second = scheduler.tick()

        assert second.start_seconds == pytest.approx(5.0)
        assert second.end_seconds == pytest.approx(10.0)
        assert second.session_id == "session-1"

    def test_small_tick_is_skipped(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk, min_new_data_bytes=20480)
        buffer.append(b'\x00' * 20000)

        assert scheduler.tick() is None
        assert scheduler.cut_pointer == 0
        on_chunk.assert_not_called()

        buffer.append(b'\x00' * 1000)
        chunk = scheduler.tick()
        assert chunk.size == 21000
        assert scheduler.cut_pointer == 21000

    def test_flush_emits_small_tail(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk)
        buffer.append(b'\x00' * 30000)
        scheduler.tick()
        buffer.append(b'\x00' * 500)

        tail = scheduler.flush()

        assert tail.size == 500
        assert tail.is_final is True
        assert tail.sequence == 1

    def test_flush_with_nothing_new(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk)
        buffer.append(b'\x00' * 30000)
        scheduler.tick()

        assert scheduler.flush() is None
        assert scheduler.chunks_emitted == 1

    def test_only_one_flush(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk)
        buffer.append(b'\x00' * 100)
        assert scheduler.flush() is not None
        buffer.append(b'\x00' * 30000)

        assert scheduler.flush() is None
        assert scheduler.tick() is None
        assert on_chunk.call_count == 1

    def test_cuts_on_frame_boundaries(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk, min_new_data_bytes=10)
        buffer.append(b'\x00' * 101)

        chunk = scheduler.tick()
        assert chunk.size == 100
        assert scheduler.cut_pointer == 100

    def test_cut_pointer_never_decreases(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk, min_new_data_bytes=1000)
        pointers = []
        for size in (500, 2000, 10, 5000, 0, 999, 1):
            buffer.append(b'\x00' * size)
            scheduler.tick()
            pointers.append(scheduler.cut_pointer)

        assert pointers == sorted(pointers)

    def test_timer_thread_ticks(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk, interval_seconds=0.05, min_new_data_bytes=100)
        scheduler.start()
        buffer.append(b'\x00' * 1000)

        assert wait_for(lambda: on_chunk.call_count >= 1)
        buffer.append(b'\x00' * 1000)
        assert wait_for(lambda: on_chunk.call_count >= 2)
        scheduler.stop(flush=False)

        assert scheduler.chunks_emitted == on_chunk.call_count

    def test_cancel_stops_ticking(self, buffer, on_chunk):
        scheduler = make_scheduler(buffer, on_chunk, interval_seconds=0.02, min_new_data_bytes=100)
        scheduler.start()
        scheduler.cancel()
        buffer.append(b'\x00' * 1000)

        assert not wait_for(lambda: on_chunk.called, timeout=0.2)
        assert scheduler.flush().size == 1000
