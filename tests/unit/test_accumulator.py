"""Unit tests for TranscriptAccumulator."""

import pytest

from meetingmind.models.transcription import TranscriptSegment
from meetingmind.transcription.accumulator import TranscriptAccumulator


def seg(text, start=0.0, sequence=None):
    return TranscriptSegment(text=text, start_seconds=start, end_seconds=start + 1.0,
                             confidence=0.9, sequence=sequence)


@pytest.fixture
def accumulator():
    return TranscriptAccumulator("session-1")


@pytest.mark.unit
class TestTranscriptAccumulator:

    def test_in_order_results(self, accumulator):
        assert accumulator.append(0, [seg("hello")]) is True
        assert accumulator.append(1, [seg("world")]) is True
        assert accumulator.current_text() == "hello world"
        assert accumulator.resolved_count == 2

    def test_out_of_order_results_wait_for_gap(self, accumulator):
        """Later chunks stay hidden until every earlier chunk resolves."""
        assert accumulator.append(2, [seg("C")]) is False
        assert accumulator.append(1, [seg("B")]) is False
        assert accumulator.current_text() == ""
        assert accumulator.pending_sequences() == [1, 2]

        assert accumulator.append(0, [seg("A")]) is True
        assert accumulator.current_text() == "A B C"
        assert accumulator.pending_sequences() == []

    def test_visible_text_only_grows_at_the_end(self, accumulator):
        seen = []
        for sequence in (3, 1, 0, 4, 2, 5):
            accumulator.append(sequence, [seg(f"s{sequence}")])
            seen.append(accumulator.current_text())

        for previous, current in zip(seen, seen[1:]):
            assert current.startswith(previous)
        assert seen[-1] == "s0 s1 s2 s3 s4 s5"

    def test_empty_result_resolves_gap(self, accumulator):
        accumulator.append(1, [seg("second")])
        assert accumulator.append(0, []) is True
        assert accumulator.current_text() == "second"

    def test_silence_only_does_not_change_text(self, accumulator):
        assert accumulator.append(0, []) is False
        assert accumulator.append(1, [seg("   ")]) is False
        assert accumulator.resolved_count == 2
        assert accumulator.current_text() == ""

    def test_duplicate_keeps_first_result(self, accumulator):
        accumulator.append(0, [seg("first")])
        assert accumulator.append(0, [seg("again")]) is False
        assert accumulator.current_text() == "first"

    def test_freeze_fills_missing_chunks(self, accumulator):
        accumulator.append(0, [seg("A")])
        accumulator.append(2, [seg("C")])

        text = accumulator.freeze(expected_count=4)

        assert text == "A C"
        assert accumulator.is_frozen
        assert accumulator.current_text() == "A C"

    def test_append_after_freeze_is_ignored(self, accumulator):
        accumulator.append(0, [seg("A")])
        accumulator.freeze(1)

        assert accumulator.append(1, [seg("late")]) is False
        assert accumulator.current_text() == "A"
        assert accumulator.freeze(2) == "A"

    def test_segments_follow_sequence_order(self, accumulator):
        accumulator.append(1, [seg("B", 5.0)])
        accumulator.append(0, [seg("A1", 0.0), seg("A2", 2.5)])

        assert [s.text for s in accumulator.segments()] == ["A1", "A2", "B"]

    def test_frozen_segments_include_buffered(self, accumulator):
        accumulator.append(1, [seg("B")])
        accumulator.freeze(2)
        assert [s.text for s in accumulator.segments()] == ["B"]

    def test_reset(self, accumulator):
        accumulator.append(0, [seg("old")])
        accumulator.freeze()

        accumulator.reset("session-2")

        assert accumulator.session_id == "session-2"
        assert accumulator.is_frozen is False
        assert accumulator.current_text() == ""
        assert accumulator.append(0, [seg("new")]) is True

    def test_text_is_whitespace_normalized(self, accumulator):
        accumulator.append(0, [seg("  Hello there. ")])
        accumulator.append(1, [seg("General Kenobi.  ")])
        assert accumulator.current_text() == "Hello there. General Kenobi."
