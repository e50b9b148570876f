"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    bytes_written: int
    sample_rate: int
    chunk_size: int
    total_frames: int


@dataclass(frozen=True)
class AudioFormat:
    """PCM layout shared by the working buffer, chunks and engines."""
    sample_rate: int = 16000
    channels: int = 1
    sample_width: int = 2  # bytes per sample (16-bit)

    @property
    def block_align(self) -> int:
        return self.channels * self.sample_width

    @property
    def bytes_per_second(self) -> int:
        return self.sample_rate * self.block_align

    def seconds(self, byte_count: int) -> float:
        """Convert a PCM byte count to seconds of audio."""
        return byte_count / self.bytes_per_second
