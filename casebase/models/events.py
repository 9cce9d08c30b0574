"""Event models for audio fan-out and live transcription."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass
class AudioEvent:
    """Captured audio frame with metadata.

    ``audio_data`` holds little-endian float32 samples in [-1, 1].
    """
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when the frame was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None
    final: bool = False  # True for the last frame of a recording

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data and self.channels:
            # float32 audio, 4 bytes per sample
            bytes_per_second = self.sample_rate * self.channels * 4
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass(frozen=True)
class InterimTranscript:
    """Provisional text; replaces the previous interim text."""
    text: str


@dataclass(frozen=True)
class FinalTranscript:
    """Committed text segment; appended to the session transcript."""
    text: str


@dataclass(frozen=True)
class TranscriptError:
    """The streaming service reported an error."""
    detail: str


@dataclass(frozen=True)
class TranscriptClosed:
    """The session ended; carries the accumulated final transcript."""
    transcript: str


TranscriptEvent = Union[InterimTranscript, FinalTranscript, TranscriptError, TranscriptClosed]
