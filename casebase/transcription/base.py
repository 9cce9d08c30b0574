"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
import logging

from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class AbstractTranscriptionBackend(ABC):
    """Turn-based backend: one complete recording in, one transcript out."""

    service_name = "unknown"

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> TranscriptionResult:
        """Transcribe a complete recording.

        Args:
            audio: Encoded audio payload (WAV, WebM, ...)
            mime_type: Content type of ``audio``

        Returns:
            TranscriptionResult with transcription and metadata
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
