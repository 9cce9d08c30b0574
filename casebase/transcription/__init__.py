"""Transcription module for CaseBase."""

from .base import AbstractTranscriptionBackend
from ..models.transcription import TranscriptionResult
from .assemblyai_backend import AssemblyAIBackend
from .deepgram_backend import DeepgramPrerecordedBackend
from .streaming import StreamingTranscriptionClient, StreamingSession

__all__ = [
    "AbstractTranscriptionBackend",
    "TranscriptionResult",
    "AssemblyAIBackend",
    "DeepgramPrerecordedBackend",
    "StreamingTranscriptionClient",
    "StreamingSession",
]
