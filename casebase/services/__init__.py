"""Services layer for CaseBase application logic."""

from .transcription_service import TranscriptionService
from .dictation_service import DictationService

__all__ = [
    "TranscriptionService",
    "DictationService",
]
