"""Data models for the CaseBase application."""

from .audio import AudioStats
from .events import (
    AudioEvent,
    InterimTranscript,
    FinalTranscript,
    TranscriptError,
    TranscriptClosed,
    TranscriptEvent,
)
from .transcription import (
    JobStatus,
    StreamState,
    PollingJob,
    TranscriptionResult,
    UploadResponse,
    JobCreationResponse,
    JobStatusResponse,
)
from .chat import Role, Message
from .documents import UploadStatus, UploadKind, UploadResult, UploadedFileRecord

__all__ = [
    "AudioStats",
    "AudioEvent",
    # Live transcription events
    "InterimTranscript",
    "FinalTranscript",
    "TranscriptError",
    "TranscriptClosed",
    "TranscriptEvent",
    # Turn-based transcription
    "JobStatus",
    "StreamState",
    "PollingJob",
    "TranscriptionResult",
    "UploadResponse",
    "JobCreationResponse",
    "JobStatusResponse",
    # Chat and documents
    "Role",
    "Message",
    "UploadStatus",
    "UploadKind",
    "UploadResult",
    "UploadedFileRecord",
]
