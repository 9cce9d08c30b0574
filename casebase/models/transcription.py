"""Transcription-related data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict


class JobStatus(Enum):
    """Remote transcription job status."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Optional[str]) -> "JobStatus":
        """Unknown statuses are treated as still processing."""
        try:
            return cls(value)
        except ValueError:
            return cls.PROCESSING


class StreamState(Enum):
    """Lifecycle of a streaming transcription session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERROR = "error"


@dataclass
class PollingJob:
    """A turn-based transcription job, advanced only by polling reads."""
    job_id: str
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    result_text: Optional[str] = None
    confidence: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.ERROR)


@dataclass
class TranscriptionResult:
    """Result of a transcription operation."""
    text: str
    service: str
    confidence: Optional[float] = None
    audio_duration: Optional[float] = None
    processing_time: float = 0.0
    job_id: Optional[str] = None
    # Populated only when a completed job produced no text
    words: List[Dict[str, Any]] = field(default_factory=list)
    warning: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class UploadResponse(BaseModel):
    """Body returned by the speech upload endpoint."""
    model_config = ConfigDict(extra="ignore")

    upload_url: str


class JobCreationResponse(BaseModel):
    """Body returned when a transcription job is created."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    status: Optional[str] = None


class JobStatusResponse(BaseModel):
    """Body returned by the job polling endpoint."""
    model_config = ConfigDict(extra="ignore")

    status: str
    text: Optional[str] = None
    confidence: Optional[float] = None
    audio_duration: Optional[float] = None
    words: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None
