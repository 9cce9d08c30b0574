"""Error taxonomy shared by every CaseBase component."""

from typing import Optional


class CaseBaseError(Exception):
    """Base class for all CaseBase errors."""


class ConfigurationError(CaseBaseError):
    """A required setting or credential is missing."""


class InputError(CaseBaseError):
    """The caller supplied unusable input (e.g. an audio source with no tracks)."""


class NetworkError(CaseBaseError):
    """Transport-level failure talking to a remote service."""


class RemoteServiceError(CaseBaseError):
    """A remote service answered, but not with what we expected."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class UploadError(RemoteServiceError):
    """Uploading audio to the speech service failed."""


class JobCreationError(RemoteServiceError):
    """Creating a transcription job failed."""


class PollError(RemoteServiceError):
    """A job status request failed."""


class TranscriptionError(RemoteServiceError):
    """The speech service reported that the job itself failed."""

    def __init__(self, detail: str, job_id: Optional[str] = None, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(f"Transcription failed: {detail}", status=status, body=body)
        self.detail = detail
        self.job_id = job_id


class PollTimeoutError(RemoteServiceError):
    """The job did not reach a terminal state within the polling budget."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(f"Polling timeout - transcription {job_id} took too long ({attempts} attempts)")
        self.job_id = job_id
        self.attempts = attempts


class CompletionError(RemoteServiceError):
    """The completion backend rejected the request or returned garbage."""


class DocumentUploadError(RemoteServiceError):
    """The document upload endpoint rejected a file."""
