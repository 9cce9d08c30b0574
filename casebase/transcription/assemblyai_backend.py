"""Upload-then-poll transcription against the AssemblyAI v2 API."""

import asyncio
import time
import logging
from typing import Type

import aiohttp
from pydantic import BaseModel, ValidationError

from .base import AbstractTranscriptionBackend
from ..exceptions import (
    ConfigurationError,
    JobCreationError,
    NetworkError,
    PollError,
    PollTimeoutError,
    RemoteServiceError,
    TranscriptionError,
    UploadError,
)
from ..models.transcription import (
    JobCreationResponse,
    JobStatus,
    JobStatusResponse,
    PollingJob,
    TranscriptionResult,
    UploadResponse,
)

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPT_WARNING = "Transcription completed but no text was detected"


class AssemblyAIBackend(AbstractTranscriptionBackend):
    """Turn-based transcription client.

    The protocol is strictly sequential: upload the payload, create a job
    referencing it, then poll the job every ``poll_interval`` seconds for at
    most ``max_attempts`` reads. Cancelling the task that runs
    :meth:`upload_then_transcribe` stops polling at the next await.
    """

    service_name = "AssemblyAI"
    BASE_URL = "https://api.assemblyai.com/v2"

    def __init__(self,
                 api_key: str,
                 base_url: str = BASE_URL,
                 poll_interval: float = 2.0,
                 max_attempts: int = 30,
                 request_timeout: float = 30.0):
        """Initialize AssemblyAI backend.

        Args:
            api_key: AssemblyAI API key
            base_url: API root, overridable for tests and proxies
            poll_interval: Seconds between job status reads
            max_attempts: Job status reads before giving up
            request_timeout: Per-request timeout in seconds
        """
        super().__init__(language="auto")
        if not api_key:
            raise ConfigurationError("AssemblyAI API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)

    @property
    def _headers(self):
        return {"authorization": self.api_key}

    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> TranscriptionResult:
        return await self.upload_then_transcribe(audio)

    async def upload_then_transcribe(self, audio: bytes) -> TranscriptionResult:
        """Run the full upload, job creation and polling sequence.

        Raises:
            UploadError, JobCreationError, PollError: Remote step failed
            TranscriptionError: The job finished in the ``error`` state
            PollTimeoutError: No terminal state after ``max_attempts`` polls
            NetworkError: Transport failure on any step
        """
        start_time = time.time()
        logger.info(f"Starting turn-based transcription of {len(audio)} bytes")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                upload_url = await self.upload(session, audio)
                job = await self.create_job(session, upload_url)
                result = await self.poll(session, job)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error during transcription: {e}")
            raise NetworkError(f"Transcription request failed: {e}") from e

        result.processing_time = time.time() - start_time
        return result

    async def upload(self, session: aiohttp.ClientSession, audio: bytes) -> str:
        """Upload the raw payload and return the storage reference."""
        headers = dict(self._headers, **{"Content-Type": "application/octet-stream"})
        async with session.post(f"{self.base_url}/upload", headers=headers, data=audio) as response:
            body = await self._parse(response, UploadResponse, UploadError, "Upload")

        logger.debug(f"Audio uploaded: {body.upload_url}")
        return body.upload_url

    async def create_job(self, session: aiohttp.ClientSession, upload_url: str) -> PollingJob:
        """Request a transcript for a previously uploaded payload."""
        payload = {
            "audio_url": upload_url,
            "language_detection": True,
            "punctuate": True,
            "format_text": True,
            "speaker_labels": True,
        }
        async with session.post(f"{self.base_url}/transcript", headers=self._headers, json=payload) as response:
            body = await self._parse(response, JobCreationResponse, JobCreationError, "Transcript request")

        if not body.id:
            logger.error(f"Transcript response missing id: {body}")
            raise JobCreationError("Transcript response missing id", status=response.status)

        logger.info(f"Transcription job created: {body.id}")
        return PollingJob(job_id=body.id, status=JobStatus.parse(body.status or JobStatus.QUEUED.value))

    async def poll(self, session: aiohttp.ClientSession, job: PollingJob) -> TranscriptionResult:
        """Poll ``job`` until it completes, fails, or the attempt budget runs out."""
        polling_url = f"{self.base_url}/transcript/{job.job_id}"
        try:
            while job.attempts < self.max_attempts:
                job.attempts += 1
                logger.debug(f"Polling attempt {job.attempts}/{self.max_attempts} for {job.job_id}")

                async with session.get(polling_url, headers=self._headers) as response:
                    status = await self._parse(response, JobStatusResponse, PollError, "Polling request")

                job.status = JobStatus.parse(status.status)
                if job.is_terminal:
                    return self._finished_result(job, status)

                if job.attempts < self.max_attempts:
                    await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            logger.info(f"Polling of {job.job_id} cancelled after {job.attempts} attempts")
            raise

        logger.error(f"Polling timeout for job {job.job_id} after {job.attempts} attempts")
        raise PollTimeoutError(job.job_id, job.attempts)

    def _finished_result(self, job: PollingJob, status: JobStatusResponse) -> TranscriptionResult:
        if job.status is JobStatus.ERROR:
            detail = status.error or "Transcription error"
            logger.error(f"Transcription job {job.job_id} failed: {detail}")
            raise TranscriptionError(detail, job_id=job.job_id)

        job.result_text = status.text or ""
        job.confidence = status.confidence
        result = TranscriptionResult(
            text=job.result_text,
            service=self.service_name,
            confidence=status.confidence,
            audio_duration=status.audio_duration,
            job_id=job.job_id,
        )
        if result.is_empty:
            # Word data helps explain why nothing was recognized
            logger.warning(f"Job {job.job_id}: {EMPTY_TRANSCRIPT_WARNING}")
            result.text = ""
            result.warning = EMPTY_TRANSCRIPT_WARNING
            result.words = status.words or []
        else:
            logger.info(f"Job {job.job_id} completed after {job.attempts} polls "
                        f"({len(result.text)} chars)")
        return result

    @staticmethod
    async def _parse(response: aiohttp.ClientResponse,
                     model: Type[BaseModel],
                     error_cls: Type[RemoteServiceError],
                     step: str):
        raw = await response.read()
        text = raw.decode("utf-8", errors="replace")
        if not 200 <= response.status < 300:
            message = f"{step} failed with status {response.status}: {text}"
            logger.error(message)
            raise error_cls(message, status=response.status, body=text)
        try:
            return model.model_validate_json(raw.decode("utf-8"))
        except (ValidationError, UnicodeDecodeError) as e:
            logger.error(f"Failed to parse {step.lower()} response: {text!r}")
            raise error_cls(f"Failed to parse {step.lower()} response: {e}",
                            status=response.status, body=text) from e

    async def cleanup(self) -> None:
        """Sessions are per call; nothing to release."""
        pass

