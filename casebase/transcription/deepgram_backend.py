"""Single-request transcription with Deepgram's prerecorded endpoint."""

import asyncio
import time
import logging
from typing import List, Optional

import aiohttp
from pydantic import BaseModel, ConfigDict, ValidationError

from .base import AbstractTranscriptionBackend
from ..exceptions import ConfigurationError, NetworkError, TranscriptionError
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class _Alternative(BaseModel):
    model_config = ConfigDict(extra="ignore")

    transcript: str = ""
    confidence: float = 0.0


class _Channel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    alternatives: List[_Alternative] = []


class _Results(BaseModel):
    model_config = ConfigDict(extra="ignore")

    channels: List[_Channel] = []


class _Metadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    duration: Optional[float] = None


class PrerecordedResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: Optional[_Results] = None
    metadata: Optional[_Metadata] = None


class DeepgramPrerecordedBackend(AbstractTranscriptionBackend):
    """Posts the whole recording in one request; no job polling."""

    service_name = "Deepgram"
    URL = "https://api.deepgram.com/v1/listen"

    def __init__(self,
                 api_key: str,
                 url: str = URL,
                 model: str = "nova-2",
                 language: str = "en-US",
                 request_timeout: float = 30.0):
        super().__init__(language)
        if not api_key:
            raise ConfigurationError("Deepgram API key is required")
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)

    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> TranscriptionResult:
        start_time = time.time()
        params = {"model": self.model, "language": self.language, "smart_format": "true"}
        headers = {"Authorization": f"Token {self.api_key}", "Content-Type": mime_type}

        logger.info(f"Processing audio file: type={mime_type}, size={len(audio)}")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, params=params, headers=headers, data=audio) as response:
                    raw = await response.read()
                    status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Network error talking to Deepgram: {e}")
            raise NetworkError(f"Deepgram request failed: {e}") from e

        text = raw.decode("utf-8", errors="replace")
        if not 200 <= status < 300:
            logger.error(f"Deepgram returned {status}: {text}")
            raise TranscriptionError(f"Deepgram returned status {status}", status=status, body=text)

        try:
            body = PrerecordedResponse.model_validate_json(raw.decode("utf-8"))
        except (ValidationError, UnicodeDecodeError) as e:
            raise TranscriptionError(f"Unparsable Deepgram response: {e}", status=status, body=text) from e

        transcript, confidence = "", 0.0
        if body.results and body.results.channels and body.results.channels[0].alternatives:
            alternative = body.results.channels[0].alternatives[0]
            transcript, confidence = alternative.transcript, alternative.confidence
        else:
            logger.warning(f"Unexpected response structure from Deepgram: {text[:200]}")

        result = TranscriptionResult(
            text=transcript,
            service=self.service_name,
            confidence=confidence,
            audio_duration=body.metadata.duration if body.metadata else None,
            processing_time=time.time() - start_time,
        )
        if result.is_empty:
            logger.warning("Received empty transcript from Deepgram")
            result.warning = "Transcription completed but no text was detected"
        return result

    async def cleanup(self) -> None:
        pass
