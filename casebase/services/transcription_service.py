"""Builds the configured transcription clients."""

import logging
from typing import Optional

from ..config import CaseBaseConfig
from ..exceptions import ConfigurationError
from ..transcription import (
    AbstractTranscriptionBackend,
    AssemblyAIBackend,
    DeepgramPrerecordedBackend,
    StreamingTranscriptionClient,
)

logger = logging.getLogger(__name__)


class TranscriptionService:
    """Factory for turn-based backends and the streaming client."""

    def __init__(self, config: CaseBaseConfig):
        """Initialize transcription service.

        Args:
            config: Application configuration
        """
        self.config = config
        self._streaming_client: Optional[StreamingTranscriptionClient] = None

    def create_turn_based_backend(self) -> AbstractTranscriptionBackend:
        """Create the backend named by ``transcription.turn_based.provider``.

        Raises:
            ConfigurationError: Unknown provider or missing credential
        """
        provider = self.config.get('transcription.turn_based.provider', 'assemblyai')
        logger.info(f"Initializing {provider} turn-based backend...")

        if provider == 'assemblyai':
            return AssemblyAIBackend(
                api_key=self.config.get_api_key('speech_upload'),
                base_url=self.config.get('transcription.turn_based.base_url', AssemblyAIBackend.BASE_URL),
                poll_interval=self.config.get('transcription.turn_based.poll_interval_seconds', 2.0),
                max_attempts=self.config.get('transcription.turn_based.max_poll_attempts', 30),
            )
        if provider == 'deepgram':
            return DeepgramPrerecordedBackend(
                api_key=self.config.get_api_key('speech_streaming'),
                url=self.config.get('transcription.turn_based.base_url', DeepgramPrerecordedBackend.URL),
                model=self.config.get('transcription.streaming.model', 'nova-2'),
                language=self.config.get('transcription.streaming.language', 'en-US'),
            )
        raise ConfigurationError(f"Unknown turn-based transcription provider: {provider}")

    @property
    def streaming_client(self) -> StreamingTranscriptionClient:
        """Shared streaming client; a missing credential surfaces on ``start()``."""
        if self._streaming_client is None:
            try:
                api_key = self.config.get_api_key('speech_streaming')
            except ConfigurationError:
                logger.warning("No streaming speech credential configured")
                api_key = None
            self._streaming_client = StreamingTranscriptionClient(
                api_key=api_key,
                url=self.config.get('transcription.streaming.url', StreamingTranscriptionClient.URL),
                model=self.config.get('transcription.streaming.model', 'nova-2'),
                language=self.config.get('transcription.streaming.language', 'en-US'),
                endpointing_ms=self.config.get('transcription.streaming.endpointing_ms', 300),
            )
        return self._streaming_client
