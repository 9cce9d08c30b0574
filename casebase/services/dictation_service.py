"""Voice input for one chat input control: capture, level metering, transcription."""

import asyncio
import itertools
import logging
from typing import Callable, List, Optional

from pubsub import pub

from ..audio import AudioCapture, AudioPublisher, EnergyAnalyzer, SilenceDetector, Signal
from ..audio.pcm import bytes_to_float32
from ..config import CaseBaseConfig
from ..exceptions import CaseBaseError, InputError
from ..models.audio import AudioStats
from ..models.events import AudioEvent
from ..transcription import StreamingSession
from .transcription_service import TranscriptionService

logger = logging.getLogger(__name__)

_input_ids = itertools.count(1)


class DictationService:
    """Owns at most one recording at a time.

    Starting a recording while another is active first stops the old one,
    releasing the microphone and the streaming connection before new ones
    are acquired.
    """

    def __init__(self,
                 config: CaseBaseConfig,
                 transcription_service: TranscriptionService,
                 on_transcript: Optional[Callable[[str], None]] = None,
                 on_status: Optional[Callable[[str], None]] = None,
                 on_levels: Optional[Callable[[List[float]], None]] = None,
                 on_auto_stop: Optional[Callable[[], None]] = None):
        """Initialize dictation service.

        Args:
            config: Application configuration
            transcription_service: Source of transcription clients
            on_transcript: Receives the final transcript of each recording
            on_status: Receives live preview text and status messages
            on_levels: Receives the meter vector for every captured frame
            on_auto_stop: Called on the event loop when silence ends a recording
        """
        self.config = config
        self.transcription_service = transcription_service
        self.on_transcript = on_transcript
        self.on_status = on_status
        self.on_levels = on_levels
        self.on_auto_stop = on_auto_stop

        self.mode = config.get('dictation.mode', 'streaming')
        self.sample_rate = config.get('audio.sample_rate', 16000)
        self.chunk_size = config.get('audio.chunk_size', 4096)
        self.channels = config.get('audio.channels', 1)
        self.topic = f"audio_frames_{next(_input_ids)}"

        self.analyzer = EnergyAnalyzer()
        self.detector = SilenceDetector(
            threshold=config.get('silence.threshold', 0.05),
            duration_ms=config.get('silence.duration_ms', 2000),
        )
        self.auto_stop = config.get('silence.auto_stop', True)

        self.capture: Optional[AudioCapture] = None
        self.session: Optional[StreamingSession] = None
        self.last_recording: Optional[AudioStats] = None
        self.is_recording = False
        self.status = ""
        self.levels: List[float] = [0.0] * self.analyzer.level_count

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._silence_stop: Optional[asyncio.Task] = None
        self._subscribed = False

    async def start_recording(self) -> bool:
        """Start a new recording, tearing down any active one first.

        Returns:
            True if recording started; otherwise ``status`` says why not
        """
        if self.is_recording:
            logger.info("Recording already active, stopping it first")
            await self.stop_recording()

        self._loop = asyncio.get_running_loop()
        capture = AudioCapture(
            AudioPublisher(self.topic),
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
            keep_audio=self.mode == 'turn_based',
        )

        if self.mode == 'streaming':
            try:
                self.session = await self.transcription_service.streaming_client.start(
                    capture, on_update=self._set_status
                )
            except CaseBaseError as e:
                logger.error(f"Could not start live transcription: {e}")
                self._set_status(f"Could not start transcription: {e}")
                return False

        pub.subscribe(self.on_audio_event, self.topic)
        self._subscribed = True
        self.detector.start()
        try:
            capture.start_recording()
        except InputError as e:
            await self._abandon_start()
            self._set_status(str(e))
            return False

        self.capture = capture
        self.is_recording = True
        self._set_status("Listening...")
        return True

    async def _abandon_start(self) -> None:
        self.detector.reset()
        pub.unsubscribe(self.on_audio_event, self.topic)
        self._subscribed = False
        session, self.session = self.session, None
        if session is not None:
            try:
                await session.stop()
            except CaseBaseError as e:
                logger.error(f"Closing live transcription failed: {e}")

    def on_audio_event(self, event: AudioEvent) -> None:
        """Meter the frame and run silence detection; called on the capture thread."""
        channels = max(event.channels, 1)
        samples = bytes_to_float32(event.audio_data)[::channels]
        bins = self.analyzer.frequency_bins(samples)
        energy = self.analyzer.sample(bins)
        self.levels = self.analyzer.levels(bins)
        if self.on_levels is not None:
            self.on_levels(self.levels)

        if not self.auto_stop:
            return
        if self.detector.observe(energy, event.timestamp * 1000.0) is Signal.STOP:
            logger.info("Silence detected, stopping recording")
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._stop_after_silence)

    def _stop_after_silence(self) -> None:
        if self.is_recording and self._silence_stop is None:
            self._silence_stop = asyncio.ensure_future(self.stop_recording())
            if self.on_auto_stop is not None:
                self.on_auto_stop()

    async def stop_recording(self) -> str:
        """Stop the active recording and return its transcript ("" on failure)."""
        if not self.is_recording:
            pending = self._silence_stop
            if pending is not None and pending is not asyncio.current_task():
                # A silence-triggered stop is already finishing this recording
                return await asyncio.shield(pending)
            return ""

        self.is_recording = False
        self.detector.reset()
        if self._subscribed:
            pub.unsubscribe(self.on_audio_event, self.topic)
            self._subscribed = False

        capture, self.capture = self.capture, None
        session, self.session = self.session, None
        if capture is not None:
            # Joining the capture thread blocks for up to a couple of seconds
            await asyncio.get_running_loop().run_in_executor(None, capture.stop_recording)
            self.last_recording = capture.get_recording_stats()
            logger.info(f"Recorded {self.last_recording.duration_seconds:.1f}s "
                        f"in {self.last_recording.frames_read} frames")

        try:
            if session is not None:
                transcript = await session.stop()
            else:
                transcript = await self._transcribe_recording(capture)
        except CaseBaseError as e:
            logger.error(f"Transcription failed: {e}")
            self._set_status(f"Transcription failed: {e}")
            transcript = ""
        finally:
            self._silence_stop = None

        if transcript:
            self._set_status("")
            if self.on_transcript is not None:
                self.on_transcript(transcript)
        return transcript

    async def _transcribe_recording(self, capture: Optional[AudioCapture]) -> str:
        if capture is None or not capture.audio_data:
            logger.warning("Nothing was recorded")
            return ""

        self._set_status("Transcribing...")
        backend = self.transcription_service.create_turn_based_backend()
        try:
            result = await backend.transcribe(capture.to_wav_bytes(), mime_type="audio/wav")
        finally:
            await backend.cleanup()

        if result.warning:
            self._set_status(result.warning)
        return result.text

    async def shutdown(self) -> None:
        await self.stop_recording()

    def _set_status(self, text: str) -> None:
        self.status = text
        if self.on_status is not None:
            self.on_status(text)
