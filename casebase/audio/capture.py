"""Microphone capture on a worker thread, fanned out over pub/sub."""

import logging
import time
from threading import Event, Lock, Thread
from typing import List, Optional

import pyaudio

from ..exceptions import InputError
from ..models.audio import AudioStats
from ..models.events import AudioEvent
from .audio_pub import AudioPublisher
from .audio_saver import encode_wav

logger = logging.getLogger(__name__)

STOP_JOIN_TIMEOUT = 2.0


class AudioCapture:
    """Reads float32 frames from the default input device and publishes each one.

    One instance corresponds to one media stream: ``channels`` is its track
    count and ``topic`` is where its frames appear. The last frame of a
    recording is published with ``final=True``.
    """

    def __init__(self,
                 publisher: AudioPublisher,
                 sample_rate: int = 16000,
                 chunk_size: int = 4096,
                 channels: int = 1,
                 keep_audio: bool = False):
        """Initialize audio capture.

        Args:
            publisher: Where captured frames are published
            sample_rate: Audio sample rate in Hz
            chunk_size: Samples per frame
            channels: Number of input channels
            keep_audio: Retain every frame so the recording can be encoded afterwards
        """
        self.publisher = publisher
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.keep_audio = keep_audio

        self.is_recording = False
        self.started_at: Optional[float] = None
        self.stopped_at: Optional[float] = None
        self.frames_read = 0
        self.audio_data: List[bytes] = []

        self._worker: Optional[Thread] = None
        self._halt = Event()
        self._lock = Lock()
        self._pa: Optional[pyaudio.PyAudio] = None

    @property
    def topic(self) -> str:
        return self.publisher.topic

    def start_recording(self) -> None:
        """Open the input device and start the worker thread.

        Raises:
            InputError: The device could not be opened (no microphone, device busy)
        """
        if self.is_recording:
            logger.warning(f"Capture on {self.topic} already running")
            return

        try:
            stream = self._open_stream()
        except OSError as e:
            logger.error(f"Could not open input device for {self.topic}: {e}")
            self._release(None)
            raise InputError(f"Could not access microphone: {e}") from e

        self._halt.clear()
        self.started_at = time.monotonic()
        self.stopped_at = None
        self.frames_read = 0
        self.clear_audio_data()

        self._worker = Thread(target=self._capture_loop, args=(stream,),
                              name=f"capture-{self.topic}", daemon=True)
        self._worker.start()
        self.is_recording = True
        logger.info(f"Capture started on {self.topic} ({self.sample_rate}Hz, {self.channels} ch)")

    def stop_recording(self) -> None:
        """Signal the worker, wait for it, and mark the capture stopped.

        Blocks for up to two seconds while the last frame is read.
        """
        if not self.is_recording:
            logger.warning(f"Capture on {self.topic} is not running")
            return

        self._halt.set()
        worker = self._worker
        if worker is not None and worker.is_alive():
            worker.join(timeout=STOP_JOIN_TIMEOUT)
            if worker.is_alive():
                logger.warning(f"Capture worker for {self.topic} did not exit in time")

        self.stopped_at = time.monotonic()
        self.is_recording = False
        logger.info(f"Capture on {self.topic} stopped: {self.frames_read} frames read, "
                    f"{self.publisher.frames_published} published")

    def _open_stream(self):
        self._pa = pyaudio.PyAudio()
        return self._pa.open(
            format=pyaudio.paFloat32,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            frames_per_buffer=self.chunk_size,
        )

    def _capture_loop(self, stream) -> None:
        try:
            final = False
            while not final:
                # One more read after the halt flag so subscribers see a final frame
                final = self._halt.is_set()
                data = stream.read(self.chunk_size, exception_on_overflow=False)
                self._emit(data, final)
        except Exception as e:
            logger.error(f"Audio capture on {self.topic} failed: {e}", exc_info=True)
        finally:
            self._release(stream)

    def _emit(self, data: bytes, final: bool) -> None:
        self.frames_read += 1
        if self.keep_audio:
            with self._lock:
                self.audio_data.append(data)

        self.publisher.publish_audio_event(AudioEvent(
            chunk_id=f"{self.topic}-{self.frames_read}",
            audio_data=data,
            timestamp=time.time(),
            sequence_number=self.frames_read,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=final,
        ))

    def _release(self, stream) -> None:
        if stream is not None:
            stream.stop_stream()
            stream.close()
        if self._pa is not None:
            self._pa.terminate()
            self._pa = None

    def to_wav_bytes(self) -> bytes:
        """Encode the retained frames as a WAV payload."""
        with self._lock:
            frames = list(self.audio_data)
        return encode_wav(frames, self.sample_rate, self.channels)

    def clear_audio_data(self) -> None:
        with self._lock:
            self.audio_data.clear()

    def get_recording_stats(self) -> AudioStats:
        """Stats of the current recording, or of the last one once stopped."""
        elapsed = 0.0
        if self.started_at is not None:
            elapsed = (self.stopped_at or time.monotonic()) - self.started_at
        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=elapsed,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
            frames_read=self.frames_read,
        )

    def __del__(self):
        if self.is_recording:
            self.stop_recording()
