"""Live transcription over a Deepgram-style websocket."""

import asyncio
import json
import logging
import urllib.parse
from typing import AsyncIterator, Callable, Optional

import aiohttp
from pubsub import pub

from ..audio.pcm import bytes_to_float32, float_to_int16, is_silent
from ..exceptions import ConfigurationError, InputError, NetworkError
from ..models.events import (
    AudioEvent,
    FinalTranscript,
    InterimTranscript,
    TranscriptClosed,
    TranscriptError,
    TranscriptEvent,
)
from ..models.transcription import StreamState

logger = logging.getLogger(__name__)

CLOSE_STREAM_MESSAGE = json.dumps({"type": "CloseStream"})
ERROR_STATUS_TEXT = "Transcription error occurred"


class StreamingSession:
    """One recording gesture: a websocket, a frame sender and a transcript.

    Created by :meth:`StreamingTranscriptionClient.start`; ended by
    :meth:`stop` or by the remote side closing the connection. A session is
    never reused.
    """

    def __init__(self,
                 client: "StreamingTranscriptionClient",
                 source,
                 on_update: Optional[Callable[[str], None]] = None,
                 on_complete: Optional[Callable[[str], None]] = None):
        self.client = client
        self.source = source
        self.on_update = on_update
        self.on_complete = on_complete

        self.state = StreamState.IDLE
        self.transcript = ""
        self.interim = ""
        self.frames_sent = 0
        self.frames_skipped = 0

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._http: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._frames: asyncio.Queue = asyncio.Queue()
        self._events: asyncio.Queue = asyncio.Queue()
        self._sender_task: Optional[asyncio.Task] = None
        self._receiver_task: Optional[asyncio.Task] = None
        self._subscribed = False
        self._stopping = False
        self._completed = False

    @property
    def is_active(self) -> bool:
        return self.state in (StreamState.CONNECTING, StreamState.OPEN, StreamState.ERROR)

    async def open(self) -> None:
        """Connect, then start forwarding frames and reading events."""
        self.state = StreamState.CONNECTING
        self._loop = asyncio.get_running_loop()
        self._http = aiohttp.ClientSession()
        url = self.client.build_url(self.source.sample_rate)
        try:
            self._ws = await asyncio.wait_for(
                self._http.ws_connect(url, headers=self.client.headers),
                self.client.connect_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.state = StreamState.ERROR
            await self._http.close()
            self._http = None
            logger.error(f"Could not open streaming connection: {e}")
            raise NetworkError(f"Streaming connection failed: {e}") from e

        self.state = StreamState.OPEN
        logger.info("Streaming transcription connection established")

        pub.subscribe(self.on_audio_event, self.source.topic)
        self._subscribed = True
        self._sender_task = asyncio.create_task(self._send_frames())
        self._receiver_task = asyncio.create_task(self._receive_events())

    def on_audio_event(self, event: AudioEvent) -> None:
        """Pub/sub listener; may be called from the capture thread."""
        if self.state is not StreamState.OPEN or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._frames.put_nowait, event.audio_data)
        except RuntimeError:
            # Event loop already closed; the session is being torn down
            logger.debug("Dropping audio frame, event loop is closed")

    async def _send_frames(self) -> None:
        channels = max(int(self.source.channels), 1)
        while True:
            audio_data = await self._frames.get()
            if self.state is not StreamState.OPEN:
                continue
            # First channel only, matching the mono stream we announce
            pcm = float_to_int16(bytes_to_float32(audio_data)[::channels])
            if is_silent(pcm):
                self.frames_skipped += 1
                continue
            try:
                await self._ws.send_bytes(pcm.tobytes())
            except (aiohttp.ClientError, ConnectionResetError) as e:
                self._fail(f"Failed to send audio: {e}")
                return
            self.frames_sent += 1

    async def _receive_events(self) -> None:
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                self._handle_message(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                self._fail(f"Connection error: {self._ws.exception()}")
                break

        logger.info("Streaming transcription connection closed")
        if not self._stopping:
            self._stopping = True
            await self._release(graceful=False)
            self._complete()

    def _handle_message(self, raw: str) -> None:
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring non-JSON message: {raw[:200]!r}")
            return

        message_type = data.get("type")
        if message_type == "Results":
            alternatives = (data.get("channel") or {}).get("alternatives") or []
            if not alternatives:
                logger.warning(f"Received transcript data without alternatives: {data}")
                return
            text = alternatives[0].get("transcript", "")
            if data.get("is_final"):
                if text.strip():
                    self.transcript += (" " if self.transcript else "") + text
                self.interim = ""
                logger.debug(f"Accumulated transcription: {self.transcript!r}")
                self._emit(FinalTranscript(text))
                self._notify(self.transcript)
            else:
                self.interim = text
                self._emit(InterimTranscript(text))
                self._notify(text)
        elif message_type == "Error" or "error" in data:
            detail = data.get("description") or data.get("message") or data.get("error") or "unknown error"
            self._fail(str(detail))
        else:
            logger.debug(f"Ignoring {message_type} message")

    def _fail(self, detail: str) -> None:
        logger.error(f"Streaming transcription error: {detail}")
        self.state = StreamState.ERROR
        self._emit(TranscriptError(detail))
        self._notify(ERROR_STATUS_TEXT)

    def _emit(self, event: TranscriptEvent) -> None:
        self._events.put_nowait(event)

    def _notify(self, text: str) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(text)
        except Exception:
            logger.exception("Transcript update callback failed")

    async def stop(self) -> str:
        """Tear the session down and return the accumulated transcript.

        Calling it again, or on a session that never opened, returns "".
        """
        if self.state in (StreamState.IDLE, StreamState.CLOSED) or self._stopping:
            return ""

        logger.info("Stopping transcription...")
        self._stopping = True
        await self._release(graceful=self.state is StreamState.OPEN)
        return self._complete()

    async def _release(self, graceful: bool) -> None:
        current = asyncio.current_task()

        if self._subscribed:
            pub.unsubscribe(self.on_audio_event, self.source.topic)
            self._subscribed = False

        tasks = [t for t in (self._sender_task, self._receiver_task) if t and t is not current]

        if self._sender_task and self._sender_task is not current:
            self._sender_task.cancel()

        if graceful and self._ws is not None and not self._ws.closed:
            # Ask the service to flush its final results before we hang up
            try:
                await self._ws.send_str(CLOSE_STREAM_MESSAGE)
            except (aiohttp.ClientError, ConnectionResetError) as e:
                logger.warning(f"Could not send close message: {e}")
            receiver = self._receiver_task
            if receiver and receiver is not current and not receiver.done():
                try:
                    await asyncio.wait_for(asyncio.shield(receiver), self.client.close_timeout)
                except asyncio.TimeoutError:
                    logger.warning("Streaming service did not close in time")

        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._ws is not None:
            await self._ws.close()
        if self._http is not None:
            await self._http.close()
            self._http = None

    def _complete(self) -> str:
        transcript = self.transcript
        self.state = StreamState.CLOSED
        if not self._completed:
            self._completed = True
            logger.info(f"Transcription stopped, final text: {transcript!r}")
            self._emit(TranscriptClosed(transcript))
            if self.on_complete is not None:
                try:
                    self.on_complete(transcript)
                except Exception:
                    logger.exception("Transcript completion callback failed")
        return transcript

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        """Transcript events in arrival order, ending with TranscriptClosed."""
        while True:
            event = await self._events.get()
            yield event
            if isinstance(event, TranscriptClosed):
                return


class StreamingTranscriptionClient:
    """Opens :class:`StreamingSession` objects against the live endpoint."""

    URL = "wss://api.deepgram.com/v1/listen"

    def __init__(self,
                 api_key: Optional[str],
                 url: str = URL,
                 model: str = "nova-2",
                 language: str = "en-US",
                 endpointing_ms: int = 300,
                 connect_timeout: float = 10.0,
                 close_timeout: float = 2.0):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.language = language
        self.endpointing_ms = endpointing_ms
        self.connect_timeout = connect_timeout
        self.close_timeout = close_timeout

    @property
    def headers(self):
        return {"Authorization": f"Token {self.api_key}"}

    def build_url(self, sample_rate: int) -> str:
        params = {
            "model": self.model,
            "language": self.language,
            "encoding": "linear16",
            "sample_rate": str(sample_rate),
            "channels": "1",
            "interim_results": "true",
            "punctuate": "true",
            "smart_format": "true",
            "endpointing": str(self.endpointing_ms),
        }
        return f"{self.url}?{urllib.parse.urlencode(params)}"

    async def start(self,
                    source,
                    on_update: Optional[Callable[[str], None]] = None,
                    on_complete: Optional[Callable[[str], None]] = None) -> StreamingSession:
        """Open a session fed by ``source``.

        Args:
            source: Anything with ``topic``, ``channels`` and ``sample_rate``
                (normally an :class:`~casebase.audio.AudioCapture`)
            on_update: Called with the best current text on every transcript event
            on_complete: Called once with the final transcript when the session ends

        Raises:
            ConfigurationError: No streaming credential
            InputError: ``source`` has no audio channels
            NetworkError: The connection could not be opened
        """
        if not self.api_key:
            logger.error("Missing streaming speech API key")
            raise ConfigurationError("Streaming speech API key not configured")
        if source is None or getattr(source, "channels", 0) <= 0:
            raise InputError("No audio tracks found in the media stream")

        logger.info(f"Starting transcription with {source.channels} audio track(s)")
        session = StreamingSession(self, source, on_update=on_update, on_complete=on_complete)
        await session.open()
        return session

    async def stop(self, session: Optional[StreamingSession]) -> str:
        if session is None:
            return ""
        return await session.stop()
