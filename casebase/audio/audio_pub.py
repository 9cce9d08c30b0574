"""Per-stream frame channel on top of pypubsub."""

import logging

from pubsub import pub

from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class AudioPublisher:
    """Sends the frames of one media stream to ``topic``.

    Every input control gets its own topic so subscribers (level meter,
    silence detector, streaming client) only see frames from their stream.
    """

    def __init__(self, topic: str = "audio_frames"):
        self.topic = topic
        self.frames_published = 0
        logger.debug(f"Frame channel ready on {topic}")

    def publish_audio_event(self, audio_event: AudioEvent) -> None:
        self.frames_published += 1
        pub.sendMessage(self.topic, event=audio_event)
