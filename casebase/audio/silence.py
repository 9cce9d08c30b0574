"""Fixed-threshold silence timer."""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Signal(Enum):
    CONTINUE = "continue"
    STOP = "stop"


class SilenceDetector:
    """Signals STOP once energy stays below ``threshold`` for ``duration_ms``.

    Any sample at or above the threshold clears the timer. The detector is
    inert while ``active`` is False and deactivates itself after signalling,
    so a session that already ended is never stopped twice.
    """

    def __init__(self, threshold: float = 0.05, duration_ms: float = 2000.0):
        self.threshold = threshold
        self.duration_ms = duration_ms
        self.active = False
        self.silence_started_at: Optional[float] = None

    def start(self) -> None:
        self.active = True
        self.silence_started_at = None

    def reset(self) -> None:
        self.active = False
        self.silence_started_at = None

    def observe(self, energy: float, now_ms: float) -> Signal:
        """Feed one energy sample taken at ``now_ms`` (milliseconds)."""
        if not self.active:
            return Signal.CONTINUE

        if energy >= self.threshold:
            self.silence_started_at = None
            return Signal.CONTINUE

        if self.silence_started_at is None:
            self.silence_started_at = now_ms
            return Signal.CONTINUE

        if now_ms - self.silence_started_at >= self.duration_ms:
            logger.info(f"Silence for {now_ms - self.silence_started_at:.0f}ms, signalling stop")
            self.reset()
            return Signal.STOP

        return Signal.CONTINUE
