"""WAV encoding of captured float32 frames."""

import io
import wave
import logging
from typing import Iterable

import numpy as np

from .pcm import bytes_to_float32, float_to_int16

logger = logging.getLogger(__name__)


def encode_wav(frames: Iterable[bytes], sample_rate: int, channels: int = 1) -> bytes:
    """Encode float32 frames as a 16-bit PCM WAV payload.

    Args:
        frames: Raw float32 frame buffers in capture order
        sample_rate: Sample rate in Hz
        channels: Interleaved channel count

    Returns:
        Complete WAV file contents
    """
    pcm = [float_to_int16(bytes_to_float32(frame)) for frame in frames if frame]
    samples = np.concatenate(pcm) if pcm else np.zeros(0, dtype=np.int16)

    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(samples.tobytes())

    payload = buffer.getvalue()
    logger.debug(f"Encoded {len(samples)} samples into {len(payload)} byte WAV")
    return payload
