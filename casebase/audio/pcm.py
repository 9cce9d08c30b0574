"""Sample format helpers."""

import numpy as np


def float_to_int16(samples: np.ndarray) -> np.ndarray:
    """Scale float samples in [-1, 1] to the signed 16-bit range, clamping overshoot."""
    scaled = np.asarray(samples, dtype=np.float64) * 32768.0
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def is_silent(frame: np.ndarray) -> bool:
    """True when every sample is exactly zero."""
    return not np.any(frame)


def bytes_to_float32(audio_data: bytes) -> np.ndarray:
    return np.frombuffer(audio_data, dtype=np.float32)
