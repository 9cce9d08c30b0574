"""Loudness estimation from frequency-domain magnitudes."""

import logging
from typing import List, Sequence

import numpy as np
from scipy.signal import get_window

logger = logging.getLogger(__name__)

MAX_MAGNITUDE = 255


class EnergyAnalyzer:
    """Coarse loudness proxy: mean byte magnitude of the spectrum, normalized to [0, 1].

    Frequency bins are produced the same way a browser analyser node reports
    byte frequency data, so thresholds tuned there carry over unchanged.
    """

    def __init__(self,
                 fft_size: int = 2048,
                 min_decibels: float = -100.0,
                 max_decibels: float = -30.0,
                 level_count: int = 5):
        if fft_size <= 0 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two, got {fft_size}")
        if max_decibels <= min_decibels:
            raise ValueError("max_decibels must be greater than min_decibels")
        self.fft_size = fft_size
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self.level_count = level_count
        self._window = get_window("blackman", fft_size)

    def frequency_bins(self, samples: np.ndarray) -> np.ndarray:
        """Byte magnitudes (0..255) for the most recent ``fft_size`` samples.

        Args:
            samples: Mono float samples in [-1, 1]

        Returns:
            ``fft_size // 2`` unsigned byte magnitudes
        """
        frame = np.asarray(samples, dtype=np.float64)[-self.fft_size:]
        if len(frame) < self.fft_size:
            frame = np.pad(frame, (self.fft_size - len(frame), 0))

        spectrum = np.fft.rfft(frame * self._window)[: self.fft_size // 2]
        magnitude = np.abs(spectrum) / self.fft_size
        with np.errstate(divide="ignore"):
            decibels = 20.0 * np.log10(magnitude)

        scale = MAX_MAGNITUDE / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (decibels - self.min_decibels))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, MAX_MAGNITUDE).astype(np.uint8)

    def sample(self, frequency_bins: Sequence[int]) -> float:
        """Mean bin magnitude divided by 255."""
        bins = np.asarray(frequency_bins, dtype=np.float64)
        if bins.size == 0:
            return 0.0
        energy = float(bins.mean()) / MAX_MAGNITUDE
        return min(max(energy, 0.0), 1.0)

    def levels(self, frequency_bins: Sequence[int]) -> List[float]:
        """Fixed-length meter vector for display; no effect on silence decisions."""
        bins = np.asarray(frequency_bins, dtype=np.float64)
        if bins.size == 0:
            return [0.0] * self.level_count
        groups = np.array_split(bins, self.level_count)
        return [
            min(float(group.mean()) / MAX_MAGNITUDE, 1.0) if group.size else 0.0
            for group in groups
        ]
