"""Audio capture and analysis module."""

from .audio_pub import AudioPublisher
from .capture import AudioCapture
from .analysis import EnergyAnalyzer
from .silence import SilenceDetector, Signal

__all__ = [
    'AudioPublisher',
    'AudioCapture',
    'EnergyAnalyzer',
    'SilenceDetector',
    'Signal',
]
