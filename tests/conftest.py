"""Pytest configuration and fixtures for CaseBase tests."""

import pytest
import tempfile
import logging
import re
from pathlib import Path
from unittest.mock import Mock, patch
import numpy as np

from casebase.audio import AudioPublisher
from casebase.config import CaseBaseConfig


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """4096 float32 samples of a 440 Hz sine wave."""
    sample_rate = 16000
    t = np.arange(4096) / sample_rate
    wave_data = 0.5 * np.sin(2 * np.pi * 440 * t)
    return wave_data.astype(np.float32).tobytes()


@pytest.fixture
def silent_audio_chunk():
    return np.zeros(4096, dtype=np.float32).tobytes()


@pytest.fixture
def mock_pyaudio():
    """PyAudio replaced by mocks; the stream returns silent float32 frames."""
    stream = Mock()
    stream.read.return_value = np.zeros(4096, dtype=np.float32).tobytes()
    device = Mock()
    device.open.return_value = stream

    with patch('pyaudio.PyAudio', return_value=device) as factory:
        yield {'class': factory, 'instance': device, 'stream': stream}


@pytest.fixture
def publisher(request):
    """Publisher on a topic unique to the running test."""
    return AudioPublisher("test_frames_" + re.sub(r"\W", "_", request.node.name))


@pytest.fixture
def make_config(temp_data_dir, monkeypatch):
    """Build a CaseBaseConfig from a dict written to a temporary YAML file."""
    import yaml

    for name in ("OPENAI_API_KEY", "ASSEMBLYAI_API_KEY", "DEEPGRAM_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    def _make(values=None):
        path = Path(temp_data_dir) / "casebase.yaml"
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(values or {}, f)
        return CaseBaseConfig(str(path))

    return _make
