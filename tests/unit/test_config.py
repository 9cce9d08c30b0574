"""Unit tests for CaseBaseConfig."""

import os
from pathlib import Path

import pytest

from casebase.config import CaseBaseConfig
from casebase.exceptions import ConfigurationError


@pytest.mark.unit
class TestCaseBaseConfig:

    def test_missing_explicit_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            CaseBaseConfig(os.path.join(temp_data_dir, "nope.yaml"))

    def test_invalid_yaml(self, temp_data_dir):
        path = Path(temp_data_dir) / "casebase.yaml"
        path.write_text("audio: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError):
            CaseBaseConfig(str(path))

    def test_dot_notation(self, make_config):
        config = make_config({"silence": {"threshold": 0.1}})

        assert config.get("silence.threshold") == 0.1
        assert config.get("silence.duration_ms", 2000) == 2000
        assert config.get("missing.key") is None

        config.set("dictation.mode", "turn_based")
        assert config.get("dictation.mode") == "turn_based"

    def test_relative_log_path_resolves_against_config_dir(self, make_config, temp_data_dir):
        config = make_config({"logging": {"file_path": "logs/app.log"}})
        assert config.get_log_file_path() == str(Path(temp_data_dir, "logs", "app.log").absolute())

    def test_api_key_from_file(self, make_config):
        config = make_config({"services": {"completion": {"api_key": " sk-test "}}})
        assert config.get_api_key("completion") == "sk-test"

    def test_api_key_from_default_env(self, make_config, monkeypatch):
        config = make_config()
        monkeypatch.setenv("DEEPGRAM_API_KEY", "dg-key")
        assert config.get_api_key("speech_streaming") == "dg-key"

    def test_api_key_from_named_env(self, make_config, monkeypatch):
        config = make_config({"services": {"speech_upload": {"api_key_env": "MY_AAI_KEY"}}})
        monkeypatch.setenv("MY_AAI_KEY", "aai-key")
        assert config.get_api_key("speech_upload") == "aai-key"

    @pytest.mark.parametrize("service", ["completion", "speech_upload", "speech_streaming"])
    def test_missing_api_key(self, make_config, service):
        config = make_config()
        with pytest.raises(ConfigurationError):
            config.get_api_key(service)

    def test_blank_api_key(self, make_config, monkeypatch):
        config = make_config()
        monkeypatch.setenv("OPENAI_API_KEY", "   ")
        with pytest.raises(ConfigurationError):
            config.get_api_key("completion")
