"""YAML configuration for CaseBase, layered over built-in defaults."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "casebase.yaml"

# Environment variables consulted when a service has no api_key in the YAML file
DEFAULT_API_KEY_ENV = {
    "completion": "OPENAI_API_KEY",
    "speech_upload": "ASSEMBLYAI_API_KEY",
    "speech_streaming": "DEEPGRAM_API_KEY",
}

DEFAULTS: Dict[str, Any] = {
    "audio": {"sample_rate": 16000, "chunk_size": 4096, "channels": 1},
    "silence": {"threshold": 0.05, "duration_ms": 2000, "auto_stop": True},
    "dictation": {"mode": "streaming"},
    "completion": {"model": "gpt-3.5-turbo", "temperature": 0.7, "timeout_seconds": 30},
    "transcription": {
        "streaming": {"model": "nova-2", "language": "en-US", "endpointing_ms": 300},
        "turn_based": {"provider": "assemblyai", "poll_interval_seconds": 2.0, "max_poll_attempts": 30},
    },
    "documents": {"upload_url": "http://localhost:8000", "max_size_bytes": 10 * 1024 * 1024},
    "logging": {"level": "INFO", "file_path": "data/logs/casebase.log", "console_output": True},
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class CaseBaseConfig:
    """Settings for every CaseBase component.

    Values come from ``casebase.yaml`` where present and from :data:`DEFAULTS`
    otherwise. Credentials are never defaulted; see :meth:`get_api_key`.
    """

    def __init__(self, config_path: Optional[str] = None):
        """Load configuration.

        Args:
            config_path: YAML file to load. If None, the working directory and
                its parents are searched for casebase.yaml; finding none is
                not an error.

        Raises:
            FileNotFoundError: ``config_path`` was given but does not exist
            ValueError: The file is not valid YAML or not a mapping
        """
        self.config_file: Optional[Path] = None
        if config_path:
            self.config_file = Path(config_path)
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        else:
            self.config_file = self._discover()

        self.config = copy.deepcopy(DEFAULTS)
        if self.config_file is None:
            logger.info("No casebase.yaml found, running with defaults")
        else:
            _merge(self.config, self._read(self.config_file))
            logger.info(f"Configuration loaded from {self.config_file}")

    @staticmethod
    def _discover() -> Optional[Path]:
        here = Path.cwd()
        for folder in (here, *here.parents):
            candidate = folder / CONFIG_FILENAME
            if candidate.is_file():
                return candidate
        return None

    @staticmethod
    def _read(path: Path) -> Dict[str, Any]:
        try:
            with open(path, encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ValueError(f"{path} must contain a mapping at the top level")

        # Relative log paths are relative to the file that names them
        log_path = (loaded.get('logging') or {}).get('file_path')
        if log_path and not os.path.isabs(log_path):
            loaded['logging']['file_path'] = str(path.parent / log_path)
        return loaded

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dot-separated key such as ``'silence.threshold'``."""
        node: Any = self.config
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any) -> None:
        *parents, leaf = key_path.split('.')
        node = self.config
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
        logger.debug(f"Config {key_path} = {value!r}")

    def get_api_key(self, service: str) -> str:
        """Credential for ``service`` ('completion', 'speech_upload', 'speech_streaming').

        The YAML value ``services.<service>.api_key`` wins; otherwise the
        environment variable named by ``services.<service>.api_key_env`` (or
        the default for that service) is read.

        Raises:
            ConfigurationError: Neither source provides a non-blank key
        """
        api_key = self.get(f'services.{service}.api_key')
        if not api_key:
            env_name = self.get(f'services.{service}.api_key_env', DEFAULT_API_KEY_ENV.get(service))
            api_key = os.environ.get(env_name, "") if env_name else ""

        api_key = str(api_key).strip()
        if not api_key:
            raise ConfigurationError(f"No API key configured for '{service}'")
        return api_key

    def get_log_file_path(self) -> str:
        return str(Path(self.get('logging.file_path')).absolute())
