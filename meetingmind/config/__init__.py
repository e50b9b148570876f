"""Simple YAML configuration loader for MeetingMind."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "device_index": None,
        "stop_timeout_seconds": 10.0,
    },
    "chunking": {
        "tick_interval_seconds": 5.0,
        "min_new_data_bytes": 20480,
    },
    "transcription": {
        "engine": "auto",
        "language": "en",
        "live": {"model": "tiny.en", "beam_size": 1, "compute_type": "int8", "device": "cpu"},
        "final": {"model": "base.en", "beam_size": 5, "compute_type": "int8", "device": "cpu"},
        "final_pass": "fallback",
        "timeout_per_audio_second": 0.5,
        "min_timeout_seconds": 3.0,
        "max_timeout_seconds": 15.0,
        "final_timeout_seconds": 600.0,
        "max_concurrent_chunks": 2,
        "drain_timeout_seconds": 20.0,
    },
    "models": {
        "directory": "models",
        "download_timeout_seconds": 600,
        "sources": [
            "https://huggingface.co/Systran/faster-whisper-{model}/resolve/main",
            "https://hf-mirror.com/Systran/faster-whisper-{model}/resolve/main",
        ],
    },
    "google_cloud": {
        "credentials_path": "credentials.json",
        "language": "en-US",
        "use_enhanced_model": True,
        "enable_automatic_punctuation": True,
    },
    "insights": {
        "model": "gpt-4o-mini",
        "api_key": None,
        "api_key_env": "OPENAI_API_KEY",
        "interval_seconds": 20.0,
        "min_transcript_chars": 30,
        "timeout_seconds": 15.0,
        "final_timeout_seconds": 30.0,
        "temperature": 0.7,
        "max_tokens": 2000,
    },
    "storage": {
        "data_directory": "data",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/meetingmind.log",
        "console_output": True,
    },
}

# Keys holding filesystem paths that are resolved against the config file location
PATH_KEYS = (
    "google_cloud.credentials_path",
    "storage.data_directory",
    "logging.file_path",
    "models.directory",
)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class MeetingMindConfig:
    """MeetingMind configuration loader.

    Values from the YAML file are layered over :data:`DEFAULT_CONFIG`, so a
    partial file (or no file at all) yields a complete configuration.
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, only the built-in
                        defaults are used and relative paths resolve against
                        the current directory.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        if self.config_file is None:
            logger.info("No configuration file given, using built-in defaults")
            config = copy.deepcopy(DEFAULT_CONFIG)
            self._resolve_paths(config, Path.cwd())
            return config

        logger.info(f"Loading configuration from: {self.config_file}")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        config = _deep_merge(DEFAULT_CONFIG, loaded)
        self._resolve_paths(config, self.config_file.parent)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any], base_dir: Path) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        for key_path in PATH_KEYS:
            section, key = key_path.split('.')
            value = config.get(section, {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(base_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'transcription.live.model').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'insights.model')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> Optional[str]:
        """Get Google credentials path, or None when no usable file is configured."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            logger.info("Google credentials path not configured")
            return None

        creds_file = Path(creds_path)
        if not creds_file.exists():
            logger.info(f"Google credentials file not found: {creds_path}")
            return None

        return str(creds_file.absolute())

    def get_openai_api_key(self) -> Optional[str]:
        """API key from the config file, falling back to the configured environment variable."""
        api_key = self.get('insights.api_key')
        if api_key:
            return api_key
        env_name = self.get('insights.api_key_env', 'OPENAI_API_KEY')
        api_key = os.getenv(env_name) if env_name else None
        if not api_key:
            logger.info(f"No OpenAI API key configured (checked insights.api_key and ${env_name})")
            return None
        return api_key

    def get_model_sources(self) -> List[str]:
        return list(self.get('models.sources') or [])

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
