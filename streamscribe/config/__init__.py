"""YAML configuration loader and credential resolution for StreamScribe."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Mapping, Optional
import logging

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STREAMSCRIBE_CONFIG"

DEFAULTS: Dict[str, Any] = {
    "deepgram": {
        "endpoint": "wss://api.deepgram.com/v1/listen",
        "model": "nova-2",
        "language": "en",
        "smart_format": True,
        "punctuate": True,
        "interim_results": True,
        "api_key_env": "DEEPGRAM_API_KEY",
        "connect_timeout_seconds": 10.0,
    },
    "audio": {
        "sample_rate": 16000,
        "channels": 1,
        "chunk_size": 4096,
        "device_index": None,
    },
    "session": {
        "tick_interval_seconds": 1.0,
    },
    "pubsub": {
        "audio_topic": "audio.frame",
        "segment_topic": "transcript.segment",
    },
    "storage": {
        "export_directory": ".",
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/streamscribe.log",
        "console_output": True,
    },
}


class StreamScribeConfig:
    """StreamScribe configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, the STREAMSCRIBE_CONFIG
                        environment variable is consulted; without either, the
                        built-in defaults are used.
        """
        config_path = config_path or os.environ.get(CONFIG_ENV_VAR)
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load the YAML file, if any, over the defaults."""
        config = copy.deepcopy(DEFAULTS)
        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            return config

        logger.info(f"Loading configuration from: {self.config_file}")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        _deep_merge(config, loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (("storage", "export_directory"), ("logging", "file_path")):
            value = config.get(section, {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'deepgram.model').

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
            key_path: Dot-separated path to config value (e.g., 'deepgram.language')
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

    def get_export_directory(self) -> str:
        """Get transcript export directory path."""
        export_dir = self.get('storage.export_directory', '.')
        return str(Path(export_dir).absolute())


def resolve_credential(config: StreamScribeConfig,
                       environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Read the recognition API credential once, at startup.

    Blank values count as absent.

    Args:
        config: Loaded configuration naming the environment variable
        environ: Environment mapping, defaults to os.environ

    Returns:
        The credential, or None when it is not configured
    """
    environ = os.environ if environ is None else environ
    env_var = config.get('deepgram.api_key_env', 'DEEPGRAM_API_KEY')
    credential = (environ.get(env_var) or "").strip()

    if not credential:
        logger.warning(f"No credential found in ${env_var}")
        return None

    logger.info(f"Using credential from ${env_var}: {mask_credential(credential)}")
    return credential


def mask_credential(credential: str) -> str:
    """Show only enough of a credential to tell keys apart in logs."""
    return credential[:4] + "..."


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
