"""Simple YAML configuration loader for the voice assistant."""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "voiceassistant.yaml"


@dataclass(frozen=True)
class Endpoints:
    """The four remote services the pipeline talks to."""
    wake_ws_url: str
    stt_ws_url: str
    ai_url: str
    tts_url: str


class VoiceAssistantConfig:
    """Voice assistant configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses voiceassistant.yaml
                        in the current directory.
        """
        self.config_file = Path(config_path or DEFAULT_CONFIG_FILE)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not config:
            raise ValueError("Configuration file is empty")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        if isinstance(config.get('playback'), dict) and config['playback'].get('scratch_directory'):
            scratch_dir = config['playback']['scratch_directory']
            if not os.path.isabs(scratch_dir):
                config['playback']['scratch_directory'] = str(config_dir / scratch_dir)

        if isinstance(config.get('logging'), dict) and 'file_path' in config['logging']:
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'silence.timeout_ms').

        Args:
            key_path: Dot-separated key path (e.g., 'endpoints.ai_url')
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

    def get_endpoints(self) -> Endpoints:
        """Get the remote endpoint URLs - CRASHES if any is missing."""
        values = {}
        for name in ('wake_ws_url', 'stt_ws_url', 'ai_url', 'tts_url'):
            url = self.get(f'endpoints.{name}')
            if not url:
                raise ValueError(f"endpoints.{name} not configured in {self.config_file.name}")
            values[name] = str(url)
        return Endpoints(**values)

    def get_app_launch_urls(self) -> Dict[str, str]:
        return dict(self.get('apps.launch_urls', {}) or {})

    def get_scratch_directory(self) -> Optional[str]:
        """Directory for synthesized audio; None means the system temp dir."""
        scratch_dir = self.get('playback.scratch_directory')
        if not scratch_dir:
            return None
        return str(Path(scratch_dir).absolute())
