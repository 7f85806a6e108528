import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from chatbox.config.models import ChatboxConfig
from chatbox.utils.errors import ConfigError
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


class ConfigManager:
    """Manages configuration from YAML and environment variables"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_dir = Path.home() / ".chatbox"
        self.config_dir.mkdir(exist_ok=True)

        load_dotenv()

        if config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = self.config_dir / "config.yaml"

        if not self.config_path.exists():
            self._create_default_config()

        self._config_data = self._load_config_file()
        try:
            self.config = ChatboxConfig(**self._config_data)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid configuration in {self.config_path}",
                hint=str(e),
            ) from e
        logger.debug(f"Config loaded from {self.config_path}")

    def default_config(self) -> Dict:
        """Return the configuration written on first run"""
        return {
            "version": "1.0",
            "defaults": {
                "provider": "openai",
                "model": "gpt-4o",
                "temperature": 1.0,
                "max_tokens": 4000,
                "max_conversation_context_length": 9,
            },
            "providers": {
                "openai": {
                    "enabled": True,
                    "type": "openai",
                    "api_key_env": "OPENAI_API_KEY",
                    "base_url": None,
                    "default_model": "gpt-4o",
                },
                "deepseek": {
                    "enabled": False,
                    "type": "openai",
                    "api_key_env": "DEEPSEEK_API_KEY",
                    "base_url": "https://api.deepseek.com/v1",
                    "default_model": "deepseek-reasoner",
                },
                "anthropic": {
                    "enabled": True,
                    "type": "anthropic",
                    "api_key_env": "ANTHROPIC_API_KEY",
                    "base_url": None,
                    "default_model": "claude-sonnet-4-20250514",
                },
                "ollama": {
                    "enabled": True,
                    "type": "openai",
                    "api_key_env": None,
                    "base_url": "http://localhost:11434/v1",
                    "default_model": "llama3",
                },
                "openrouter": {
                    "enabled": False,
                    "type": "openai",
                    "api_key_env": "OPENROUTER_API_KEY",
                    "base_url": "https://openrouter.ai/api/v1",
                    "default_model": "deepseek/deepseek-r1",
                },
            },
            "stream": {
                "reasoning_throttle_ms": 500,
                "reasoning_eager_chars": 100,
                "progress_interval_seconds": 1.0,
            },
            "transport": {
                "mode": "port",
                "keep_alive_seconds": 20.0,
            },
            "conversation": {
                "retry_cooldown_seconds": 1.0,
                "auto_regen_after_switch_model": False,
            },
            "sessions": {
                "enabled": True,
                "storage_path": str(self.config_dir / "sessions"),
            },
        }

    def _create_default_config(self):
        """Create default configuration file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(self.default_config(), f, default_flow_style=False)
        logger.info(f"Created default config at {self.config_path}")

    def _load_config_file(self) -> Dict:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file {self.config_path} is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a mapping")
        return data

    def get(self, key: str, default=None) -> Any:
        """Get configuration value using dot notation"""
        return self.config.get_dot_notation(key, default)

    def get_provider_config(self, provider: str) -> Dict:
        """Get configuration for specific provider"""
        p_config = self.config.providers.get(provider)
        return p_config.model_dump() if p_config else {}

    def get_default_provider(self) -> str:
        """Get default provider name"""
        return self.config.defaults.provider

    def get_default_model(self, provider: Optional[str] = None) -> str:
        """Get default model for provider"""
        if provider and provider in self.config.providers:
            return self.config.providers[provider].default_model
        return self.config.defaults.model

    def save(self):
        """Save current configuration to file atomically"""
        fd, tmp_path = tempfile.mkstemp(dir=self.config_path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                yaml.dump(self.config.model_dump(), f, default_flow_style=False)
            os.replace(tmp_path, self.config_path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Config saved to {self.config_path}")
