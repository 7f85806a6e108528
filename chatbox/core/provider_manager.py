from typing import Dict, List, Optional

from chatbox.providers.anthropic_provider import AnthropicProvider
from chatbox.providers.base import BaseProvider
from chatbox.providers.openai_provider import OpenAIProvider
from chatbox.utils.errors import ConfigError
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


class ProviderManager:
    """Manages all AI providers"""

    # Registry of provider classes by configured provider type
    PROVIDER_CLASSES = {
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
    }

    def __init__(self, config_manager):
        self.config_manager = config_manager
        self.providers: Dict[str, BaseProvider] = {}

    def _initialize_provider(self, provider_name: str) -> Optional[BaseProvider]:
        """Initialize a specific provider"""
        if provider_name in self.providers:
            return self.providers[provider_name]

        provider_config = self.config_manager.get_provider_config(provider_name)
        if not provider_config:
            return None

        provider_class = self.PROVIDER_CLASSES.get(provider_config.get("type", "openai"))
        if not provider_class:
            return None

        if provider_config.get("enabled", False):
            try:
                provider = provider_class(provider_config)
                if provider.is_available():
                    self.providers[provider_name] = provider
                    logger.debug(f"Initialized provider: {provider_name}")
                    return provider
                else:
                    logger.warning(
                        f"Provider {provider_name} is enabled but not available (check configuration/API keys)"
                    )
            except Exception as e:
                logger.error(f"Failed to initialize {provider_name}: {e}")
        return None

    def get_provider(self, name: str) -> Optional[BaseProvider]:
        """Get provider by name"""
        return self._initialize_provider(name)

    def require_provider(self, name: Optional[str]) -> BaseProvider:
        """Get provider by name, raising a ConfigError with a hint if unavailable"""
        name = name or self.config_manager.get_default_provider()
        provider = self.get_provider(name)
        if provider is None:
            raise ConfigError(
                f"Provider '{name}' not available",
                hint=f"Enabled providers: {', '.join(self.list_providers()) or 'none'}",
            )
        return provider

    def list_providers(self) -> List[str]:
        """List all provider names enabled in config"""
        enabled = []
        for name, p_config in self.config_manager.config.providers.items():
            if p_config.enabled:
                enabled.append(name)
        return enabled
