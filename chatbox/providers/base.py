import os
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from pydantic import BaseModel

Payload = Union[str, Dict[str, Any]]


class ChatRequest(BaseModel):
    """Standardized streaming chat request"""

    model: str
    messages: List[Dict[str, str]]
    temperature: float = 1.0
    max_tokens: int = 4000
    system_prompt: Optional[str] = None


class BaseProvider(ABC):
    """Abstract base for all AI providers"""

    def __init__(self, config: Dict):
        self.config = config
        self.name = self.__class__.__name__.replace("Provider", "").lower()

    def _api_key(self) -> Optional[str]:
        env_name = self.config.get("api_key_env")
        return os.getenv(env_name) if env_name else None

    @abstractmethod
    def stream_events(self, request: ChatRequest) -> AsyncIterator[Payload]:
        """Yield raw stream payloads (JSON objects or the ``[DONE]`` sentinel)"""
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """Check if provider is properly configured"""
        pass

    def is_available(self) -> bool:
        """Check if provider is enabled and configured"""
        return self.config.get("enabled", False) and self.validate_config()
