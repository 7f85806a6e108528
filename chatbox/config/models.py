from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel


class ProviderConfig(BaseModel):
    enabled: bool = True
    type: Literal["openai", "anthropic"] = "openai"
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    default_model: str
    thinking_budget: int = 2048


class DefaultsConfig(BaseModel):
    provider: str = "openai"
    model: str = "gpt-4o"
    temperature: float = 1.0
    max_tokens: int = 4000
    max_conversation_context_length: int = 9


class StreamConfig(BaseModel):
    reasoning_throttle_ms: int = 500
    reasoning_eager_chars: int = 100
    progress_interval_seconds: float = 1.0


class TransportConfig(BaseModel):
    mode: Literal["port", "local"] = "port"
    keep_alive_seconds: float = 20.0


class ConversationConfig(BaseModel):
    retry_cooldown_seconds: float = 1.0
    auto_regen_after_switch_model: bool = False


class SessionConfig(BaseModel):
    enabled: bool = True
    storage_path: str


class ChatboxConfig(BaseModel):
    version: str = "1.0"
    defaults: DefaultsConfig
    providers: Dict[str, ProviderConfig]
    stream: StreamConfig = StreamConfig()
    transport: TransportConfig = TransportConfig()
    conversation: ConversationConfig = ConversationConfig()
    sessions: SessionConfig

    def get_dot_notation(self, key: str, default: Any = None) -> Any:
        """Get value using dot notation from the config model"""
        parts = key.split(".")
        current = self
        for part in parts:
            if hasattr(current, part):
                current = getattr(current, part)
            elif isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current
