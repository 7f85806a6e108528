import json
from typing import AsyncIterator, Dict

from anthropic import APIStatusError, AsyncAnthropic, AuthenticationError

from chatbox.utils.errors import AuthenticationRequiredError, ProviderError
from chatbox.utils.logging import get_logger

from .base import BaseProvider, ChatRequest, Payload

logger = get_logger(__name__)

# Models that stream a separate thinking channel when asked to
THINKING_MODEL_PREFIXES = ("claude-3-7", "claude-sonnet-4", "claude-opus-4")


class AnthropicProvider(BaseProvider):
    """Anthropic messages provider with extended thinking"""

    def __init__(self, config: Dict):
        super().__init__(config)
        api_key = self._api_key()
        base_url = config.get("base_url")
        self.client = AsyncAnthropic(api_key=api_key, base_url=base_url) if api_key else None
        self.thinking_budget = config.get("thinking_budget", 2048)

    def validate_config(self) -> bool:
        """Check if Anthropic API key is set"""
        return self.client is not None

    def _supports_thinking(self, model: str) -> bool:
        return model.startswith(THINKING_MODEL_PREFIXES)

    async def stream_events(self, request: ChatRequest) -> AsyncIterator[Payload]:
        """Stream raw message events as plain dicts"""
        if not self.client:
            raise ProviderError("Anthropic client not initialized")

        # Anthropic API separates system from messages
        messages = [m for m in request.messages if m.get("role") != "system"]
        params = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "system": request.system_prompt or "",
            "messages": messages,
            "stream": True,
        }
        if self._supports_thinking(request.model) and request.max_tokens > self.thinking_budget:
            params["thinking"] = {"type": "enabled", "budget_tokens": self.thinking_budget}
        else:
            params["temperature"] = request.temperature

        logger.debug(f"Streaming {request.model} with {len(messages)} messages")
        try:
            stream = await self.client.messages.create(**params)
            async for event in stream:
                yield event.model_dump()
        except AuthenticationError as e:
            raise AuthenticationRequiredError(str(e)) from e
        except APIStatusError as e:
            detail = json.dumps(e.body) if e.body else f"{e.status_code} {e.message}"
            raise ProviderError(detail) from e
