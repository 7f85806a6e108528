import json
from typing import Any, AsyncIterator, Dict, cast

from openai import APIStatusError, AsyncOpenAI, AuthenticationError, PermissionDeniedError

from chatbox.stream.decoder import DONE_SENTINEL
from chatbox.utils.errors import AuthenticationRequiredError, ProviderError, SecurityChallengeError
from chatbox.utils.logging import get_logger

from .base import BaseProvider, ChatRequest, Payload

logger = get_logger(__name__)


class OpenAIProvider(BaseProvider):
    """OpenAI-compatible chat completions provider (OpenAI, DeepSeek, Ollama, OpenRouter)"""

    def __init__(self, config: Dict):
        super().__init__(config)
        base_url = config.get("base_url")
        api_key = self._api_key()
        if not api_key and base_url and not config.get("api_key_env"):
            # Local servers such as Ollama accept any key
            api_key = "ollama"

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url) if api_key else None

    def validate_config(self) -> bool:
        """Check if the client could be created"""
        return self.client is not None

    async def stream_events(self, request: ChatRequest) -> AsyncIterator[Payload]:
        """Stream chat completion chunks as plain dicts, then the sentinel"""
        if not self.client:
            raise ProviderError("OpenAI client not initialized")

        messages = list(request.messages)
        if request.system_prompt:
            messages.insert(0, {"role": "system", "content": request.system_prompt})

        logger.debug(f"Streaming {request.model} with {len(messages)} messages")
        try:
            stream = await self.client.chat.completions.create(
                model=request.model,
                messages=cast(Any, messages),
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                # model_dump keeps provider extras such as reasoning_content
                yield chunk.model_dump()
        except AuthenticationError as e:
            raise AuthenticationRequiredError(str(e)) from e
        except PermissionDeniedError as e:
            if "cloudflare" in str(e).lower():
                raise SecurityChallengeError(str(e)) from e
            raise ProviderError(_status_detail(e)) from e
        except APIStatusError as e:
            raise ProviderError(_status_detail(e)) from e

        yield DONE_SENTINEL


def _status_detail(error: APIStatusError) -> str:
    """Prefer the JSON error body so the card can pretty-print it"""
    if error.body:
        return json.dumps(error.body)
    return f"{error.status_code} {error.message}"
