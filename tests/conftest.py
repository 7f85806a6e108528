"""
Shared pytest fixtures and helpers for chatbox tests.

Providers are replaced by ``ScriptedProvider``, which replays canned stream
payloads, so no test needs network access or API keys.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from chatbox.config.models import (
    ChatboxConfig,
    ConversationConfig,
    DefaultsConfig,
    ProviderConfig,
    SessionConfig,
    StreamConfig,
    TransportConfig,
)
from chatbox.conversation.models import Session
from chatbox.providers.base import BaseProvider
from chatbox.stream.decoder import DONE_SENTINEL
from chatbox.transport.base import Transport
from chatbox.utils.errors import ConfigError

# =============================================================================
# Helper Functions
# =============================================================================


def chunk(
    content: Optional[str] = None,
    reasoning: Optional[str] = None,
    finish_reason: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a chat completion chunk the way providers stream them."""
    delta: Dict[str, Any] = {"role": "assistant", "content": content}
    if reasoning is not None:
        delta["reasoning_content"] = reasoning
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider(BaseProvider):
    """Replays ``payloads``, then optionally raises ``error`` or hangs."""

    def __init__(
        self,
        payloads: List[Any],
        error: Optional[Exception] = None,
        hang: bool = False,
    ):
        super().__init__({"enabled": True})
        self.payloads = payloads
        self.error = error
        self.hang = hang
        self.requests = []
        self.cancelled = False

    def validate_config(self) -> bool:
        return True

    async def stream_events(self, request):
        self.requests.append(request)
        for payload in self.payloads:
            await asyncio.sleep(0)
            yield payload
        if self.error is not None:
            raise self.error
        if self.hang:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise


class StubProviderManager:
    """Hands out one provider for any name, or fails like ProviderManager."""

    def __init__(self, provider: Optional[BaseProvider]):
        self.provider = provider
        self.requested = []

    def require_provider(self, name):
        self.requested.append(name)
        if self.provider is None:
            raise ConfigError(f"Provider '{name}' not available")
        return self.provider


class RecordingTransport(Transport):
    """Transport that only records what the card sends."""

    def __init__(self, fail_with: Optional[Exception] = None):
        super().__init__()
        self.sent = []
        self.fail_with = fail_with

    async def send(self, session=None, stop=False):
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"session": session, "stop": stop})

    @property
    def sessions(self) -> List[Session]:
        return [entry["session"] for entry in self.sent if entry["session"] is not None]

    @property
    def stops(self) -> int:
        return sum(1 for entry in self.sent if entry["stop"])


REASONING_TURN = [
    chunk(reasoning="Let me think"),
    chunk(content="Hello"),
    chunk(content=" world", finish_reason="stop"),
    DONE_SENTINEL,
]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session() -> Session:
    return Session(session_id="s-1", model_name="gpt-4o", api_mode="openai")


@pytest.fixture
def config(tmp_path) -> ChatboxConfig:
    """Config with the periodic timers disabled."""
    return ChatboxConfig(
        defaults=DefaultsConfig(),
        providers={"openai": ProviderConfig(default_model="gpt-4o")},
        stream=StreamConfig(progress_interval_seconds=0),
        transport=TransportConfig(keep_alive_seconds=0),
        conversation=ConversationConfig(retry_cooldown_seconds=0.01),
        sessions=SessionConfig(storage_path=str(tmp_path / "sessions")),
    )


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()
