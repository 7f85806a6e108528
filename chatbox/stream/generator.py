"""Runs one provider turn through the decoder and the answer synthesizer."""

import time
from typing import Callable, Dict, List

from chatbox.config.models import ChatboxConfig
from chatbox.conversation.models import Session
from chatbox.providers.base import BaseProvider, ChatRequest
from chatbox.stream.decoder import DeltaDecoder
from chatbox.stream.synthesis import AnswerSynthesizer, PostMessage
from chatbox.transport.keepalive import KeepAlive, Ticker
from chatbox.utils.errors import AuthenticationRequiredError, SecurityChallengeError
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


def conversation_messages(session: Session, question: str, max_context: int) -> List[Dict[str, str]]:
    """Prior turns (most recent ``max_context`` records) followed by the question"""
    messages: List[Dict[str, str]] = []
    records = session.conversation_records[-max_context:] if max_context > 0 else []
    for record in records:
        if record.is_error:
            continue
        messages.append({"role": "user", "content": record.question})
        messages.append({"role": "assistant", "content": record.answer})
    messages.append({"role": "user", "content": question})
    return messages


def build_request(session: Session, config: ChatboxConfig) -> ChatRequest:
    """Build the provider request for the session's in-flight question"""
    defaults = config.defaults
    return ChatRequest(
        model=session.model_name or defaults.model,
        messages=conversation_messages(
            session, session.question or "", defaults.max_conversation_context_length
        ),
        temperature=defaults.temperature,
        max_tokens=defaults.max_tokens,
    )


def describe_error(error: Exception) -> str:
    """Value posted as ``{error}`` for an exception raised during a turn"""
    if isinstance(error, AuthenticationRequiredError):
        return AuthenticationRequiredError.category
    if isinstance(error, SecurityChallengeError):
        return SecurityChallengeError.category
    return str(error) or error.__class__.__name__


async def generate_answer(
    post: PostMessage,
    session: Session,
    provider: BaseProvider,
    config: ChatboxConfig,
    clock: Callable[[], float] = time.monotonic,
) -> AnswerSynthesizer:
    """Stream an answer for ``session.question`` and post every update.

    Provider exceptions propagate to the caller; the keep-alive and progress
    timers are stopped on every exit path, including cancellation.
    """
    question = session.question or ""
    request = build_request(session, config)
    decoder = DeltaDecoder()
    synthesizer = AnswerSynthesizer(
        session,
        question,
        post,
        throttle_ms=config.stream.reasoning_throttle_ms,
        eager_chars=config.stream.reasoning_eager_chars,
        clock=clock,
    )
    keep_alive = KeepAlive(config.transport.keep_alive_seconds)
    progress = Ticker(config.stream.progress_interval_seconds, synthesizer.tick)

    keep_alive.start()
    progress.start()
    try:
        async for payload in provider.stream_events(request):
            for event in decoder.feed(payload):
                synthesizer.apply(event)
        decoder.close()
        post({"done": True})
    finally:
        progress.stop()
        keep_alive.stop()

    logger.debug(f"Turn ended in state {synthesizer.state.value}")
    return synthesizer
