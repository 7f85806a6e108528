import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from chatbox.conversation.models import Session

Message = Dict[str, Any]
MessageSink = Callable[[Message], None]


def outbound_message(session: Optional[Session] = None, stop: bool = False) -> Message:
    """Build the ``{session, stop}`` request sent to the background side"""
    message: Message = {}
    if stop:
        message["stop"] = True
    if session is not None:
        message["session"] = session.to_wire()
    return message


class CancellationToken:
    """Shared between a transport and the provider request it started."""

    def __init__(self):
        self._cancelled = False
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self, task: asyncio.Task) -> None:
        self._task = task
        if self._cancelled:
            task.cancel()

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()


class Transport(ABC):
    """Narrow channel between a conversation card and the answer generator.

    Outbound requests go through ``send``; every inbound message is handed to
    the sink registered with ``bind``.
    """

    def __init__(self, on_message: Optional[MessageSink] = None):
        self.on_message = on_message

    def bind(self, on_message: MessageSink) -> None:
        self.on_message = on_message

    def deliver(self, message: Message) -> None:
        if self.on_message is not None:
            self.on_message(message)

    @abstractmethod
    async def send(self, session: Optional[Session] = None, stop: bool = False) -> None:
        """Start or continue a turn with ``session``, or cancel with ``stop``"""
        pass

    async def close(self) -> None:
        """Release the channel"""
        pass
