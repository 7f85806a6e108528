"""Long-lived channel strategy: a port pair served by a background task."""

import asyncio
from typing import Callable, Optional, Tuple

from chatbox.conversation.models import Session
from chatbox.transport.base import Message, MessageSink, Transport, outbound_message
from chatbox.transport.worker import BackgroundWorker
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)

_DISCONNECT = object()


class Port:
    """One end of a bidirectional in-process channel."""

    def __init__(self, name: str, inbox: asyncio.Queue, outbox: asyncio.Queue):
        self.name = name
        self._inbox = inbox
        self._outbox = outbox
        self.connected = True

    def post_message(self, message: Message) -> None:
        if not self.connected:
            logger.debug(f"Dropping message on disconnected port {self.name}")
            return
        self._outbox.put_nowait(message)

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        self._outbox.put_nowait(_DISCONNECT)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Message:
        if not self.connected and self._inbox.empty():
            raise StopAsyncIteration
        message = await self._inbox.get()
        if message is _DISCONNECT:
            self.connected = False
            raise StopAsyncIteration
        return message


def create_channel() -> Tuple[Port, Port]:
    """Return connected (card side, background side) ports"""
    to_background: asyncio.Queue = asyncio.Queue()
    to_card: asyncio.Queue = asyncio.Queue()
    card = Port("card", inbox=to_card, outbox=to_background)
    background = Port("background", inbox=to_background, outbox=to_card)
    return card, background


class PortTransport(Transport):
    """Sends requests over a persistent port to a ``BackgroundWorker`` task.

    Inbound messages are pumped to the sink one at a time, in arrival order.
    """

    def __init__(
        self,
        worker: BackgroundWorker,
        on_message: Optional[MessageSink] = None,
        on_disconnect: Optional[Callable[[], None]] = None,
    ):
        super().__init__(on_message)
        self.worker = worker
        self.on_disconnect = on_disconnect
        self.port: Optional[Port] = None
        self._tasks: list = []

    @property
    def connected(self) -> bool:
        return self.port is not None and self.port.connected

    def connect(self) -> None:
        card, background = create_channel()
        loop = asyncio.get_running_loop()
        self.port = card
        self._tasks = [
            loop.create_task(self.worker.serve(background)),
            loop.create_task(self._pump(card)),
        ]
        logger.debug("Port connected")

    async def _pump(self, port: Port) -> None:
        async for message in port:
            self.deliver(message)
        logger.debug("Port disconnected by background side")
        if port is self.port and self.on_disconnect is not None:
            self.on_disconnect()

    async def send(self, session: Optional[Session] = None, stop: bool = False) -> None:
        if not self.connected:
            self.connect()
        self.port.post_message(outbound_message(session, stop))
        # Let the background side pick the request up before returning
        await asyncio.sleep(0)

    async def reconnect(self) -> None:
        """Drop the current channel and open a fresh one."""
        await self.close()
        self.connect()
        if self.on_disconnect is not None:
            self.on_disconnect()

    async def close(self) -> None:
        port, self.port = self.port, None
        if port is not None:
            port.disconnect()
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.worker.stop()
