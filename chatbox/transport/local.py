"""Same-process strategy: the card drives the worker directly."""

import asyncio
from typing import Optional

from chatbox.conversation.models import Session
from chatbox.stream.generator import describe_error
from chatbox.transport.base import Message, MessageSink, Transport
from chatbox.transport.worker import BackgroundWorker
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


class LocalTransport(Transport):
    """Runs the provider call in-process and feeds results to the same sink.

    ``send(session=...)`` returns once the turn has ended (finished, failed or
    stopped). Messages reach the sink with exactly the shapes the port
    strategy delivers.
    """

    def __init__(self, worker: BackgroundWorker, on_message: Optional[MessageSink] = None):
        super().__init__(on_message)
        self.worker = worker

    def _post(self, message: Message) -> None:
        self.deliver(message)

    async def send(self, session: Optional[Session] = None, stop: bool = False) -> None:
        if stop:
            self.worker.stop()
        if session is None:
            return

        # Round-trip through the wire shape so the worker never shares the card's session
        task = self.worker.handle({"session": session.to_wire()}, self._post)
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.debug("Local turn stopped")
        except Exception as e:
            logger.exception(f"Local turn failed: {e}")
            self._post({"error": describe_error(e)})

    async def close(self) -> None:
        self.worker.stop()
