"""Background side of the message channel."""

import asyncio
from typing import Optional

from chatbox.config.models import ChatboxConfig
from chatbox.conversation.models import Session
from chatbox.stream.generator import describe_error, generate_answer
from chatbox.stream.synthesis import PostMessage
from chatbox.transport.base import CancellationToken, Message
from chatbox.utils.errors import ChatboxError
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


class BackgroundWorker:
    """Answers ``{session}`` requests and honours ``{stop}`` requests.

    At most one turn runs at a time; starting a new one cancels the previous
    request first. Failures never escape: they are posted back as ``{error}``.
    """

    def __init__(self, provider_manager, config: ChatboxConfig):
        self.provider_manager = provider_manager
        self.config = config
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def handle(self, message: Message, post: PostMessage) -> Optional[asyncio.Task]:
        if message.get("stop"):
            self.stop()
        if message.get("session"):
            session = Session.model_validate(message["session"])
            return self.start(session, post)
        return None

    def stop(self) -> None:
        if self._token is not None:
            logger.debug("Cancelling outstanding provider request")
            self._token.cancel()
            self._token = None

    def start(self, session: Session, post: PostMessage) -> asyncio.Task:
        self.stop()
        token = CancellationToken()
        task = asyncio.get_running_loop().create_task(self._run_turn(session, post))
        token.bind(task)
        self._token = token
        self._task = task
        return task

    async def _run_turn(self, session: Session, post: PostMessage) -> None:
        try:
            provider = self.provider_manager.require_provider(session.api_mode)
            await generate_answer(post, session, provider, self.config)
        except asyncio.CancelledError:
            logger.info("Turn stopped before completion")
            raise
        except ChatboxError as e:
            logger.error(f"Turn failed: {e}")
            post({"error": describe_error(e)})
        except Exception as e:
            logger.exception(f"Unexpected error while answering: {e}")
            post({"error": describe_error(e)})

    async def serve(self, port) -> None:
        """Handle every request arriving on ``port`` until it disconnects"""
        try:
            async for message in port:
                self.handle(message, port.post_message)
        finally:
            self.stop()
