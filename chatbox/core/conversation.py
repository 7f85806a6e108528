"""Conversation card: one live conversation bound to a transport."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from chatbox.conversation.error_format import Translator, format_error, identity
from chatbox.conversation.models import ConversationItem, Session
from chatbox.conversation.reconciler import project, records_changed, restore_items
from chatbox.conversation.store import ConversationStore, is_answer_or_error
from chatbox.transport.base import Message, Transport
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)

SessionCallback = Callable[[Session], None]


class ConversationCard:
    """Owns the live items and the session of one conversation.

    All inbound messages go through ``handle_message``, which is synchronous,
    so store mutations are applied strictly in arrival order. After every
    mutation the items are projected onto the session; the session is only
    replaced (and ``on_update`` called) when its records actually change.
    """

    def __init__(
        self,
        session: Session,
        transport: Transport,
        question: Optional[str] = None,
        on_update: Optional[SessionCallback] = None,
        translate: Translator = identity,
        retry_cooldown: float = 1.0,
        auto_regen_after_switch_model: bool = False,
    ):
        self.session = session
        self.transport = transport
        self.question = question
        self.on_update = on_update
        self.translate = translate
        self.retry_cooldown = retry_cooldown
        self.auto_regen_after_switch_model = auto_regen_after_switch_model
        self.is_ready = not question
        self._retrying = False

        if session.conversation_records:
            items = restore_items(session)
        elif question:
            items = [ConversationItem.question(question), ConversationItem.placeholder()]
        else:
            items = []
        self.store = ConversationStore(items, on_change=self._on_items_changed)
        transport.bind(self.handle_message)

    @property
    def items(self) -> List[ConversationItem]:
        return self.store.items

    @property
    def retrying(self) -> bool:
        return self._retrying

    def _commit_session(self, session: Session) -> None:
        self.session = session
        if self.on_update:
            self.on_update(session)

    def _on_items_changed(self, items: List[ConversationItem]) -> None:
        if not items:
            return
        synced = project(items, self.session)
        if records_changed(synced.conversation_records, self.session.conversation_records):
            self._commit_session(synced)

    def handle_message(self, msg: Message) -> None:
        """Apply one inbound message from the transport."""
        logger.debug(f"received message {sorted(msg)}")
        if self.is_ready and msg.get("question"):
            self.is_ready = False

        msg_type = msg.get("type")
        if msg_type == "thinking_progress":
            self.store.update_thinking(
                {"thinkingTime": msg.get("thinkingTime"), "isThinking": msg.get("isThinking")}
            )
            return

        if msg_type == "thinking_update":
            self.store.update_thinking(
                {
                    "reasoningContent": msg.get("reasoningContent"),
                    "thinkingTime": msg.get("thinkingTime"),
                    "isThinking": msg.get("isThinking"),
                    "hasReasoning": True,
                }
            )
            return

        if msg_type == "content_update":
            self.store.update_thinking(
                {
                    "reasoningContent": msg.get("reasoningContent"),
                    "actualContent": msg.get("actualContent"),
                    "thinkingTime": msg.get("thinkingTime"),
                    "isThinking": msg.get("isThinking"),
                    "hasReasoning": bool(msg.get("reasoningContent")),
                }
            )
            actual = msg.get("actualContent")
            if actual and actual.strip():
                self.store.update_answer(actual, False, "answer", bool(msg.get("done")))
            return

        if msg.get("answer"):
            self.store.update_answer(msg["answer"], False, "answer", bool(msg.get("done")))

        if msg.get("session") and msg.get("done"):
            patch: Dict[str, Any] = dict(msg["session"])
            patch["isRetry"] = False
            self._commit_session(self.session.merged(patch))

        if msg.get("error"):
            self.store.push_error(format_error(msg["error"], self.translate))
            self.is_ready = True

        if msg.get("done"):
            self.store.finish_last()
            self.is_ready = True

    def handle_disconnect(self) -> None:
        """The background side went away; let the user act again."""
        logger.info("Transport disconnected")
        self.is_ready = True

    async def _post(self, session: Optional[Session] = None, stop: bool = False) -> None:
        try:
            await self.transport.send(session=session, stop=stop)
        except Exception as e:
            logger.error(f"Failed to send request: {e}")
            self.store.push_error(format_error(str(e), self.translate))
            self.is_ready = True

    async def start(self) -> None:
        """Send the question given at construction, keeping prior records."""
        if not self.question:
            return
        self.is_ready = False
        self._commit_session(self.session.model_copy(update={"question": self.question}))
        await self._post(session=self.session)

    async def submit(self, question: str) -> None:
        """Ask a new question in this conversation."""
        self.store.replace(
            [*self.store.items, ConversationItem.question(question), ConversationItem.placeholder()]
        )
        self.is_ready = False
        self._commit_session(
            self.session.model_copy(update={"question": question, "is_retry": False})
        )
        await self._post(session=self.session)

    def _release_retry(self) -> None:
        self._retrying = False

    async def retry(self) -> bool:
        """Regenerate the last answer. Returns False when dropped by the guard."""
        if self._retrying:
            logger.debug("Retry already in progress, skipping")
            return False

        self._retrying = True
        try:
            question = self.store.last_question()
            self.store.remove_last(is_answer_or_error)
            # Projected without the removed turn, so it is not sent back as history
            synced = project(self.store.items, self.session)
            self.store.append(ConversationItem.placeholder())
            self.is_ready = False

            request = synced.model_copy(update={"question": question, "is_retry": True})
            self._commit_session(request)
            logger.info(f"Retrying with {len(request.conversation_records)} prior records")

            await self._post(stop=True)
            await self._post(session=request)
            return True
        finally:
            asyncio.get_running_loop().call_later(self.retry_cooldown, self._release_retry)

    async def stop(self) -> None:
        """Cancel the outstanding request, keeping whatever arrived so far."""
        await self._post(stop=True)
        self.store.finish_last()
        self.is_ready = True

    async def clear(self) -> None:
        """Stop, then drop every item and record while keeping the session id."""
        await self._post(stop=True)
        self.store.clear()
        self._commit_session(
            Session(
                session_id=self.session.session_id,
                session_name=self.session.session_name,
                model_name=self.session.model_name,
                api_mode=self.session.api_mode,
                ai_name=self.session.ai_name,
            )
        )
        self.is_ready = True

    async def switch_model(
        self, model_name: str, api_mode: Optional[str] = None, ai_name: Optional[str] = None
    ) -> None:
        """Point the session at another model, regenerating if configured to."""
        self._commit_session(
            self.session.model_copy(
                update={"model_name": model_name, "api_mode": api_mode, "ai_name": ai_name}
            )
        )
        if self.auto_regen_after_switch_model and len(self.store) > 0:
            await self.retry()
