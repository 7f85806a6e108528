from pathlib import Path
from typing import Optional

from chatbox.config.config_manager import ConfigManager
from chatbox.conversation.models import Session
from chatbox.core.conversation import ConversationCard
from chatbox.core.provider_manager import ProviderManager
from chatbox.session.manager import SessionManager
from chatbox.transport.base import Transport
from chatbox.transport.local import LocalTransport
from chatbox.transport.port import PortTransport
from chatbox.transport.worker import BackgroundWorker
from chatbox.utils.errors import ConfigError
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


def create_transport(mode: str, worker: BackgroundWorker) -> Transport:
    """Pick the transport strategy named by configuration"""
    if mode == "port":
        return PortTransport(worker)
    if mode == "local":
        return LocalTransport(worker)
    raise ConfigError(f"Unknown transport mode '{mode}'", hint="Use 'port' or 'local'")


class ChatboxApp:
    """
    Main application class that manages all components and their lifecycles.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_manager = ConfigManager(config_path) if config_path else ConfigManager()
        self.provider_manager = ProviderManager(self.config_manager)
        self.session_manager = SessionManager(
            Path(self.config_manager.config.sessions.storage_path).expanduser()
        )
        logger.debug("ChatboxApp initialized")

    @classmethod
    def create(cls, config_path: Optional[str] = None) -> "ChatboxApp":
        """
        Factory method to create a ChatboxApp instance.
        """
        return cls(config_path)

    def new_session(
        self, provider: Optional[str] = None, model: Optional[str] = None
    ) -> Session:
        provider = provider or self.config_manager.get_default_provider()
        model = model or self.config_manager.get_default_model(provider)
        return Session(model_name=model, api_mode=provider, ai_name=f"{provider}/{model}")

    def create_card(
        self,
        session: Session,
        question: Optional[str] = None,
        transport_mode: Optional[str] = None,
    ) -> ConversationCard:
        """Wire a conversation card to a fresh transport and the session store"""
        config = self.config_manager.config
        worker = BackgroundWorker(self.provider_manager, config)
        transport = create_transport(transport_mode or config.transport.mode, worker)

        on_update = self.session_manager.save_session if config.sessions.enabled else None
        card = ConversationCard(
            session,
            transport,
            question=question,
            on_update=on_update,
            retry_cooldown=config.conversation.retry_cooldown_seconds,
            auto_regen_after_switch_model=config.conversation.auto_regen_after_switch_model,
        )
        if isinstance(transport, PortTransport):
            transport.on_disconnect = card.handle_disconnect
        return card
