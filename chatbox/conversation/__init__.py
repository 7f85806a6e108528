"""Live conversation items, their store, and the durable projection."""

from chatbox.conversation.models import (
    ConversationItem,
    Record,
    Session,
    ThinkingData,
    ThinkingState,
)
from chatbox.conversation.reconciler import project, records_changed, restore_items
from chatbox.conversation.store import ConversationStore

__all__ = [
    "ConversationItem",
    "ConversationStore",
    "Record",
    "Session",
    "ThinkingData",
    "ThinkingState",
    "project",
    "records_changed",
    "restore_items",
]
