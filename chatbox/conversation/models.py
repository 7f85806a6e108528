"""Pydantic models for live conversation items and durable sessions.

Live state (``ConversationItem`` / ``ThinkingState``) is what the card renders
while an answer streams in. Durable state (``Session`` / ``Record``) is what
gets written to the session store. Both serialize with camelCase keys, which
is also the shape used on the message channel.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ItemKind = Literal["question", "answer", "error"]

# Marker carried by an answer item until the first real content arrives
LOADING_MARKER = "chatbox-loading"
LOADING_PLACEHOLDER = f'<p class="{LOADING_MARKER}">Waiting for response...</p>'


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump using the persisted/wire key names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ThinkingState(CamelModel):
    """Reasoning-channel state owned by a single answer item."""

    reasoning_content: str = ""
    actual_content: str = ""
    thinking_time: int = 0
    is_thinking: bool = False
    has_reasoning: bool = False


class ConversationItem(CamelModel):
    """One entry in the live transcript."""

    kind: ItemKind
    content: str = ""
    done: bool = False
    thinking: ThinkingState = Field(default_factory=ThinkingState)

    @property
    def is_loading(self) -> bool:
        return LOADING_MARKER in self.content

    @classmethod
    def question(cls, text: str) -> "ConversationItem":
        return cls(kind="question", content=text, done=True)

    @classmethod
    def placeholder(cls) -> "ConversationItem":
        return cls(kind="answer", content=LOADING_PLACEHOLDER)


class ThinkingData(CamelModel):
    """Reasoning snapshot embedded in a record. Never saved mid-thinking."""

    reasoning_content: str = ""
    actual_content: str = ""
    thinking_time: int = 0
    has_reasoning: Literal[True] = True
    is_thinking: Literal[False] = False


class Record(CamelModel):
    """Durable projection of one (question, answer) pair."""

    question: str
    answer: str = ""
    is_error: Optional[bool] = None
    thinking_data: Optional[ThinkingData] = None


class Session(CamelModel):
    """Durable conversation aggregate."""

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_name: str = Field(default_factory=lambda: datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    model_name: str = "gpt-4o"
    api_mode: Optional[str] = None
    ai_name: Optional[str] = None
    question: Optional[str] = None
    is_retry: bool = False
    conversation_id: Optional[str] = None
    auto_clean: bool = True
    conversation_records: List[Record] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def merged(self, patch: dict) -> "Session":
        """Return a copy with wire-shaped ``patch`` fields applied."""
        data = self.to_wire()
        data.update(patch)
        return Session.model_validate(data)
