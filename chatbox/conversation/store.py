"""Ordered store of live conversation items.

Every mutation is expressed as a pure function ``items -> items`` that never
edits an item in place; ``ConversationStore`` only holds the current list and
notifies a listener after each change.
"""

from typing import Callable, Dict, List, Optional

from chatbox.conversation.models import ConversationItem, ItemKind
from chatbox.conversation.thinking import merge_thinking
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)

Items = List[ConversationItem]
Predicate = Callable[[ConversationItem], bool]
Transform = Callable[[Optional[ConversationItem]], ConversationItem]


def is_answer(item: ConversationItem) -> bool:
    return item.kind == "answer"


def is_answer_or_error(item: ConversationItem) -> bool:
    return item.kind in ("answer", "error")


def find_last_index(items: Items, predicate: Predicate) -> int:
    for index in range(len(items) - 1, -1, -1):
        if predicate(items[index]):
            return index
    return -1


def append(items: Items, item: ConversationItem) -> Items:
    return [*items, item]


def update_last(items: Items, predicate: Predicate, transform: Transform) -> Items:
    """Replace the open item of the current turn, or append one.

    Walks back from the tail. The first item matching ``predicate`` is
    replaced by ``transform(item)``. Hitting a question (or the head of the
    list) first means the current turn has no such item yet, so
    ``transform(None)`` is appended instead.
    """
    for index in range(len(items) - 1, -1, -1):
        item = items[index]
        if predicate(item):
            copy = list(items)
            copy[index] = transform(item)
            return copy
        if item.kind == "question":
            break
    return append(items, transform(None))


def update_answer(
    items: Items, value: str, appended: bool, kind: ItemKind, done: bool = False
) -> Items:
    """Set (or extend) the text of the trailing answer/error."""

    def transform(item: Optional[ConversationItem]) -> ConversationItem:
        if item is None:
            return ConversationItem(kind=kind, content=value, done=done)
        content = item.content + value if appended else value
        return item.model_copy(update={"kind": kind, "content": content, "done": done})

    return update_last(items, is_answer_or_error, transform)


def update_thinking(items: Items, patch: Dict) -> Items:
    """Merge a thinking patch into the trailing answer."""

    def transform(item: Optional[ConversationItem]) -> ConversationItem:
        if item is None:
            return ConversationItem(kind="answer", thinking=merge_thinking(None, patch))
        return item.model_copy(update={"thinking": merge_thinking(item.thinking, patch)})

    return update_last(items, is_answer, transform)


def push_error(items: Items, message: str) -> Items:
    """Show ``message`` as the error of the current turn.

    A trailing loading placeholder or error is replaced so a turn never
    carries two error items; otherwise a new error item is appended.
    """
    index = find_last_index(items, is_answer_or_error)
    if index != -1 and (items[index].is_loading or items[index].kind == "error"):
        return update_answer(items, message, appended=False, kind="error", done=True)
    return append(items, ConversationItem(kind="error", content=message, done=True))


def finish_last(items: Items) -> Items:
    """Mark the open answer of the current turn done. Idempotent."""
    for index in range(len(items) - 1, -1, -1):
        item = items[index]
        if item.kind == "question":
            break
        if item.kind == "answer":
            if item.done and not item.thinking.is_thinking:
                return items
            copy = list(items)
            copy[index] = item.model_copy(
                update={
                    "done": True,
                    "thinking": item.thinking.model_copy(update={"is_thinking": False}),
                }
            )
            return copy
        if item.kind == "error":
            break
    return items


def remove_last(items: Items, predicate: Predicate) -> Items:
    index = find_last_index(items, predicate)
    if index == -1:
        return items
    return items[:index] + items[index + 1 :]


class ConversationStore:
    """Holds the live item list of one conversation."""

    def __init__(
        self,
        items: Optional[Items] = None,
        on_change: Optional[Callable[[Items], None]] = None,
    ):
        self._items: Items = list(items or [])
        self._on_change = on_change

    @property
    def items(self) -> Items:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def _commit(self, items: Items) -> None:
        if items is self._items:
            return
        self._items = items
        if self._on_change:
            self._on_change(self.items)

    def append(self, item: ConversationItem) -> None:
        self._commit(append(self._items, item))

    def update_last(self, predicate: Predicate, transform: Transform) -> None:
        self._commit(update_last(self._items, predicate, transform))

    def update_answer(self, value: str, appended: bool, kind: ItemKind, done: bool = False) -> None:
        self._commit(update_answer(self._items, value, appended, kind, done))

    def update_thinking(self, patch: Dict) -> None:
        self._commit(update_thinking(self._items, patch))

    def push_error(self, message: str) -> None:
        self._commit(push_error(self._items, message))

    def finish_last(self) -> None:
        self._commit(finish_last(self._items))

    def remove_last(self, predicate: Predicate) -> None:
        self._commit(remove_last(self._items, predicate))

    def replace(self, items: Items) -> None:
        self._commit(list(items))

    def clear(self) -> None:
        self._commit([])

    def last_question(self) -> str:
        index = find_last_index(self._items, lambda item: item.kind == "question")
        return self._items[index].content if index != -1 else ""
