"""Projection of live conversation items onto durable session records."""

from typing import List, Sequence

from chatbox.conversation.models import (
    ConversationItem,
    Record,
    Session,
    ThinkingData,
    ThinkingState,
)
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)


def resolve_answer(item: ConversationItem) -> str:
    """Text saved for an answer: actual content, else non-placeholder content."""
    if item.kind != "answer":
        return ""
    if item.thinking.actual_content.strip():
        return item.thinking.actual_content
    if item.content.strip() and not item.is_loading:
        return item.content
    return ""


def _has_question(records: List[Record], question: str) -> bool:
    return any(record.question == question for record in records)


def _should_record(
    question: ConversationItem, answer: ConversationItem, content: str, records: List[Record]
) -> bool:
    if answer.kind == "answer" and content and answer.done:
        return True
    if answer.kind == "error" and not _has_question(records, question.content):
        return True
    if answer.kind == "answer" and answer.thinking.has_reasoning:
        return True
    if answer.kind == "answer" and content and not answer.done:
        return not _has_question(records, question.content)
    return False


def project(items: Sequence[ConversationItem], session: Session) -> Session:
    """Derive the session's records from the live item list.

    Items are read as (question, answer-or-error) pairs at stride 2. A pair is
    recorded when the answer finished with content, when it is an error whose
    question has no record yet, when it carries reasoning (partial thinking
    survives a reload), or when it is still streaming with content and its
    question has no record yet.

    The input items and ``session`` are left untouched; the result is a new
    session with only ``conversation_records`` replaced.
    """
    records: List[Record] = []

    for index in range(0, len(items), 2):
        question = items[index]
        answer = items[index + 1] if index + 1 < len(items) else None
        if question.kind != "question" or answer is None or answer.kind == "question":
            continue

        content = resolve_answer(answer)
        if not _should_record(question, answer, content, records):
            continue

        record = Record(question=question.content, answer=content)
        if answer.thinking.has_reasoning:
            thinking = answer.thinking
            fallback = "" if answer.is_loading else answer.content
            record.thinking_data = ThinkingData(
                reasoning_content=thinking.reasoning_content,
                actual_content=thinking.actual_content or fallback,
                thinking_time=thinking.thinking_time,
            )
            if not record.answer and record.thinking_data.actual_content:
                record.answer = record.thinking_data.actual_content
        if answer.kind == "error":
            record.is_error = True
        records.append(record)

    return session.model_copy(update={"conversation_records": records})


def records_changed(left: Sequence[Record], right: Sequence[Record]) -> bool:
    """Deep structural comparison of two record lists."""
    return [record.to_wire() for record in left] != [record.to_wire() for record in right]


def restore_items(session: Session) -> List[ConversationItem]:
    """Rebuild the live item list from a stored session."""
    items: List[ConversationItem] = []
    for record in session.conversation_records:
        items.append(ConversationItem.question(record.question))

        content = record.answer
        thinking = ThinkingState()
        if record.thinking_data is not None:
            data = record.thinking_data
            thinking = ThinkingState(
                reasoning_content=data.reasoning_content,
                actual_content=data.actual_content or record.answer,
                thinking_time=data.thinking_time,
                is_thinking=False,
                has_reasoning=True,
            )
            content = thinking.actual_content or record.answer

        kind = "error" if record.is_error else "answer"
        items.append(ConversationItem(kind=kind, content=content, done=True, thinking=thinking))

    logger.debug(f"Restored {len(items)} items from session {session.session_id}")
    return items
