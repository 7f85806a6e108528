"""Session persistence for chatbox."""

from chatbox.conversation.models import Record, Session
from chatbox.session.manager import SessionManager

__all__ = ["Session", "Record", "SessionManager"]
