"""Keyed JSON store for durable sessions."""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from chatbox.conversation.models import Session
from chatbox.utils.errors import SessionNotFoundError
from chatbox.utils.logging import get_logger

logger = get_logger(__name__)

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


class SessionManager:
    """Stores one JSON document per session, keyed by session id."""

    def __init__(self, sessions_dir: Path):
        """Initialize session manager.

        Args:
            sessions_dir: Directory to store session files.
        """
        self.sessions_dir = Path(sessions_dir)
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"SessionManager initialized with dir: {self.sessions_dir}")

    def _get_session_path(self, session_id: str) -> Path:
        """Get the file path for a session id."""
        return self.sessions_dir / f"{_SAFE_ID.sub('_', session_id)}.json"

    def create_session(
        self,
        model_name: str,
        api_mode: Optional[str] = None,
        session_name: Optional[str] = None,
        question: Optional[str] = None,
    ) -> Session:
        """Create and store a new, empty session.

        Args:
            model_name: Model identifier.
            api_mode: Provider key the session talks to.
            session_name: Display name (defaults to the creation time).
            question: Initial in-flight question, if any.

        Returns:
            New Session object.
        """
        session = Session(model_name=model_name, api_mode=api_mode, question=question)
        if session_name:
            session.session_name = session_name
        self.save_session(session)
        logger.info(f"Created new session: {session.session_id}")
        return session

    def load_session(self, session_id: str) -> Optional[Session]:
        """Load a session from disk.

        Args:
            session_id: Session id.

        Returns:
            Session object if found and readable, None otherwise.
        """
        session_path = self._get_session_path(session_id)
        if not session_path.exists():
            return None

        try:
            with open(session_path, encoding="utf-8") as f:
                data = f.read()
            session = Session.model_validate_json(data)
            logger.debug(f"Loaded session: {session_id}")
            return session
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Corrupted session file {session_path}: {e}")
            return None
        except OSError as e:
            logger.warning(f"Failed to load session {session_id}: {e}")
            return None

    def require_session(self, session_id: str) -> Session:
        """Load a session or raise SessionNotFoundError."""
        session = self.load_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def save_session(self, session: Session) -> None:
        """Save a session to disk with atomic write.

        Args:
            session: Session object to save.
        """
        session.updated_at = datetime.now()
        session_path = self._get_session_path(session.session_id)
        tmp_path = session_path.with_suffix(".tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(session.model_dump_json(by_alias=True, exclude_none=True, indent=2))

            tmp_path.replace(session_path)
            logger.debug(
                f"Saved session {session.session_id} "
                f"({len(session.conversation_records)} records)"
            )
        except Exception as e:
            logger.error(f"Failed to save session {session.session_id}: {e}")
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def list_sessions(self) -> List[Session]:
        """List all stored sessions, most recently updated first."""
        sessions = []
        for path in self.sessions_dir.glob("*.json"):
            session = self.load_session(path.stem)
            if session is not None:
                sessions.append(session)

        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    def delete_session(self, session_id: str) -> bool:
        """Delete a session.

        Args:
            session_id: Session id to delete.

        Returns:
            True if deleted, False if not found.
        """
        session_path = self._get_session_path(session_id)

        if not session_path.exists():
            logger.warning(f"Session not found: {session_id}")
            return False

        try:
            session_path.unlink()
            logger.info(f"Deleted session: {session_id}")
            return True
        except OSError as e:
            logger.error(f"Failed to delete session {session_id}: {e}")
            return False

    def rename_session(self, session_id: str, session_name: str) -> bool:
        """Change a session's display name.

        Returns:
            True if renamed, False if the session does not exist.
        """
        session = self.load_session(session_id)
        if session is None:
            logger.warning(f"Session not found: {session_id}")
            return False
        session.session_name = session_name
        self.save_session(session)
        logger.info(f"Renamed session {session_id} -> {session_name}")
        return True
