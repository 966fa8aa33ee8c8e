"""
Session Registry

Process-wide map of conversion sessions keyed by UUID. Sessions live for
the lifetime of the process; nothing is persisted.
"""

import uuid
from typing import Dict, Optional

from streamin.pipeline.session import Session
from streamin.schemas.session import SessionInfo

from .locks import Guarded


class SessionRegistry:
    """Thread-safe registry of started sessions."""

    def __init__(self) -> None:
        self._sessions: Guarded[Dict[uuid.UUID, Session]] = Guarded({})

    def add(self, session: Session) -> str:
        """Register a session and return its new id."""
        session_id = uuid.uuid4()
        with self._sessions.write() as sessions:
            sessions[session_id] = session
        return str(session_id)

    def get(self, session_id: str) -> Optional[Session]:
        """Look a session up by id; malformed ids are simply unknown."""
        try:
            key = uuid.UUID(session_id)
        except ValueError:
            return None
        with self._sessions.read() as sessions:
            return sessions.get(key)

    def infos(self) -> Dict[str, SessionInfo]:
        """Status of every registered session."""
        with self._sessions.read() as sessions:
            items = list(sessions.items())
        return {str(key): session.get_info() for key, session in items}

    def __len__(self) -> int:
        with self._sessions.read() as sessions:
            return len(sessions)
