"""Session bookkeeping for the SSE transport."""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Dict, List, Optional, Set

from ..core.exceptions import SessionNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SessionState(Enum):
    """Session lifecycle states."""

    OPEN = "open"
    CLOSED = "closed"


@dataclass
class Session:
    """One open stream connection.

    ``outbound`` holds serialized JSON-RPC messages waiting to be written to
    the stream; ``None`` tells the stream writer to stop.
    """

    id: str
    outbound: "asyncio.Queue[Optional[str]]" = field(default_factory=asyncio.Queue)
    state: SessionState = SessionState.OPEN
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    client_info: Dict[str, object] = field(default_factory=dict)
    initialized: bool = False
    tasks: Set["asyncio.Task"] = field(default_factory=set)

    @property
    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    def send(self, message: str) -> bool:
        """Queue a message for the stream. Returns False once closed."""
        if not self.is_open:
            return False
        self.outbound.put_nowait(message)
        return True


class SessionManager:
    """Maps session identifiers to open streams.

    Insert, lookup and removal are atomic under one lock. Identifiers are
    random uuid4 values checked against the open sessions; closing a session
    drops all state kept for it.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = Lock()

    def _new_id(self) -> str:
        while True:
            session_id = uuid.uuid4().hex
            if session_id not in self._sessions:
                return session_id

    def open(self) -> Session:
        """Create and register a new session."""
        with self._lock:
            session = Session(id=self._new_id())
            self._sessions[session.id] = session
        logger.info("Session opened", extra={"session_id": session.id})
        return session

    def get(self, session_id: Optional[str]) -> Session:
        """
        Look up an open session.

        Raises:
            SessionNotFoundError: If the id was never issued or is closed
        """
        with self._lock:
            session = self._sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(f"No transport found for sessionId {session_id}")
        return session

    def close(self, session_id: str) -> bool:
        """Remove a session. Returns False if it was not open."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return False
            session.state = SessionState.CLOSED

        session.outbound.put_nowait(None)
        logger.info("Session closed", extra={"session_id": session_id})
        return True

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
