"""Session storage for research runs."""

from datetime import datetime, timedelta
from functools import lru_cache

from researcher.config import settings
from researcher.models.research import Phase, Session, utcnow


class SessionStore:
    """Keeps research sessions in memory, keyed by request id.

    Note: For production, this should be backed by Redis or a database.
    """

    def __init__(self, ttl_hours: int = 24):
        self._sessions: dict[str, Session] = {}
        self._ttl = timedelta(hours=ttl_hours)

    async def save(self, session: Session) -> Session:
        """Insert or replace a session."""
        session.updated_at = utcnow()
        self._sessions[session.request_id] = session
        return session

    async def get(self, request_id: str) -> Session | None:
        """Get a session by request id."""
        session = self._sessions.get(request_id)
        if session and self._is_expired(session, utcnow()):
            del self._sessions[request_id]
            return None
        return session

    def holds(self, session: Session) -> bool:
        """True when this exact session object is the stored one for its id."""
        return self._sessions.get(session.request_id) is session

    async def delete(self, request_id: str) -> bool:
        """Delete a session."""
        if request_id in self._sessions:
            del self._sessions[request_id]
            return True
        return False

    async def list_sessions(
        self,
        phase: Phase | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Session], int]:
        """List live sessions, newest first, with optional phase filtering."""
        now = utcnow()
        sessions = [s for s in self._sessions.values() if not self._is_expired(s, now)]

        if phase:
            sessions = [s for s in sessions if s.phase == phase]

        sessions.sort(key=lambda s: s.created_at, reverse=True)

        total = len(sessions)
        return sessions[offset : offset + limit], total

    async def cleanup_expired(self) -> int:
        """Remove expired sessions. Returns count of removed sessions."""
        now = utcnow()
        expired = [
            rid for rid, session in self._sessions.items() if self._is_expired(session, now)
        ]
        for rid in expired:
            del self._sessions[rid]
        return len(expired)

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return now - session.created_at > self._ttl


@lru_cache
def get_session_store() -> SessionStore:
    """Get the session store singleton."""
    return SessionStore(ttl_hours=settings.session_ttl_hours)
