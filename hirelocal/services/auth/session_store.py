"""
Session management for user authentication.

Manages session lifecycle within the User aggregate's embedded session list:
none -> active -> (rotated)* -> revoked | expired.

Operations mutate the in-memory User; callers persist with one
``UserRepository.save`` so each request is a single document write.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from hirelocal.models.user import Session, User

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    Handles session CRUD on a user.
    """

    DEFAULT_MAX_SESSIONS = 5
    DEFAULT_EXPIRATION_DAYS = 30

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        session_ttl: timedelta = timedelta(days=DEFAULT_EXPIRATION_DAYS),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize SessionStore.

        Args:
            max_sessions: Sessions kept per user; older ones are evicted
            session_ttl: Absolute lifetime of a session from creation
            clock: Returns the current UTC time
        """
        self.max_sessions = max_sessions
        self.session_ttl = session_ttl
        self._clock = clock or _utcnow

    @classmethod
    def from_settings(cls, settings, clock: Optional[Callable[[], datetime]] = None) -> "SessionStore":
        return cls(
            max_sessions=settings.MAX_SESSIONS_PER_USER,
            session_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            clock=clock,
        )

    def now(self) -> datetime:
        return self._clock()

    def add_session(self, user: User, descriptor: str, rid_hash: str) -> Session:
        """
        Append a new session and enforce the per-user cap.

        Args:
            user: Session owner
            descriptor: Free-text device description
            rid_hash: SHA-256 of the refresh identifier

        Returns:
            The created session
        """
        now = self._clock()
        session = Session(
            device_info=descriptor,
            refresh_token_hash=rid_hash,
            created_at=now,
            last_used_at=now,
            expires_at=now + self.session_ttl,
        )

        evicted = user.sessions.insert_with_cap(session, self.max_sessions)
        if evicted:
            logger.info(f"Evicted {len(evicted)} oldest session(s) for user {user.id}")

        return session

    def find_session_by_hash(self, user: User, rid_hash: str) -> Optional[Session]:
        return user.sessions.find_by_hash(rid_hash)

    def rotate_session(self, session: Session, new_rid_hash: str) -> Session:
        """
        Bind the session to a new refresh identifier.

        Expiry is left unchanged: rotation keeps a session usable but never
        extends its absolute lifetime.
        """
        session.refresh_token_hash = new_rid_hash
        session.last_used_at = self._clock()
        return session

    def remove_session(self, user: User, rid_hash: str) -> bool:
        return user.sessions.remove_by_hash(rid_hash)

    def remove_session_by_id(self, user: User, session_id: str) -> bool:
        return user.sessions.remove_by_id(session_id)

    def remove_all_sessions(self, user: User) -> int:
        return user.sessions.clear()

    def list_sessions(self, user: User) -> List[dict]:
        """Sanitized session metadata; the hash is never exposed."""
        return [session.public() for session in user.sessions]

    def cleanup_expired(self, user: User) -> int:
        """
        Drop sessions past their expiry.

        Returns:
            Number of sessions removed
        """
        removed = user.sessions.remove_expired(self._clock())
        if removed:
            logger.info(f"Cleaned up {len(removed)} expired sessions for user {user.id}")
        return len(removed)
