"""
User aggregate and its embedded login sessions.

Sessions live inside the user document (no separate collection). Each one
is keyed by the SHA-256 of the refresh identifier currently bound to it; the
raw identifier and the refresh token itself are never stored.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.utils.exceptions import ValidationException


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(ObjectId())


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands back naive datetimes unless the client is tz-aware."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class UserRole(str, Enum):
    """Account role."""

    user = "user"
    worker = "worker"
    customer = "customer"
    admin = "admin"


class Session(BaseModel):
    """One authenticated device/login."""

    id: str = Field(default_factory=_new_id)
    device_info: str = ""
    refresh_token_hash: str
    created_at: datetime = Field(default_factory=_utcnow)
    last_used_at: datetime = Field(default_factory=_utcnow)
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def public(self) -> dict:
        """Session metadata safe to return to the owner (no hash)."""
        return {
            "id": self.id,
            "deviceInfo": self.device_info,
            "createdAt": self.created_at,
            "lastUsedAt": self.last_used_at,
            "expiresAt": self.expires_at,
        }

    def to_document(self) -> dict:
        return {
            "_id": ObjectId(self.id),
            "deviceInfo": self.device_info,
            "refreshTokenHash": self.refresh_token_hash,
            "createdAt": self.created_at,
            "lastUsedAt": self.last_used_at,
            "expiresAt": self.expires_at,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Session":
        return cls(
            id=str(doc["_id"]),
            device_info=doc.get("deviceInfo") or "",
            refresh_token_hash=doc["refreshTokenHash"],
            created_at=_as_utc(doc.get("createdAt")) or _utcnow(),
            last_used_at=_as_utc(doc.get("lastUsedAt")) or _utcnow(),
            expires_at=_as_utc(doc["expiresAt"]),
        )


class SessionList:
    """
    Ordered, bounded list of sessions, oldest first.

    Insertion past the cap evicts from the front so only the most recent
    ``cap`` sessions remain.
    """

    def __init__(self, sessions: Optional[List[Session]] = None):
        self._sessions: List[Session] = list(sessions or [])

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(self._sessions)

    def __getitem__(self, index: int) -> Session:
        return self._sessions[index]

    def insert_with_cap(self, session: Session, cap: int) -> List[Session]:
        """
        Append ``session`` and evict the oldest entries beyond ``cap``.

        Returns:
            The evicted sessions, oldest first
        """
        if cap < 1:
            raise ValueError("Session cap must be at least 1")

        self._sessions.append(session)
        overflow = len(self._sessions) - cap
        if overflow <= 0:
            return []

        evicted = self._sessions[:overflow]
        self._sessions = self._sessions[overflow:]
        return evicted

    def find_by_hash(self, refresh_token_hash: str) -> Optional[Session]:
        for session in self._sessions:
            if session.refresh_token_hash == refresh_token_hash:
                return session
        return None

    def find_by_id(self, session_id: str) -> Optional[Session]:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def remove_by_hash(self, refresh_token_hash: str) -> bool:
        before = len(self._sessions)
        self._sessions = [
            s for s in self._sessions if s.refresh_token_hash != refresh_token_hash
        ]
        return len(self._sessions) < before

    def remove_by_id(self, session_id: str) -> bool:
        before = len(self._sessions)
        self._sessions = [s for s in self._sessions if s.id != session_id]
        return len(self._sessions) < before

    def remove_expired(self, now: datetime) -> List[Session]:
        expired = [s for s in self._sessions if s.is_expired(now)]
        if expired:
            self._sessions = [s for s in self._sessions if not s.is_expired(now)]
        return expired

    def clear(self) -> int:
        count = len(self._sessions)
        self._sessions = []
        return count

    def to_documents(self) -> List[dict]:
        return [s.to_document() for s in self._sessions]


class User(BaseModel):
    """
    User identity record.

    Business Rules:
    - At least one of email or mobile must be set
    - Email is unique and stored lower-cased
    - password_hash is present only for email/password accounts
    - Sessions are capped (see SessionStore)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default_factory=_new_id)
    email: Optional[str] = None
    mobile: Optional[str] = None
    password_hash: Optional[str] = None
    role: UserRole = UserRole.user
    register_date: datetime = Field(default_factory=_utcnow)
    last_login: Optional[datetime] = None
    worker_profile: Optional[str] = None
    verified: bool = False
    sessions: SessionList = Field(default_factory=SessionList)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        return value or None

    @field_validator("mobile")
    @classmethod
    def normalize_mobile(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    def validate_identity(self) -> None:
        """
        Raises:
            ValidationException: Neither email nor mobile is set
        """
        if not self.email and not self.mobile:
            raise ValidationException(
                message="Either email or mobile is required",
                code="IDENTITY_REQUIRED",
            )

    @property
    def has_profile(self) -> bool:
        return self.worker_profile is not None

    def public_profile(self) -> dict:
        """Fields safe to return to the account owner."""
        return {
            "id": self.id,
            "email": self.email,
            "mobile": self.mobile,
            "role": self.role.value,
            "registerDate": self.register_date,
            "lastLogin": self.last_login,
            "workerProfile": self.worker_profile,
            "hasProfile": self.has_profile,
        }

    def to_document(self) -> dict:
        doc = {
            "_id": ObjectId(self.id),
            "role": self.role.value,
            "registerDate": self.register_date,
            "lastLogin": self.last_login,
            "verified": self.verified,
            "sessions": self.sessions.to_documents(),
            "workerProfile": ObjectId(self.worker_profile) if self.worker_profile else None,
        }
        # Unset keys, not nulls, so the sparse unique index on email holds
        if self.email:
            doc["email"] = self.email
        if self.mobile:
            doc["mobile"] = self.mobile
        if self.password_hash:
            doc["passwordHash"] = self.password_hash
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        worker_profile = doc.get("workerProfile")
        return cls(
            id=str(doc["_id"]),
            email=doc.get("email"),
            mobile=doc.get("mobile"),
            password_hash=doc.get("passwordHash"),
            role=UserRole(doc.get("role", UserRole.user.value)),
            register_date=_as_utc(doc.get("registerDate")) or _utcnow(),
            last_login=_as_utc(doc.get("lastLogin")),
            worker_profile=str(worker_profile) if worker_profile else None,
            verified=doc.get("verified", False),
            sessions=SessionList(
                [Session.from_document(s) for s in doc.get("sessions", [])]
            ),
        )
