"""Shared test fixtures for HireLocal auth tests."""

import asyncio
import pytest
from datetime import datetime, timezone
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from common.auth.password_hasher import CredentialHasher
from common.auth.tokens import TokenService
from common.utils.exceptions import ConflictException, NotFoundException
from hirelocal.config import Settings
from hirelocal.dependencies import (
    get_auth_middleware,
    get_auth_service,
    get_otp_verifier,
    get_settings,
    get_token_service,
)
from hirelocal.middleware.auth import AuthMiddleware
from hirelocal.models.user import User
from hirelocal.repositories.otp_repository import OtpCodeStore
from hirelocal.repositories.user_repository import UserRepository
from hirelocal.services.auth.auth_service import AuthService
from hirelocal.services.auth.otp import FixedOtpVerifier
from hirelocal.services.auth.session_store import SessionStore

TEST_OTP = "123456"


# ─────────────────────────────────────────────────────────────────
# In-memory stores
# ─────────────────────────────────────────────────────────────────


class InMemoryUserRepository(UserRepository):
    """Keeps Mongo-shaped documents so every load goes through from_document."""

    def __init__(self):
        self.documents: Dict[str, dict] = {}
        self.save_count = 0

    async def find_by_id(self, user_id: str) -> Optional[User]:
        doc = self.documents.get(user_id)
        return User.from_document(doc) if doc else None

    async def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        email = email.strip().lower()
        for doc in self.documents.values():
            if doc.get("email") == email:
                return User.from_document(doc)
        return None

    async def find_by_mobile(self, mobile: str) -> Optional[User]:
        if not mobile:
            return None
        for doc in self.documents.values():
            if doc.get("mobile") == mobile.strip():
                return User.from_document(doc)
        return None

    async def create(self, user: User) -> User:
        user.validate_identity()
        if user.email and await self.find_by_email(user.email):
            raise ConflictException(
                message="User already exists with this email",
                code="USER_ALREADY_EXISTS"
            )
        self.documents[user.id] = user.to_document()
        return user

    async def save(self, user: User) -> User:
        user.validate_identity()
        if user.id not in self.documents:
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")
        self.documents[user.id] = user.to_document()
        self.save_count += 1
        return user


class PendingCode:
    def __init__(self, code_hash: str, expires_at: datetime):
        self.code_hash = code_hash
        self.expires_at = expires_at
        self.attempts = 0


class InMemoryOtpCodeStore(OtpCodeStore):
    """Yields once per call, like a database round trip, then applies the write whole."""

    def __init__(self):
        self.records: Dict[str, PendingCode] = {}

    async def put(self, mobile: str, code_hash: str, expires_at: datetime) -> None:
        await asyncio.sleep(0)
        self.records[mobile] = PendingCode(code_hash, expires_at)

    async def reserve_attempt(self, mobile: str, now: datetime, max_attempts: int) -> Optional[int]:
        await asyncio.sleep(0)
        record = self.records.get(mobile)
        if record is None or record.expires_at <= now or record.attempts >= max_attempts:
            return None
        record.attempts += 1
        return record.attempts

    async def consume(self, mobile: str, code_hash: str) -> bool:
        await asyncio.sleep(0)
        record = self.records.get(mobile)
        if record is None or record.code_hash != code_hash:
            return False
        del self.records[mobile]
        return True


class RecordingOtpSender:
    def __init__(self):
        self.sent = []

    async def send(self, mobile: str, code: str) -> None:
        self.sent.append((mobile, code))


# ─────────────────────────────────────────────────────────────────
# Core fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ENVIRONMENT="development",
        ACCESS_TOKEN_SECRET="test-access-secret-0123456789abcdef0123",
        REFRESH_TOKEN_SECRET="test-refresh-secret-0123456789abcdef012",
        PASSWORD_HASH_MEMORY_COST=1024,
        PASSWORD_HASH_TIME_COST=1,
        PASSWORD_HASH_PARALLELISM=1,
        OTP_MODE="fixed",
        OTP_FIXED_CODE=TEST_OTP,
    )


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def hasher(settings):
    return CredentialHasher.from_settings(settings)


@pytest.fixture
def token_service(settings):
    return TokenService.from_settings(settings)


@pytest.fixture
def session_store(settings):
    return SessionStore.from_settings(settings)


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def otp_store():
    return InMemoryOtpCodeStore()


@pytest.fixture
def otp_sender():
    return RecordingOtpSender()


@pytest.fixture
def otp_verifier():
    return FixedOtpVerifier(TEST_OTP)


@pytest.fixture
def auth_service(user_repo, hasher, token_service, session_store, otp_verifier):
    return AuthService(
        users=user_repo,
        hasher=hasher,
        tokens=token_service,
        sessions=session_store,
        otp_verifier=otp_verifier,
    )


# ─────────────────────────────────────────────────────────────────
# Mongo mocks
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, insert_one,
    # update_one etc. stay as AsyncMock.
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db


# ─────────────────────────────────────────────────────────────────
# HTTP fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def app(settings, auth_service, token_service, otp_verifier):
    from api import create_app

    application = create_app(settings)
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_auth_service] = lambda: auth_service
    application.dependency_overrides[get_token_service] = lambda: token_service
    application.dependency_overrides[get_otp_verifier] = lambda: otp_verifier
    application.dependency_overrides[get_auth_middleware] = lambda: AuthMiddleware(token_service)
    return application


@pytest.fixture
def client(app):
    # No context manager: the lifespan would connect to MongoDB
    return TestClient(app)
