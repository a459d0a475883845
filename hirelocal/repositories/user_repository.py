"""
User persistence.

The auth core needs four things from storage: find by email, find by
mobile, find by id, and an atomic save of the whole document including the
embedded session list. MongoDB guarantees single-document atomicity, so no
application-level locking is used.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from common.utils.exceptions import ConflictException, NotFoundException
from hirelocal.models.user import User

logger = logging.getLogger(__name__)


class UserRepository(ABC):
    """
    Abstract user store.

    Implement this interface for each storage backend.
    """

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Load a user by id; None if missing or the id is malformed."""
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """Load a user by email (case-insensitive)."""
        pass

    @abstractmethod
    async def find_by_mobile(self, mobile: str) -> Optional[User]:
        """Load a user by mobile number."""
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        """
        Persist a new user.

        Raises:
            ValidationException: Neither email nor mobile set
            ConflictException: Email already registered
        """
        pass

    @abstractmethod
    async def save(self, user: User) -> User:
        """
        Replace the stored document with ``user``.

        Raises:
            ValidationException: Neither email nor mobile set
            NotFoundException: User no longer exists
        """
        pass


class MongoUserRepository(UserRepository):
    """Stores users in the ``users`` collection."""

    COLLECTION_NAME = "users"

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize MongoUserRepository.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._users_collection = db[self.COLLECTION_NAME]

    async def ensure_indexes(self) -> None:
        """Create lookup indexes. Safe to call on every startup."""
        await self._users_collection.create_index(
            [("email", ASCENDING)], unique=True, sparse=True
        )
        await self._users_collection.create_index([("mobile", ASCENDING)], sparse=True)
        await self._users_collection.create_index([("sessions.refreshTokenHash", ASCENDING)])
        logger.info("User indexes ensured")

    async def find_by_id(self, user_id: str) -> Optional[User]:
        try:
            oid = ObjectId(user_id)
        except (InvalidId, TypeError):
            return None

        doc = await self._users_collection.find_one({"_id": oid})
        return User.from_document(doc) if doc else None

    async def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        doc = await self._users_collection.find_one({"email": email.strip().lower()})
        return User.from_document(doc) if doc else None

    async def find_by_mobile(self, mobile: str) -> Optional[User]:
        if not mobile:
            return None
        doc = await self._users_collection.find_one({"mobile": mobile.strip()})
        return User.from_document(doc) if doc else None

    async def create(self, user: User) -> User:
        user.validate_identity()

        now = datetime.now(timezone.utc)
        doc = user.to_document()
        doc["createdAt"] = now
        doc["updatedAt"] = now

        try:
            await self._users_collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictException(
                message="User already exists with this email",
                code="USER_ALREADY_EXISTS"
            )

        logger.info(f"User created: {user.id}")
        return user

    async def save(self, user: User) -> User:
        user.validate_identity()

        doc = user.to_document()
        doc["updatedAt"] = datetime.now(timezone.utc)
        user_oid = doc.pop("_id")

        update = {"$set": doc}
        unset = self._unset_fields(user)
        if unset:
            update["$unset"] = unset

        try:
            result = await self._users_collection.update_one({"_id": user_oid}, update)
        except DuplicateKeyError:
            raise ConflictException(
                message="User already exists with this email",
                code="USER_ALREADY_EXISTS"
            )

        if result.matched_count == 0:
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")

        return user

    @staticmethod
    def _unset_fields(user: User) -> dict:
        """Optional identity fields cleared on the model are removed from the document."""
        unset = {}
        if not user.email:
            unset["email"] = ""
        if not user.mobile:
            unset["mobile"] = ""
        if not user.password_hash:
            unset["passwordHash"] = ""
        return unset
