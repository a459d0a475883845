"""
Storage for pending one-time codes.

Only the SHA-256 of a code is kept, one pending code per mobile number.
Guess counting and consumption are single conditional writes so parallel
requests cannot both succeed on one code.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

logger = logging.getLogger(__name__)


class OtpCodeStore(ABC):
    """Abstract pending-code store."""

    @abstractmethod
    async def put(self, mobile: str, code_hash: str, expires_at: datetime) -> None:
        """Store a code, replacing any pending one for the same mobile."""
        pass

    @abstractmethod
    async def reserve_attempt(self, mobile: str, now: datetime, max_attempts: int) -> Optional[int]:
        """
        Count one guess against the pending code.

        Returns the new attempt total, or None when no unexpired code with
        attempts left is pending.
        """
        pass

    @abstractmethod
    async def consume(self, mobile: str, code_hash: str) -> bool:
        """Delete the pending code if it matches. True when it was removed."""
        pass


class MongoOtpCodeStore(OtpCodeStore):
    """Stores pending codes in the ``otpcodes`` collection."""

    COLLECTION_NAME = "otpcodes"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._codes_collection = db[self.COLLECTION_NAME]

    async def ensure_indexes(self) -> None:
        await self._codes_collection.create_index([("mobile", ASCENDING)], unique=True)
        # Mongo drops documents once expiresAt passes
        await self._codes_collection.create_index(
            [("expiresAt", ASCENDING)], expireAfterSeconds=0
        )

    async def put(self, mobile: str, code_hash: str, expires_at: datetime) -> None:
        await self._codes_collection.update_one(
            {"mobile": mobile},
            {
                "$set": {
                    "codeHash": code_hash,
                    "expiresAt": expires_at,
                    "attempts": 0,
                    "createdAt": datetime.now(timezone.utc),
                }
            },
            upsert=True,
        )

    async def reserve_attempt(self, mobile: str, now: datetime, max_attempts: int) -> Optional[int]:
        doc = await self._codes_collection.find_one_and_update(
            {
                "mobile": mobile,
                "expiresAt": {"$gt": now},
                "attempts": {"$lt": max_attempts},
            },
            {"$inc": {"attempts": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return doc["attempts"] if doc else None

    async def consume(self, mobile: str, code_hash: str) -> bool:
        doc = await self._codes_collection.find_one_and_delete(
            {"mobile": mobile, "codeHash": code_hash}
        )
        return doc is not None
