"""Persistence adapters."""

from hirelocal.repositories.user_repository import UserRepository, MongoUserRepository
from hirelocal.repositories.otp_repository import OtpCodeStore, MongoOtpCodeStore

__all__ = [
    "UserRepository",
    "MongoUserRepository",
    "OtpCodeStore",
    "MongoOtpCodeStore",
]
