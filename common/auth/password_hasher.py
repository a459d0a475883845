"""
Argon2id credential hashing.

Memory cost, iterations and parallelism are fixed at construction time;
the defaults cost tens of milliseconds per hash, which is acceptable for an
interactive login and expensive for an offline guesser.

Example:
    hasher = CredentialHasher()
    digest = hasher.hash("Abcdef1!")
    hasher.verify(digest, "Abcdef1!")  # True
"""

import logging

from argon2 import PasswordHasher, Type
from argon2.exceptions import (
    HashingError as Argon2HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

logger = logging.getLogger(__name__)


class HashingError(Exception):
    """Raised when a digest cannot be produced."""


class CredentialHasher:
    """
    One-way password hashing and verification.

    Never rejects a password for being weak; strength is validated
    separately by `common.utils.password.validate_password`.
    """

    DEFAULT_MEMORY_COST = 65536  # KiB (64 MB)
    DEFAULT_TIME_COST = 3
    DEFAULT_PARALLELISM = 4

    def __init__(
        self,
        memory_cost: int = DEFAULT_MEMORY_COST,
        time_cost: int = DEFAULT_TIME_COST,
        parallelism: int = DEFAULT_PARALLELISM,
    ):
        """
        Initialize the hasher.

        Args:
            memory_cost: Memory usage in KiB
            time_cost: Number of iterations
            parallelism: Number of parallel lanes
        """
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )

    @classmethod
    def from_settings(cls, settings) -> "CredentialHasher":
        return cls(
            memory_cost=settings.PASSWORD_HASH_MEMORY_COST,
            time_cost=settings.PASSWORD_HASH_TIME_COST,
            parallelism=settings.PASSWORD_HASH_PARALLELISM,
        )

    def hash(self, plaintext: str) -> str:
        """
        Compute a salted Argon2id digest.

        Raises:
            HashingError: If the underlying library fails
        """
        if not isinstance(plaintext, str):
            raise HashingError("Password must be a string")

        try:
            return self._hasher.hash(plaintext)
        except Argon2HashingError as e:
            logger.error(f"Password hashing failed: {e}")
            raise HashingError("Failed to hash password") from e

    def verify(self, digest: str, plaintext: str) -> bool:
        """
        Check a plaintext against a stored digest.

        Returns False (never raises) for a mismatch or a malformed digest.
        """
        if not digest or plaintext is None:
            return False

        try:
            return self._hasher.verify(digest, plaintext)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as e:
            logger.warning(f"Password verification failed on stored digest: {e}")
            return False

    def needs_rehash(self, digest: str) -> bool:
        """True when the digest was produced with different parameters."""
        try:
            return self._hasher.check_needs_rehash(digest)
        except InvalidHashError:
            return True
