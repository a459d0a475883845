"""
One-time code verification for mobile login.

Two verifiers are provided:

- FixedOtpVerifier: accepts a single configured code. Development and test
  deployments only.
- OneTimeOtpVerifier: issues a random numeric code per request, stores its
  hash with a short expiry, and accepts it once.

Delivery is delegated to an OtpSender. Only a logging sender ships here;
an SMS integration must be supplied by the deployment.
"""

import hashlib
import hmac
import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from common.utils.exceptions import BadRequestException
from hirelocal.repositories.otp_repository import OtpCodeStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _hash_code(mobile: str, code: str) -> str:
    # Bind the code to the number so one hash cannot be replayed for another mobile
    return hashlib.sha256(f"{mobile}:{code}".encode("utf-8")).hexdigest()


class OtpSender(ABC):
    """Delivers a code to a mobile number."""

    @abstractmethod
    async def send(self, mobile: str, code: str) -> None:
        pass


class LoggingOtpSender(OtpSender):
    """Writes the code to the debug log. Development only."""

    async def send(self, mobile: str, code: str) -> None:
        logger.debug(f"OTP for {mobile[-4:].rjust(len(mobile), '*')}: {code}")


class OtpVerifier(ABC):
    """Checks a submitted code for a mobile number."""

    @abstractmethod
    async def verify(self, mobile: str, code: str) -> bool:
        pass

    async def issue(self, mobile: str) -> None:
        raise BadRequestException(
            message="OTP issuance is disabled in this environment",
            code="OTP_ISSUANCE_DISABLED"
        )


class FixedOtpVerifier(OtpVerifier):
    """Accepts one configured code for every number."""

    def __init__(self, code: str):
        if not code:
            raise ValueError("A fixed OTP code is required")
        self._code = code

    async def verify(self, mobile: str, code: str) -> bool:
        if not code:
            return False
        return hmac.compare_digest(code.encode("utf-8"), self._code.encode("utf-8"))


class OneTimeOtpVerifier(OtpVerifier):
    """
    Issues short-lived, single-use codes.

    Business Rules:
    - One pending code per mobile; issuing again replaces it
    - A code is consumed on the first successful verify
    - At most max_attempts guesses are compared against a code, including
      guesses that arrive in parallel
    - Expired codes are rejected
    """

    def __init__(
        self,
        store: OtpCodeStore,
        sender: OtpSender,
        length: int = 6,
        ttl: timedelta = timedelta(minutes=5),
        max_attempts: int = 5,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize OneTimeOtpVerifier.

        Args:
            store: Pending-code storage
            sender: Code delivery
            length: Number of digits
            ttl: Code lifetime
            max_attempts: Guesses compared against one code before it locks
            clock: Returns the current UTC time
        """
        self._store = store
        self._sender = sender
        self.length = length
        self.ttl = ttl
        self.max_attempts = max_attempts
        self._clock = clock or _utcnow

    async def issue(self, mobile: str) -> None:
        code = "".join(secrets.choice("0123456789") for _ in range(self.length))
        expires_at = self._clock() + self.ttl

        await self._store.put(mobile, _hash_code(mobile, code), expires_at)
        await self._sender.send(mobile, code)
        logger.info(f"OTP issued, expires at {expires_at.isoformat()}")

    async def verify(self, mobile: str, code: str) -> bool:
        if not code:
            return False

        # Every guess is counted before it is compared
        attempts = await self._store.reserve_attempt(mobile, self._clock(), self.max_attempts)
        if attempts is None:
            return False

        if await self._store.consume(mobile, _hash_code(mobile, code)):
            return True

        if attempts >= self.max_attempts:
            logger.warning("OTP locked after too many failed attempts")
        return False
