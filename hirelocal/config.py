"""
HireLocal application settings.

Extends the base settings with token, session, password-hashing and OTP
configuration. Built once at startup and handed to services explicitly.
"""

import logging
from typing import Literal, Optional

from common.config import BaseAppSettings

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


class Settings(BaseAppSettings):
    """HireLocal-specific settings."""

    # ==========================================================================
    # Tokens
    # ==========================================================================
    ACCESS_TOKEN_SECRET: Optional[str] = None
    REFRESH_TOKEN_SECRET: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "worker-app"
    JWT_AUDIENCE: str = "worker-app-users"

    # ==========================================================================
    # Sessions
    # ==========================================================================
    REFRESH_COOKIE_NAME: str = "jid"
    REFRESH_COOKIE_PATH: str = "/"
    MAX_SESSIONS_PER_USER: int = 5

    # ==========================================================================
    # Password hashing (Argon2id)
    # ==========================================================================
    PASSWORD_HASH_MEMORY_COST: int = 65536  # KiB
    PASSWORD_HASH_TIME_COST: int = 3
    PASSWORD_HASH_PARALLELISM: int = 4

    # ==========================================================================
    # OTP
    # ==========================================================================
    # "fixed" checks against OTP_FIXED_CODE (development/testing only);
    # "one_time" issues single-use codes through an OtpSender.
    OTP_MODE: Literal["fixed", "one_time"] = "fixed"
    OTP_FIXED_CODE: str = "123456"
    OTP_LENGTH: int = 6
    OTP_TTL_SECONDS: int = 300
    OTP_MAX_ATTEMPTS: int = 5

    def refresh_cookie_max_age(self) -> int:
        """Cookie lifetime in seconds, matching the refresh token lifetime."""
        return self.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600

    def refresh_cookie_secure(self) -> bool:
        return self.is_production()

    def refresh_cookie_samesite(self) -> str:
        return "none" if self.is_production() else "lax"

    def _collect_errors(self) -> list:
        errors = super()._collect_errors()

        if not self.ACCESS_TOKEN_SECRET:
            errors.append("ACCESS_TOKEN_SECRET is required")
        if not self.REFRESH_TOKEN_SECRET:
            errors.append("REFRESH_TOKEN_SECRET is required")
        if (
            self.ACCESS_TOKEN_SECRET
            and self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET
        ):
            errors.append("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")

        for name in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET"):
            value = getattr(self, name)
            if value and len(value) < MIN_SECRET_LENGTH:
                logger.warning(f"{name} should be at least {MIN_SECRET_LENGTH} characters long")

        if self.OTP_MODE == "fixed" and self.is_production():
            logger.warning("OTP_MODE=fixed accepts a static code; use one_time in production")

        return errors


# Global settings instance
settings = Settings()
