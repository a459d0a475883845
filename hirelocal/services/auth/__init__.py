"""Authentication services."""

from hirelocal.services.auth.auth_service import AuthService, AuthResult
from hirelocal.services.auth.session_store import SessionStore
from hirelocal.services.auth.otp import (
    OtpVerifier,
    OtpSender,
    FixedOtpVerifier,
    OneTimeOtpVerifier,
    LoggingOtpSender,
)

__all__ = [
    "AuthService",
    "AuthResult",
    "SessionStore",
    "OtpVerifier",
    "OtpSender",
    "FixedOtpVerifier",
    "OneTimeOtpVerifier",
    "LoggingOtpSender",
]
