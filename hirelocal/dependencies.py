"""
FastAPI dependencies for the auth system.

Services are built once at startup by `init_auth_services` and handed out
through the getters below; tests replace the getters via
``app.dependency_overrides``.
"""

from datetime import timedelta
from typing import Annotated, Callable, Optional

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.auth.password_hasher import CredentialHasher
from common.auth.tokens import TokenService
from hirelocal.config import Settings
from hirelocal.middleware.auth import AuthMiddleware, CurrentUser
from hirelocal.repositories.otp_repository import MongoOtpCodeStore
from hirelocal.repositories.user_repository import MongoUserRepository
from hirelocal.services.auth.auth_service import AuthService
from hirelocal.services.auth.otp import (
    FixedOtpVerifier,
    LoggingOtpSender,
    OneTimeOtpVerifier,
    OtpVerifier,
)
from hirelocal.services.auth.session_store import SessionStore


_settings: Settings | None = None
_token_service: TokenService | None = None
_auth_service: AuthService | None = None
_auth_middleware: AuthMiddleware | None = None
_otp_verifier: OtpVerifier | None = None


def build_otp_verifier(db: AsyncIOMotorDatabase, settings: Settings) -> OtpVerifier:
    """Pick the OTP verifier for ``settings.OTP_MODE``."""
    if settings.OTP_MODE == "one_time":
        return OneTimeOtpVerifier(
            store=MongoOtpCodeStore(db),
            sender=LoggingOtpSender(),
            length=settings.OTP_LENGTH,
            ttl=timedelta(seconds=settings.OTP_TTL_SECONDS),
            max_attempts=settings.OTP_MAX_ATTEMPTS,
        )
    return FixedOtpVerifier(settings.OTP_FIXED_CODE)


def init_auth_services(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """
    Initialize auth services with database and settings.

    Called once at application startup.

    Args:
        db: MongoDB database connection
        settings: Validated application settings
    """
    global _settings, _token_service, _auth_service, _auth_middleware, _otp_verifier

    _settings = settings
    _token_service = TokenService.from_settings(settings)
    _otp_verifier = build_otp_verifier(db, settings)

    _auth_service = AuthService(
        users=MongoUserRepository(db),
        hasher=CredentialHasher.from_settings(settings),
        tokens=_token_service,
        sessions=SessionStore.from_settings(settings),
        otp_verifier=_otp_verifier,
    )

    _auth_middleware = AuthMiddleware(token_service=_token_service)


def get_settings() -> Settings:
    """Get application settings."""
    if _settings is None:
        raise RuntimeError("Auth services not initialized. Call init_auth_services first.")
    return _settings


def get_token_service() -> TokenService:
    """Get token service instance."""
    if _token_service is None:
        raise RuntimeError("Auth services not initialized. Call init_auth_services first.")
    return _token_service


def get_auth_service() -> AuthService:
    """Get auth service instance."""
    if _auth_service is None:
        raise RuntimeError("Auth services not initialized. Call init_auth_services first.")
    return _auth_service


def get_otp_verifier() -> OtpVerifier:
    """Get OTP verifier instance."""
    if _otp_verifier is None:
        raise RuntimeError("Auth services not initialized. Call init_auth_services first.")
    return _otp_verifier


def get_auth_middleware() -> AuthMiddleware:
    """Get auth middleware instance."""
    if _auth_middleware is None:
        raise RuntimeError("Auth services not initialized. Call init_auth_services first.")
    return _auth_middleware


def require_auth(
    request: Request,
    auth_middleware: Annotated[AuthMiddleware, Depends(get_auth_middleware)]
) -> CurrentUser:
    """
    Dependency that requires authentication.

    Usage:
        @router.get("/protected")
        async def protected_route(user: Annotated[CurrentUser, Depends(require_auth)]):
            return {"user_id": user.id}
    """
    return auth_middleware.authenticate(request)


def optional_auth(
    request: Request,
    auth_middleware: Annotated[AuthMiddleware, Depends(get_auth_middleware)]
) -> Optional[CurrentUser]:
    """
    Dependency that optionally authenticates.

    Usage:
        @router.get("/public")
        async def public_route(user: Annotated[CurrentUser | None, Depends(optional_auth)]):
            return {"logged_in": user is not None}
    """
    return auth_middleware.optional_auth(request)


def authorize(*roles: str) -> Callable[..., CurrentUser]:
    """
    Dependency factory restricting a route to ``roles``.

    Usage:
        @router.get("/admin", dependencies=[Depends(authorize("admin"))])
    """
    def dependency(user: Annotated[CurrentUser, Depends(require_auth)]) -> CurrentUser:
        return AuthMiddleware.authorize(user, roles)

    return dependency


def get_user_agent(request: Request) -> str:
    """Extract User-Agent from request."""
    return request.headers.get("User-Agent", "")
