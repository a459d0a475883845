"""
Authentication middleware for protected routes.

Validates bearer access tokens and attaches the caller's identity to requests.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Request

from common.auth.tokens import TokenExpiredError, TokenError, TokenService
from common.utils.exceptions import UnauthorizedException, ForbiddenException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity carried by a verified access token."""

    id: str
    role: str


class AuthMiddleware:
    """
    Verifies access tokens and attaches the user to the request.
    """

    def __init__(self, token_service: TokenService):
        """
        Initialize AuthMiddleware.

        Args:
            token_service: For access token verification
        """
        self._tokens = token_service

    def authenticate(self, request: Request) -> CurrentUser:
        """
        Validate request is authenticated.

        Args:
            request: HTTP request object

        Returns:
            CurrentUser attached to request

        Raises:
            UnauthorizedException: AUTH_REQUIRED when no bearer header,
                TOKEN_EXPIRED so the client knows to refresh, INVALID_TOKEN
                for anything else

        Side Effects:
            - Attaches user to request.state.user
        """
        token = self._extract_token(request)

        if not token:
            raise UnauthorizedException(
                message="Authentication required",
                code="AUTH_REQUIRED"
            )

        try:
            claims = self._tokens.verify_access(token)
        except TokenExpiredError:
            raise UnauthorizedException(
                message="Access token expired",
                code="TOKEN_EXPIRED"
            )
        except TokenError as e:
            logger.warning(f"Access token rejected: {e}")
            raise UnauthorizedException(
                message="Invalid access token",
                code="INVALID_TOKEN"
            )

        user = CurrentUser(id=claims.sub, role=claims.role)
        request.state.user = user
        return user

    def optional_auth(self, request: Request) -> Optional[CurrentUser]:
        """
        Attach user if authenticated, but don't require it.

        Returns:
            CurrentUser if a valid token is present, None otherwise

        Does not raise errors for missing/invalid auth.
        """
        token = self._extract_token(request)

        if not token:
            return None

        try:
            claims = self._tokens.verify_access(token)
        except TokenError as e:
            logger.debug(f"Optional auth failed: {e}")
            return None

        user = CurrentUser(id=claims.sub, role=claims.role)
        request.state.user = user
        return user

    @staticmethod
    def authorize(user: Optional[CurrentUser], roles: Iterable[str]) -> CurrentUser:
        """
        Check an authenticated user holds one of ``roles``.

        Raises:
            UnauthorizedException: No authenticated user
            ForbiddenException: Role not allowed
        """
        if user is None:
            raise UnauthorizedException(
                message="Authentication required",
                code="AUTH_REQUIRED"
            )

        allowed = list(roles)
        if user.role not in allowed:
            raise ForbiddenException(
                message="Insufficient permissions",
                code="FORBIDDEN",
                details={"requiredRoles": allowed},
            )

        return user

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract bearer token from Authorization header.

        Expected format: "Authorization: Bearer <token>"
        """
        auth_header = request.headers.get("Authorization")

        if not auth_header:
            return None

        parts = auth_header.split()

        if len(parts) != 2:
            return None

        scheme, token = parts

        if scheme.lower() != "bearer":
            return None

        return token
