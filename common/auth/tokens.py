"""
Signed access and refresh tokens (JWT, python-jose).

Two token classes are issued with two independent secrets so a leaked
access-signing key cannot mint refresh tokens and vice versa:

- access: short-lived, carries ``sub`` and ``role``; validated statelessly.
- refresh: long-lived, carries ``sub`` and a random ``rid``; the SHA-256 of
  the rid is the key of a server-side session, which makes it revocable.

Example:
    tokens = TokenService(
        access_secret="...",
        refresh_secret="...",
        issuer="worker-app",
        audience="worker-app-users",
    )
    token = tokens.sign_access(user_id, "worker")
    claims = tokens.verify_access(token)
    print(claims.sub, claims.role)
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from jose import jwt, JWTError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry."""


class TokenInvalidError(TokenError):
    """Bad signature, malformed token, or mismatched claims."""


@dataclass(frozen=True)
class AccessClaims:
    sub: str
    role: str


@dataclass(frozen=True)
class RefreshClaims:
    sub: str
    rid: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def gen_refresh_id(num_bytes: int = 32) -> str:
    """Generate a random refresh identifier (256 bits, hex-encoded)."""
    return secrets.token_hex(num_bytes)


def hash_refresh_id(rid: str) -> str:
    """SHA-256 hex digest of a refresh identifier. Only this is ever stored."""
    return hashlib.sha256(rid.encode("utf-8")).hexdigest()


class TokenService:
    """
    Issues and verifies access and refresh tokens.

    Storage-independent: revocation lives in the session store, not here.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=30),
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the token service.

        Args:
            access_secret: Key for signing access tokens
            refresh_secret: Key for signing refresh tokens (must differ)
            issuer: Value of the ``iss`` claim
            audience: Value of the ``aud`` claim
            access_ttl: Access token lifetime
            refresh_ttl: Refresh token lifetime
            algorithm: JWT algorithm
            clock: Returns the current UTC time; used for ``iat``/``exp`` when
                signing and for the expiry check when verifying
        """
        if not access_secret or not refresh_secret:
            raise ValueError("Both access and refresh secrets are required")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh secrets must differ")

        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm
        self._clock = clock or _utcnow

    @classmethod
    def from_settings(cls, settings, clock: Optional[Callable[[], datetime]] = None) -> "TokenService":
        return cls(
            access_secret=settings.ACCESS_TOKEN_SECRET,
            refresh_secret=settings.REFRESH_TOKEN_SECRET,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            algorithm=settings.JWT_ALGORITHM,
            clock=clock,
        )

    # ─────────────────────────────────────────────────────────────
    # Signing
    # ─────────────────────────────────────────────────────────────

    def sign_access(self, sub: str, role: str) -> str:
        """Sign a short-lived access token for ``sub`` with ``role``."""
        return self._sign(
            {"sub": str(sub), "role": role, "typ": ACCESS_TOKEN_TYPE},
            self._access_secret,
            self.access_ttl,
        )

    def sign_refresh(self, sub: str, rid: str) -> str:
        """Sign a long-lived refresh token carrying the refresh identifier."""
        return self._sign(
            {"sub": str(sub), "rid": rid, "typ": REFRESH_TOKEN_TYPE},
            self._refresh_secret,
            self.refresh_ttl,
        )

    def _sign(self, claims: Dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = self._clock()
        payload = {
            **claims,
            "iat": now,
            "exp": now + ttl,
            "iss": self.issuer,
            "aud": self.audience,
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    # ─────────────────────────────────────────────────────────────
    # Verification
    # ─────────────────────────────────────────────────────────────

    def verify_access(self, token: str) -> AccessClaims:
        """
        Verify an access token.

        Raises:
            TokenExpiredError: Token has expired
            TokenInvalidError: Signature, issuer, audience or type mismatch
        """
        payload = self._verify(token, self._access_secret, ACCESS_TOKEN_TYPE)
        role = payload.get("role")
        if not role:
            raise TokenInvalidError("Token missing role")
        return AccessClaims(sub=payload["sub"], role=role)

    def verify_refresh(self, token: str) -> RefreshClaims:
        """
        Verify a refresh token.

        Raises:
            TokenExpiredError: Token has expired
            TokenInvalidError: Signature, issuer, audience or type mismatch
        """
        payload = self._verify(token, self._refresh_secret, REFRESH_TOKEN_TYPE)
        rid = payload.get("rid")
        if not rid:
            raise TokenInvalidError("Token missing refresh identifier")
        return RefreshClaims(sub=payload["sub"], rid=rid)

    def _verify(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        if not token:
            raise TokenInvalidError("Token is empty")

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                # Expiry is checked below against the injected clock
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from e

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            raise TokenInvalidError("Token missing expiry")
        if self._clock().timestamp() >= exp:
            raise TokenExpiredError("Token has expired")

        if payload.get("typ") != expected_type:
            raise TokenInvalidError("Unexpected token type")
        if not payload.get("sub"):
            raise TokenInvalidError("Token missing subject")
        return payload

    # ─────────────────────────────────────────────────────────────
    # Inspection helpers (no signature check)
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def decode_unverified(token: str) -> Optional[Dict[str, Any]]:
        """Decode claims without verifying. For diagnostics only."""
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None

    def is_token_expired(self, token: str) -> bool:
        """True if the token has no readable ``exp`` or it has passed."""
        claims = self.decode_unverified(token)
        if not claims or "exp" not in claims:
            return True
        return self._clock().timestamp() >= claims["exp"]
