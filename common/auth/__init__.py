"""
Authentication primitives - credential hashing and signed tokens.
"""

from common.auth.password_hasher import CredentialHasher, HashingError
from common.auth.tokens import (
    TokenService,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    AccessClaims,
    RefreshClaims,
    gen_refresh_id,
    hash_refresh_id,
)

__all__ = [
    "CredentialHasher",
    "HashingError",
    "TokenService",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "AccessClaims",
    "RefreshClaims",
    "gen_refresh_id",
    "hash_refresh_id",
]
