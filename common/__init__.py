"""
Common library for reusable infrastructure components.

- database: Async MongoDB connection with Motor
- auth: Argon2 credential hashing and JWT access/refresh tokens
- utils: Standard responses, exceptions, password strength validation
- config: Base settings class
"""

from common.database import MongoDB
from common.auth import CredentialHasher, TokenService
from common.utils import (
    success_response,
    error_response,
    APIException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
    validate_password,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # Auth
    "CredentialHasher",
    "TokenService",
    # Utils
    "success_response",
    "error_response",
    "APIException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ValidationException",
    "validate_password",
    # Config
    "BaseAppSettings",
]
