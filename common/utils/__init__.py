"""
Utilities module - Helpers for API responses, exceptions, and password validation.
"""

from common.utils.responses import success_response, error_response, api_exception_response
from common.utils.exceptions import (
    APIException,
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    ValidationException,
    ServerException,
    InternalServerException,
)
from common.utils.password import validate_password, validate_strength

__all__ = [
    "success_response",
    "error_response",
    "api_exception_response",
    "APIException",
    "BadRequestException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "ValidationException",
    "ServerException",
    "InternalServerException",
    "validate_password",
    "validate_strength",
]
