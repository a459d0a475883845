"""
Standard API response helpers.

Provides consistent response formatting for success and error cases.

Example:
    from common.utils import success_response, error_response

    @app.get("/users/{id}")
    async def get_user(id: str):
        user = await users.find_by_id(id)
        if not user:
            return JSONResponse(
                status_code=404,
                content=error_response("User not found", code="USER_NOT_FOUND")
            )
        return success_response(user.public_profile(), message="User retrieved")
"""

from typing import Any, Optional, Dict

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from common.utils.exceptions import APIException


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """
    Create a standard success response.

    Args:
        data: The response data (can be dict, list, or any serializable type)
        message: Optional success message
        **extra: Additional top-level keys (e.g. ``access`` for auth responses)

    Returns:
        Dictionary with success=True and optional data/message
    """
    response: Dict[str, Any] = {"success": True}

    if data is not None:
        response["data"] = data

    if message:
        response["message"] = message

    response.update(extra)
    return response


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Any] = None,
    errors: Optional[list] = None,
) -> Dict[str, Any]:
    """
    Create a standard error response.

    The machine-readable code is repeated at the top level so clients can
    branch on ``body.code`` without unpacking the error object.

    Args:
        message: Human-readable error message
        code: Machine-readable error code (e.g., "TOKEN_EXPIRED")
        details: Additional error details
        errors: List of specific errors (for validation errors)

    Returns:
        Dictionary with success=False and error info
    """
    error: Dict[str, Any] = {"message": message}

    if code:
        error["code"] = code

    if details is not None:
        error["details"] = details

    if errors:
        error["errors"] = errors

    response: Dict[str, Any] = {"success": False, "error": error}
    if code:
        response["code"] = code
    return response


def api_exception_response(exc: APIException) -> JSONResponse:
    """Render an APIException as a JSON error response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(
            error_response(exc.message, code=exc.code, details=exc.details)
        ),
        headers=exc.headers,
    )
