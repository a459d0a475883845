"""
FastAPI router for auth endpoints.

Provides registration, mobile and email login, refresh-token rotation, logout,
and session management.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, Response

from common.utils import success_response
from common.utils.exceptions import APIException
from common.utils.responses import api_exception_response
from hirelocal.config import Settings
from hirelocal.dependencies import (
    get_auth_service,
    get_otp_verifier,
    get_settings,
    get_user_agent,
    require_auth,
)
from hirelocal.middleware.auth import CurrentUser
from hirelocal.schemas.auth import (
    EmailLoginRequest,
    LoginResponse,
    MeResponse,
    OtpLoginRequest,
    OtpRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    SessionListResponse,
)
from hirelocal.services.auth.auth_service import AuthService
from hirelocal.services.auth.otp import OtpVerifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Refresh cookie helpers
# =============================================================================

def set_refresh_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=token,
        max_age=settings.refresh_cookie_max_age(),
        path=settings.REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.refresh_cookie_secure(),
        samesite=settings.refresh_cookie_samesite(),
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    # Attributes must match the ones the cookie was set with
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        path=settings.REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.refresh_cookie_secure(),
        samesite=settings.refresh_cookie_samesite(),
    )


def read_refresh_cookie(request: Request, settings: Settings) -> Optional[str]:
    return request.cookies.get(settings.REFRESH_COOKIE_NAME)


# =============================================================================
# Registration and login
# =============================================================================

@router.post("/register", status_code=201, response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """
    Register an email/password account.

    Returns an access token. No session is created until the first login.
    """
    result = await auth_service.register(body.email, body.password, body.role)

    return success_response(
        message="User registered successfully",
        access=result.access,
        user=result.user,
    )


@router.post("/otp")
async def request_otp(
    body: OtpRequest,
    otp_verifier: Annotated[OtpVerifier, Depends(get_otp_verifier)],
):
    """
    Issue a one-time login code for a mobile number.

    Only available when single-use codes are enabled.
    """
    await otp_verifier.issue(body.mobile.strip())
    return success_response(message="OTP sent")


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    body: OtpLoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Login with mobile number and one-time code.

    Creates the account on first login and starts a new session.
    """
    result = await auth_service.login_with_otp(
        mobile=body.mobile,
        otp=body.otp,
        role=body.role,
        device_info=body.deviceInfo,
        user_agent=get_user_agent(request),
    )

    set_refresh_cookie(response, result.refresh, settings)
    return success_response(access=result.access, user=result.user)


@router.post("/email-login", response_model=LoginResponse)
async def email_login(
    request: Request,
    response: Response,
    body: EmailLoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Login with email and password.

    Starts a new session.
    """
    result = await auth_service.email_login(
        email=body.email,
        password=body.password,
        device_info=body.deviceInfo,
        user_agent=get_user_agent(request),
    )

    set_refresh_cookie(response, result.refresh, settings)
    return success_response(access=result.access, user=result.user)


# =============================================================================
# Refresh and logout
# =============================================================================

@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    request: Request,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Exchange the refresh cookie for a new access token.

    The cookie is rotated on success and cleared on any failure.
    """
    token = read_refresh_cookie(request, settings)

    try:
        result = await auth_service.refresh(token)
    except APIException as exc:
        error = api_exception_response(exc)
        if token:
            clear_refresh_cookie(error, settings)
        return error

    set_refresh_cookie(response, result.refresh, settings)
    return success_response(access=result.access)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Logout from the current device.

    Always succeeds and clears the refresh cookie.
    """
    await auth_service.logout(read_refresh_cookie(request, settings))

    clear_refresh_cookie(response, settings)
    return success_response(message="Logged out successfully")


# =============================================================================
# Current user and sessions
# =============================================================================

@router.get("/me", response_model=MeResponse)
async def me(
    user: Annotated[CurrentUser, Depends(require_auth)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Get the authenticated user's profile."""
    return success_response(user=await auth_service.me(user.id))


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    user: Annotated[CurrentUser, Depends(require_auth)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """List the authenticated user's active sessions."""
    return success_response(sessions=await auth_service.sessions(user.id))


@router.delete("/sessions")
async def revoke_all_sessions(
    response: Response,
    user: Annotated[CurrentUser, Depends(require_auth)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Revoke every session of the authenticated user.

    Access tokens already issued stay valid until they expire.
    """
    removed = await auth_service.revoke_all_sessions(user.id)

    clear_refresh_cookie(response, settings)
    return success_response(message="All sessions revoked", revoked=removed)


@router.delete("/sessions/{session_id}")
async def revoke_session(
    session_id: str,
    user: Annotated[CurrentUser, Depends(require_auth)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Revoke one of the authenticated user's sessions."""
    await auth_service.revoke_session(user.id, session_id)
    return success_response(message="Session revoked successfully")
