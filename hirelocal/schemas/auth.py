"""
Pydantic models for auth request/response validation.

Request fields are optional at the schema level: presence and format are
checked by AuthService so clients get the same messages whichever layer
rejects them.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request body for email/password registration."""
    email: Optional[str] = Field(None, description="Account email, case-insensitive")
    password: Optional[str] = Field(None, description="At least 8 characters")
    role: Optional[str] = Field(None, description="user | worker | customer")


class OtpLoginRequest(BaseModel):
    """Request body for mobile + OTP login."""
    mobile: Optional[str] = Field(None, description="Mobile number")
    otp: Optional[str] = Field(None, description="One-time code")
    role: Optional[str] = Field(None, description="Role for a first-time login, default worker")
    deviceInfo: Optional[str] = Field(None, max_length=256, description="Client device description")


class EmailLoginRequest(BaseModel):
    """Request body for email + password login."""
    email: Optional[str] = None
    password: Optional[str] = None
    deviceInfo: Optional[str] = Field(None, max_length=256, description="Client device description")


class OtpRequest(BaseModel):
    """Request body for issuing a login code."""
    mobile: str = Field(..., min_length=1, description="Mobile number to send the code to")


class UserResponse(BaseModel):
    """Public user profile."""
    id: str
    email: Optional[str] = None
    mobile: Optional[str] = None
    role: str
    registerDate: datetime
    lastLogin: Optional[datetime] = None
    workerProfile: Optional[str] = None
    hasProfile: bool = False


class SessionResponse(BaseModel):
    """Session information in API responses. The token hash is never included."""
    id: str = Field(..., description="Session ID")
    deviceInfo: str
    createdAt: datetime
    lastUsedAt: datetime
    expiresAt: datetime


class LoginResponse(BaseModel):
    """Response for OTP and email login. The refresh token travels in the cookie."""
    success: bool = True
    access: str
    user: UserResponse


class RegisterResponse(LoginResponse):
    """Response for registration."""
    message: str


class RefreshResponse(BaseModel):
    """Response for token refresh."""
    success: bool = True
    access: str


class MeResponse(BaseModel):
    success: bool = True
    user: UserResponse


class SessionListResponse(BaseModel):
    """Response for listing sessions."""
    success: bool = True
    sessions: List[SessionResponse]
