"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field formats (address, credential, code) are validated by the domain layer so
that every malformed input maps to the same 400 response.
"""

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """Request model for identity registration."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str = Field(..., description="Credential (min 8 characters, no whitespace)")
    requires_2fa: bool = Field(False, alias="requires2FA")


class SignupResponse(BaseModel):
    message: str
    email: str


class LoginRequest(BaseModel):
    """Request model for credential login."""

    email: str
    password: str


class LoginResponse(BaseModel):
    """Response model when a session is issued directly."""

    token: str


class TwoFactorAuthResponse(BaseModel):
    """Response model when a second factor is required."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    login_attempt_id: str = Field(..., alias="loginAttemptId")


class Verify2FARequest(BaseModel):
    """Request model for second factor verification."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    login_attempt_id: str = Field(..., alias="loginAttemptId")
    code: str = Field(..., alias="2FACode", description="6-digit one-time code")


class VerifyTokenRequest(BaseModel):
    token: str


class VerifyTokenResponse(BaseModel):
    subject: str
    expires_at: int


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
