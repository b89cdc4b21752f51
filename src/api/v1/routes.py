"""
API v1 routes.

Defines REST endpoints for the session API.

Handlers are plain ``def`` functions: FastAPI runs them on its worker
threadpool, so blocking store calls and bcrypt work never stall the event loop.
"""

import logging
from typing import NoReturn, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import get_bearer_token, get_login_service
from src.api.models import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
    SignupResponse,
    TwoFactorAuthResponse,
    Verify2FARequest,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from src.domain.exceptions import (
    AuthError,
    ChallengeNotFound,
    IdentityAlreadyExists,
    InvalidAttempt,
    InvalidCredentials,
    MissingToken,
    TokenError,
    UnexpectedError,
    ValidationError,
)
from src.domain.login import LoginService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])


def _raise_http_error(exc: AuthError) -> NoReturn:
    """
    Map a domain error to a generic HTTP error.

    Unknown identity, wrong credential and wrong challenge pairing all map to
    the same messages so responses cannot be used to enumerate identities.
    """
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid input") from None
    if isinstance(exc, IdentityAlreadyExists):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Registration failed") from None
    if isinstance(exc, InvalidCredentials):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials") from None
    if isinstance(exc, (ChallengeNotFound, InvalidAttempt)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid login attempt") from None
    if isinstance(exc, MissingToken):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing token") from None
    if isinstance(exc, TokenError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from None

    if isinstance(exc, UnexpectedError):
        logger.error("Unexpected backend failure", exc_info=exc)
    else:
        logger.error("Unmapped domain error: %s", type(exc).__name__)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    ) from None


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed address or credential"},
        409: {"model": ErrorResponse, "description": "Identity already exists"},
    },
    summary="Register a new identity",
)
def signup(
    request_data: SignupRequest,
    service: LoginService = Depends(get_login_service),
) -> SignupResponse:
    """
    Register a new identity.

    - **email**: Valid email address
    - **password**: Credential (minimum 8 characters, no whitespace)
    - **requires2FA**: Whether login requires a one-time code
    """
    try:
        identity = service.register(request_data.email, request_data.password, request_data.requires_2fa)
    except AuthError as e:
        _raise_http_error(e)
    return SignupResponse(message="User created successfully", email=identity.value)


@router.post(
    "/login",
    response_model=Union[LoginResponse, TwoFactorAuthResponse],
    responses={
        206: {"model": TwoFactorAuthResponse, "description": "Second factor required"},
        400: {"model": ErrorResponse, "description": "Malformed input"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    },
    summary="Log in with address and credential",
    description="Returns a session token, or a login attempt id when a one-time code "
    "has been sent as a second factor.",
)
def login(
    request_data: LoginRequest,
    response: Response,
    service: LoginService = Depends(get_login_service),
) -> Union[LoginResponse, TwoFactorAuthResponse]:
    try:
        result = service.login(request_data.email, request_data.password)
    except AuthError as e:
        _raise_http_error(e)

    if result.challenge_id is not None:
        response.status_code = status.HTTP_206_PARTIAL_CONTENT
        return TwoFactorAuthResponse(message="2FA required", login_attempt_id=result.challenge_id.value)
    return LoginResponse(token=result.token)


@router.post(
    "/verify-2fa",
    response_model=LoginResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed input"},
        401: {"model": ErrorResponse, "description": "Invalid, expired or unknown attempt"},
    },
    summary="Verify a one-time code",
)
def verify_2fa(
    request_data: Verify2FARequest,
    service: LoginService = Depends(get_login_service),
) -> LoginResponse:
    try:
        result = service.verify_challenge(request_data.email, request_data.login_attempt_id, request_data.code)
    except AuthError as e:
        _raise_http_error(e)
    return LoginResponse(token=result.token)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing token"},
        401: {"model": ErrorResponse, "description": "Invalid token"},
    },
    summary="Revoke the presented session token",
)
def logout(
    token: Optional[str] = Depends(get_bearer_token),
    service: LoginService = Depends(get_login_service),
) -> MessageResponse:
    """Revoke a bearer session token. Logging out twice succeeds."""
    try:
        service.logout(token)
    except AuthError as e:
        _raise_http_error(e)
    return MessageResponse(message="Logged out")


@router.post(
    "/verify-token",
    response_model=VerifyTokenResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid token"}},
    summary="Validate a session token",
)
def verify_token(
    request_data: VerifyTokenRequest,
    service: LoginService = Depends(get_login_service),
) -> VerifyTokenResponse:
    try:
        claims = service.verify_token(request_data.token)
    except AuthError as e:
        _raise_http_error(e)
    return VerifyTokenResponse(subject=claims.subject, expires_at=claims.expires_at)
