"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.smtp.console import ConsoleMessageSender
from src.config.settings import get_settings
from src.domain.login import LoginService
from src.domain.tokens import SessionTokenService

# Module-level singleton - ConsoleMessageSender is stateless
_message_sender = ConsoleMessageSender()


def get_message_sender() -> ConsoleMessageSender:
    """Get console message sender (singleton)."""
    return _message_sender


def get_token_service(request: Request) -> SessionTokenService:
    """Create token service from the signer and revocation store in app state."""
    settings = get_settings()
    return SessionTokenService(
        signer=request.app.state.signer,
        revocation_store=request.app.state.revocation_store,
        ttl_seconds=settings.token_ttl_seconds,
        fail_open=settings.revocation_fail_open,
    )


def get_login_service(request: Request) -> LoginService:
    """
    Create login service with injected dependencies.

    Stores and the hasher are created once during app lifespan startup
    and shared across requests via app.state.
    """
    settings = get_settings()
    return LoginService(
        identity_store=request.app.state.identity_store,
        challenge_store=request.app.state.challenge_store,
        hasher=request.app.state.hasher,
        tokens=get_token_service(request),
        message_sender=get_message_sender(),
        challenge_ttl_seconds=settings.challenge_ttl_seconds,
    )


# Bearer security scheme; auto_error=False so a missing header reaches the
# domain as MissingToken instead of FastAPI's generic 403
http_bearer = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> Optional[str]:
    """Extract the raw session token from the Authorization header, if any."""
    if credentials is None:
        return None
    return credentials.credentials
