"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for session issuance and
revocation with an optional one-time code second factor. It defines its own
port interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .exceptions import (
    AuthError,
    BadSignature,
    ChallengeNotFound,
    IdentityAlreadyExists,
    InvalidAttempt,
    InvalidCredentials,
    MissingToken,
    TokenExpired,
    TokenRevoked,
    UnexpectedError,
    ValidationError,
)
from .login import LoginService
from .ports import (
    ChallengeStore,
    Claims,
    IdentityRecord,
    IdentityStore,
    LoginResult,
    LoginState,
    MessageSender,
    PasswordHasher,
    RevocationStore,
    TokenSigner,
)
from .tokens import SessionTokenService
from .values import ChallengeId, IdentityAddress, OneTimeCode, SecretCredential

__all__ = [
    "AuthError",
    "BadSignature",
    "ChallengeId",
    "ChallengeNotFound",
    "ChallengeStore",
    "Claims",
    "IdentityAddress",
    "IdentityAlreadyExists",
    "IdentityRecord",
    "IdentityStore",
    "InvalidAttempt",
    "InvalidCredentials",
    "LoginResult",
    "LoginService",
    "LoginState",
    "MessageSender",
    "MissingToken",
    "OneTimeCode",
    "PasswordHasher",
    "RevocationStore",
    "SecretCredential",
    "SessionTokenService",
    "TokenExpired",
    "TokenRevoked",
    "TokenSigner",
    "UnexpectedError",
    "ValidationError",
]
