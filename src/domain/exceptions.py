"""
Domain exceptions - Semantic error types for authentication.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Taxonomy
========
- ValidationError: malformed input, rejected before any store access
- Business errors: expected outcomes (not found, already exists, mismatch,
  token expired/revoked) mapped to specific rejection codes
- UnexpectedError: store or collaborator failure. The original cause is
  chained via ``raise ... from`` for logging only and is never shown to callers.
"""


class AuthError(Exception):
    """Base class for authentication domain errors."""

    pass


# Validation


class ValidationError(AuthError):
    """Input failed syntactic validation."""

    pass


class InvalidAddress(ValidationError):
    """Identity address is not a syntactically valid email."""

    pass


class InvalidCredentialFormat(ValidationError):
    """Plaintext credential does not meet format rules."""

    pass


class CredentialTooShort(InvalidCredentialFormat):
    pass


class CredentialContainsWhitespace(InvalidCredentialFormat):
    pass


class InvalidChallengeId(ValidationError):
    """Challenge id is not a canonical UUID."""

    pass


class InvalidOneTimeCode(ValidationError):
    """Code is not six digits in 100000-999999."""

    pass


# Business


class IdentityAlreadyExists(AuthError):
    pass


class IdentityNotFound(AuthError):
    pass


class CredentialMismatch(AuthError):
    pass


class ChallengeNotFound(AuthError):
    """No pending challenge (expired, consumed or never issued)."""

    pass


class InvalidCredentials(AuthError):
    """Login rejected. Deliberately covers both unknown identity and wrong credential."""

    pass


class InvalidAttempt(AuthError):
    """Challenge id or code does not match the pending challenge."""

    pass


class MissingToken(AuthError):
    pass


class TokenError(AuthError):
    """Base class for session token rejections."""

    pass


class TokenExpired(TokenError):
    pass


class BadSignature(TokenError):
    pass


class TokenRevoked(TokenError):
    pass


# Backend


class UnexpectedError(AuthError):
    """Store or collaborator failure."""

    pass


class RevocationStatusUnknown(UnexpectedError):
    """Revocation store could not answer; the token is neither accepted nor declared revoked."""

    pass


class MessageDeliveryFailed(UnexpectedError):
    pass
