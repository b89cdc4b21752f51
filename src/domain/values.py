"""
Domain values - Validated wrappers for identity and secret material.

Every value here is immutable and can only be obtained through a parsing
or generating constructor, so holding an instance means the value is valid.

Secret material (plaintext credentials) redacts itself in ``str``/``repr``
and exposes the raw value only through ``get_secret_value()``.
"""

import re
import secrets
import uuid
from dataclasses import dataclass, field

from email_validator import EmailNotValidError, validate_email

from .exceptions import (
    CredentialContainsWhitespace,
    CredentialTooShort,
    InvalidAddress,
    InvalidChallengeId,
    InvalidOneTimeCode,
)

MIN_CREDENTIAL_LENGTH = 8
CODE_MIN = 100000
CODE_MAX = 999999

_CODE_PATTERN = re.compile(r"[1-9][0-9]{5}")
_REDACTED = "**********"


@dataclass(frozen=True)
class IdentityAddress:
    """Email-shaped identity key, normalized (stripped + lowercased)."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> "IdentityAddress":
        """
        Validate and normalize an email address.

        Raises:
            InvalidAddress: If the address fails syntactic validation
        """
        if not isinstance(raw, str):
            raise InvalidAddress("address must be a string")
        candidate = raw.strip()
        try:
            validated = validate_email(candidate, check_deliverability=False)
        except EmailNotValidError as e:
            raise InvalidAddress(str(e)) from None
        return cls(validated.normalized.lower())

    def __str__(self) -> str:
        return self.value


class SecretCredential:
    """
    A credential in one of two states.

    - PlaintextCredential: user-supplied candidate, validated, never persisted
    - CredentialHash: opaque stored hash produced by the hashing collaborator
    """

    __slots__ = ()

    @staticmethod
    def parse(raw: str) -> "PlaintextCredential":
        """
        Validate a plaintext credential.

        Raises:
            CredentialTooShort: Fewer than 8 characters
            CredentialContainsWhitespace: Any whitespace character present
        """
        if not isinstance(raw, str) or len(raw) < MIN_CREDENTIAL_LENGTH:
            raise CredentialTooShort(f"credential must be at least {MIN_CREDENTIAL_LENGTH} characters")
        if any(ch.isspace() for ch in raw):
            raise CredentialContainsWhitespace("credential must not contain whitespace")
        return PlaintextCredential(raw)

    @staticmethod
    def from_hash(stored: str) -> "CredentialHash":
        """Rehydrate a stored hash. No validation is applied."""
        return CredentialHash(stored)


class PlaintextCredential(SecretCredential):
    __slots__ = ("_secret",)

    def __init__(self, secret: str) -> None:
        self._secret = secret

    def get_secret_value(self) -> str:
        return self._secret

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlaintextCredential):
            return NotImplemented
        return secrets.compare_digest(self._secret.encode(), other._secret.encode())

    def __hash__(self) -> int:
        return hash(self._secret)

    def __str__(self) -> str:
        return _REDACTED

    def __repr__(self) -> str:
        return f"PlaintextCredential('{_REDACTED}')"


class CredentialHash(SecretCredential):
    __slots__ = ("value",)

    def __init__(self, value: str) -> None:
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CredentialHash):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"CredentialHash('{_REDACTED}')"


@dataclass(frozen=True)
class ChallengeId:
    """Random 128-bit challenge identifier rendered as a canonical UUID string."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> "ChallengeId":
        try:
            parsed = uuid.UUID(raw)
        except (AttributeError, TypeError, ValueError):
            raise InvalidChallengeId("challenge id is not a UUID") from None
        return cls(str(parsed))

    @classmethod
    def generate(cls) -> "ChallengeId":
        """Generate from the OS CSPRNG (uuid4)."""
        return cls(str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class OneTimeCode:
    """Six-digit numeric code in 100000-999999."""

    value: str = field(repr=False)

    @classmethod
    def parse(cls, raw: str) -> "OneTimeCode":
        if not isinstance(raw, str) or not _CODE_PATTERN.fullmatch(raw):
            raise InvalidOneTimeCode("code must be six digits between 100000 and 999999")
        return cls(raw)

    @classmethod
    def generate(cls) -> "OneTimeCode":
        """Uniform over [100000, 999999] using the secrets module."""
        return cls(str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1)))

    def matches(self, other: "OneTimeCode") -> bool:
        """Constant-time comparison."""
        return secrets.compare_digest(self.value.encode(), other.value.encode())

    def __str__(self) -> str:
        return self.value
