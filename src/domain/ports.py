"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the records that flow through them.
Adapters implement these protocols via structural subtyping.

Every port signals failure by raising a domain exception from
``exceptions.py``; library exceptions never cross a port boundary.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from .values import ChallengeId, CredentialHash, IdentityAddress, OneTimeCode, PlaintextCredential


class LoginState(str, Enum):
    """
    Login state machine states.

    Transitions:
    - AWAITING_CREDENTIALS -> CREDENTIALS_VERIFIED
    - CREDENTIALS_VERIFIED -> SESSION_ISSUED (second factor disabled)
    - CREDENTIALS_VERIFIED -> CHALLENGE_ISSUED (second factor enabled)
    - CHALLENGE_ISSUED -> CHALLENGE_VERIFIED -> SESSION_ISSUED

    Terminal: SESSION_ISSUED, or any rejection (raised as an exception).
    """

    AWAITING_CREDENTIALS = "AWAITING_CREDENTIALS"
    CREDENTIALS_VERIFIED = "CREDENTIALS_VERIFIED"
    CHALLENGE_ISSUED = "CHALLENGE_ISSUED"
    CHALLENGE_VERIFIED = "CHALLENGE_VERIFIED"
    SESSION_ISSUED = "SESSION_ISSUED"


@dataclass(frozen=True)
class IdentityRecord:
    """Registered identity. Only ever holds a credential hash."""

    address: IdentityAddress
    credential_hash: CredentialHash
    requires_second_factor: bool = False


@dataclass(frozen=True)
class PendingChallenge:
    challenge_id: ChallengeId
    code: OneTimeCode
    created_at: float


@dataclass(frozen=True)
class Claims:
    """Decoded session token claims."""

    subject: str
    expires_at: int
    issued_at: int


@dataclass(frozen=True)
class LoginResult:
    """
    Outcome of a successful login step.

    Exactly one of ``token`` (SESSION_ISSUED) or ``challenge_id``
    (CHALLENGE_ISSUED) is set.
    """

    state: LoginState
    token: Optional[str] = None
    challenge_id: Optional[ChallengeId] = None


class IdentityStore(Protocol):
    """Port interface for identity persistence."""

    def add(self, record: IdentityRecord) -> None:
        """
        Persist a new identity.

        Must be atomic with respect to address uniqueness: of concurrent
        adds for one address exactly one succeeds.

        Raises:
            IdentityAlreadyExists: Address is already registered
            UnexpectedError: Backend failure
        """
        ...

    def get(self, address: IdentityAddress) -> IdentityRecord:
        """
        Raises:
            IdentityNotFound: No identity for address
            UnexpectedError: Backend failure
        """
        ...

    def validate_credential(self, address: IdentityAddress, candidate: PlaintextCredential) -> None:
        """
        Check a candidate against the stored hash.

        Hash verification runs on the hasher's worker pool.

        Raises:
            IdentityNotFound: No identity for address
            CredentialMismatch: Candidate does not match
            UnexpectedError: Backend failure
        """
        ...

    def update_credential(self, address: IdentityAddress, credential_hash: CredentialHash) -> None:
        """
        Rotate the stored hash for an existing identity.

        Raises:
            IdentityNotFound: No identity for address
            UnexpectedError: Backend failure
        """
        ...


class RevocationStore(Protocol):
    """Port interface for the revoked session token denylist."""

    def revoke(self, token: str, ttl_seconds: int) -> None:
        """Denylist a token for ttl_seconds, after which the entry self-expires."""
        ...

    def is_revoked(self, token: str) -> bool:
        """
        Raises:
            UnexpectedError: Backend could not answer (status unknown)
        """
        ...


class ChallengeStore(Protocol):
    """Port interface for pending second-factor challenges (one per identity)."""

    def put(
        self,
        address: IdentityAddress,
        challenge_id: ChallengeId,
        code: OneTimeCode,
        ttl_seconds: int,
    ) -> None:
        """Store a challenge, replacing any pending one for address (last write wins)."""
        ...

    def get(self, address: IdentityAddress) -> PendingChallenge:
        """
        Raises:
            ChallengeNotFound: None pending (expired or never issued)
        """
        ...

    def remove(self, address: IdentityAddress) -> None:
        """Delete the pending challenge. Absence is not an error."""
        ...

    def remove_if(self, address: IdentityAddress, challenge_id: ChallengeId) -> None:
        """
        Atomically delete the pending challenge only if it is still challenge_id.

        A challenge that has since been replaced is left alone. Absence is not
        an error.
        """
        ...

    def consume(self, address: IdentityAddress, challenge_id: ChallengeId, code: OneTimeCode) -> None:
        """
        Atomically verify and delete the pending challenge.

        On mismatch the challenge is left in place.

        Raises:
            ChallengeNotFound: None pending
            InvalidAttempt: Id or code does not match
            UnexpectedError: Backend failure
        """
        ...


class PasswordHasher(Protocol):
    """Port interface for the (deliberately slow) password hashing primitive."""

    def hash(self, candidate: PlaintextCredential) -> CredentialHash: ...

    def verify(self, candidate: PlaintextCredential, stored: CredentialHash) -> bool: ...


class TokenSigner(Protocol):
    """Port interface for token signing."""

    def sign(self, claims: dict) -> str: ...

    def verify(self, token: str) -> dict:
        """
        Check signature and expiry, returning the claims.

        Raises:
            TokenExpired: Signature valid but token expired
            BadSignature: Token malformed or signature invalid
        """
        ...


class MessageSender(Protocol):
    """Port interface for outbound message delivery."""

    def send(self, recipient: IdentityAddress, subject: str, body: str) -> None:
        """
        Raises:
            MessageDeliveryFailed: Message could not be delivered. Any other
                UnexpectedError is treated as a delivery failure by callers.
        """
        ...
