"""
Shared credential check for identity store adapters.

Timing oracle prevention: when the identity does not exist, the candidate is
verified against a dummy hash so that a lookup miss costs the same as a
credential mismatch.
"""

from typing import Optional

from src.domain.exceptions import CredentialMismatch, IdentityNotFound
from src.domain.ports import PasswordHasher
from src.domain.values import CredentialHash, IdentityAddress, PlaintextCredential, SecretCredential

_DUMMY_CREDENTIAL = SecretCredential.parse("dummy_password_for_timing_safety")


def make_dummy_hash(hasher: PasswordHasher) -> CredentialHash:
    """Pre-compute the dummy hash with the store's own hasher settings."""
    return hasher.hash(_DUMMY_CREDENTIAL)


def check_credential(
    hasher: PasswordHasher,
    address: IdentityAddress,
    candidate: PlaintextCredential,
    stored: Optional[CredentialHash],
    dummy: CredentialHash,
) -> None:
    """
    Verify candidate against stored, always running the hasher.

    Raises:
        IdentityNotFound: stored is None
        CredentialMismatch: candidate does not match
    """
    matched = hasher.verify(candidate, stored if stored is not None else dummy)
    if stored is None:
        raise IdentityNotFound(str(address))
    if not matched:
        raise CredentialMismatch(str(address))
