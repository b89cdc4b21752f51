"""
bcrypt password hasher - Implements PasswordHasher protocol.

bcrypt is deliberately slow (~100ms at cost factor 10). Every hash and
verify call is submitted to a dedicated ThreadPoolExecutor so the work is
bounded to ``max_workers`` threads and never runs on the event loop or on
the thread that dispatches unrelated requests.

bcrypt only considers the first 72 bytes of a password. Longer inputs are
truncated explicitly (newer bcrypt releases raise instead of truncating).
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import bcrypt

from src.domain.exceptions import UnexpectedError
from src.domain.values import CredentialHash, PlaintextCredential

logger = logging.getLogger(__name__)

_BCRYPT_MAX_BYTES = 72


def _secret_bytes(candidate: PlaintextCredential) -> bytes:
    return candidate.get_secret_value().encode()[:_BCRYPT_MAX_BYTES]


class BcryptPasswordHasher:
    """
    Implements PasswordHasher protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, rounds: int = 10, max_workers: int = 4) -> None:
        """
        Args:
            rounds: bcrypt cost factor (>= 10 in production)
            max_workers: Size of the dedicated hashing pool
        """
        self._rounds = rounds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="bcrypt")

    def hash(self, candidate: PlaintextCredential) -> CredentialHash:
        future = self._executor.submit(self._hash, _secret_bytes(candidate))
        try:
            return CredentialHash(future.result())
        except ValueError as e:
            raise UnexpectedError("failed to hash credential") from e

    def verify(self, candidate: PlaintextCredential, stored: CredentialHash) -> bool:
        """
        Constant-time comparison of candidate against a stored bcrypt hash.

        Raises:
            UnexpectedError: Stored value is not a bcrypt hash
        """
        future = self._executor.submit(bcrypt.checkpw, _secret_bytes(candidate), stored.value.encode())
        try:
            return future.result()
        except ValueError as e:
            raise UnexpectedError("stored credential hash is malformed") from e

    def close(self) -> None:
        """Wait for in-flight hashing to finish and release the pool."""
        self._executor.shutdown(wait=True)

    def _hash(self, secret: bytes) -> str:
        return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self._rounds)).decode()
