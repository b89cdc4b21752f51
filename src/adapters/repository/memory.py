"""
In-memory identity store - Implements IdentityStore protocol.

A dict guarded by one lock. The lock is held only for dict access; hash
verification runs outside it so slow bcrypt calls never serialize
unrelated identities.
"""

import threading
from dataclasses import replace

from src.domain.exceptions import IdentityAlreadyExists, IdentityNotFound
from src.domain.ports import IdentityRecord, PasswordHasher
from src.domain.values import CredentialHash, IdentityAddress, PlaintextCredential

from .credentials import check_credential, make_dummy_hash


class InMemoryIdentityStore:
    """
    Implements IdentityStore protocol with a process-local dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, hasher: PasswordHasher) -> None:
        self._hasher = hasher
        self._dummy_hash = make_dummy_hash(hasher)
        self._records: dict[IdentityAddress, IdentityRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: IdentityRecord) -> None:
        with self._lock:
            if record.address in self._records:
                raise IdentityAlreadyExists(str(record.address))
            self._records[record.address] = record

    def get(self, address: IdentityAddress) -> IdentityRecord:
        with self._lock:
            record = self._records.get(address)
        if record is None:
            raise IdentityNotFound(str(address))
        return record

    def validate_credential(self, address: IdentityAddress, candidate: PlaintextCredential) -> None:
        with self._lock:
            record = self._records.get(address)
        stored = record.credential_hash if record is not None else None
        check_credential(self._hasher, address, candidate, stored, self._dummy_hash)

    def update_credential(self, address: IdentityAddress, credential_hash: CredentialHash) -> None:
        with self._lock:
            record = self._records.get(address)
            if record is None:
                raise IdentityNotFound(str(address))
            self._records[address] = replace(record, credential_hash=credential_hash)
