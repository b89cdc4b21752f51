"""
In-memory revocation and challenge stores.

Process-local stand-ins for the Redis adapters, used for development and
tests. Each store serializes access through its own lock; every operation
is a constant-time dict operation so the lock is never held for long.

Entries carry a deadline and are dropped lazily once it has passed.
"""

import secrets
import threading
import time
from collections.abc import Callable

from src.domain.exceptions import ChallengeNotFound, InvalidAttempt
from src.domain.ports import PendingChallenge
from src.domain.values import ChallengeId, IdentityAddress, OneTimeCode


class InMemoryRevocationStore:
    """Implements RevocationStore protocol with a token -> deadline dict."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()

    def revoke(self, token: str, ttl_seconds: int) -> None:
        now = self._clock()
        with self._lock:
            self._purge(now)
            self._entries[token] = now + ttl_seconds

    def is_revoked(self, token: str) -> bool:
        now = self._clock()
        with self._lock:
            deadline = self._entries.get(token)
            if deadline is None:
                return False
            if deadline <= now:
                del self._entries[token]
                return False
            return True

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._entries)

    def _purge(self, now: float) -> None:
        expired = [token for token, deadline in self._entries.items() if deadline <= now]
        for token in expired:
            del self._entries[token]


class InMemoryChallengeStore:
    """Implements ChallengeStore protocol, at most one challenge per address."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[IdentityAddress, tuple[PendingChallenge, float]] = {}
        self._lock = threading.Lock()

    def put(
        self,
        address: IdentityAddress,
        challenge_id: ChallengeId,
        code: OneTimeCode,
        ttl_seconds: int,
    ) -> None:
        now = self._clock()
        pending = PendingChallenge(challenge_id=challenge_id, code=code, created_at=now)
        with self._lock:
            self._purge(now)
            self._entries[address] = (pending, now + ttl_seconds)

    def get(self, address: IdentityAddress) -> PendingChallenge:
        with self._lock:
            pending = self._live(address)
        if pending is None:
            raise ChallengeNotFound(str(address))
        return pending

    def remove(self, address: IdentityAddress) -> None:
        with self._lock:
            self._entries.pop(address, None)

    def remove_if(self, address: IdentityAddress, challenge_id: ChallengeId) -> None:
        with self._lock:
            entry = self._entries.get(address)
            if entry is not None and entry[0].challenge_id == challenge_id:
                del self._entries[address]

    def consume(self, address: IdentityAddress, challenge_id: ChallengeId, code: OneTimeCode) -> None:
        with self._lock:
            pending = self._live(address)
            if pending is None:
                raise ChallengeNotFound(str(address))

            # Evaluate both comparisons before branching
            id_matches = secrets.compare_digest(pending.challenge_id.value.encode(), challenge_id.value.encode())
            code_matches = pending.code.matches(code)
            if not (id_matches and code_matches):
                raise InvalidAttempt(str(address))

            del self._entries[address]

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._entries)

    def _live(self, address: IdentityAddress):
        entry = self._entries.get(address)
        if entry is None:
            return None
        pending, deadline = entry
        if deadline <= self._clock():
            del self._entries[address]
            return None
        return pending

    def _purge(self, now: float) -> None:
        expired = [address for address, (_, deadline) in self._entries.items() if deadline <= now]
        for address in expired:
            del self._entries[address]
