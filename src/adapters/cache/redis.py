"""
Redis revocation and challenge stores.

Key layout (stores may share one Redis instance):
- ``revoked_token:<sha256(token)>`` -> "1", TTL = token's remaining lifetime
- ``two_fa_challenge:<address>``    -> JSON [challenge_id, code, created_at],
  TTL = challenge lifetime

TTLs are attached at write time, so both key spaces shrink on their own.

``consume`` runs as an optimistic WATCH/MULTI transaction: the pending value
is read under WATCH, compared in constant time, and deleted in MULTI. A
concurrent write to the key aborts the EXEC and the read is retried, so a
correct pair can be consumed at most once. ``remove_if`` uses the same
pattern to delete a challenge only while it is still the expected one.
"""

import hashlib
import json
import secrets
import time
from typing import Union

from redis import Redis
from redis.exceptions import RedisError

from src.domain.exceptions import AuthError, ChallengeNotFound, InvalidAttempt, UnexpectedError
from src.domain.ports import PendingChallenge
from src.domain.values import ChallengeId, IdentityAddress, OneTimeCode


REVOKED_TOKEN_KEY_PREFIX = "revoked_token:"
CHALLENGE_KEY_PREFIX = "two_fa_challenge:"


def revoked_token_key(token: str) -> str:
    return REVOKED_TOKEN_KEY_PREFIX + hashlib.sha256(token.encode()).hexdigest()


def challenge_key(address: IdentityAddress) -> str:
    return CHALLENGE_KEY_PREFIX + address.value


class RedisRevocationStore:
    """
    Implements RevocationStore protocol via redis-py.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    def revoke(self, token: str, ttl_seconds: int) -> None:
        try:
            self._client.set(revoked_token_key(token), 1, ex=max(1, ttl_seconds))
        except RedisError as e:
            raise UnexpectedError("failed to record revoked token") from e

    def is_revoked(self, token: str) -> bool:
        try:
            return bool(self._client.exists(revoked_token_key(token)))
        except RedisError as e:
            raise UnexpectedError("failed to check revoked token") from e


class RedisChallengeStore:
    """
    Implements ChallengeStore protocol via redis-py.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    def put(
        self,
        address: IdentityAddress,
        challenge_id: ChallengeId,
        code: OneTimeCode,
        ttl_seconds: int,
    ) -> None:
        payload = json.dumps([challenge_id.value, code.value, time.time()])
        try:
            self._client.set(challenge_key(address), payload, ex=max(1, ttl_seconds))
        except RedisError as e:
            raise UnexpectedError("failed to store challenge") from e

    def get(self, address: IdentityAddress) -> PendingChallenge:
        try:
            raw = self._client.get(challenge_key(address))
        except RedisError as e:
            raise UnexpectedError("failed to read challenge") from e
        if raw is None:
            raise ChallengeNotFound(str(address))
        return _decode(raw)

    def remove(self, address: IdentityAddress) -> None:
        try:
            self._client.delete(challenge_key(address))
        except RedisError as e:
            raise UnexpectedError("failed to remove challenge") from e

    def remove_if(self, address: IdentityAddress, challenge_id: ChallengeId) -> None:
        key = challenge_key(address)

        def delete_if_current(pipe) -> None:
            raw = pipe.get(key)
            if raw is None or _decode(raw).challenge_id != challenge_id:
                return
            pipe.multi()
            pipe.delete(key)

        try:
            self._client.transaction(delete_if_current, key)
        except RedisError as e:
            raise UnexpectedError("failed to remove challenge") from e

    def consume(self, address: IdentityAddress, challenge_id: ChallengeId, code: OneTimeCode) -> None:
        key = challenge_key(address)

        def compare_and_delete(pipe) -> None:
            raw = pipe.get(key)
            if raw is None:
                raise ChallengeNotFound(str(address))
            pending = _decode(raw)

            id_matches = secrets.compare_digest(pending.challenge_id.value.encode(), challenge_id.value.encode())
            code_matches = pending.code.matches(code)
            if not (id_matches and code_matches):
                raise InvalidAttempt(str(address))

            pipe.multi()
            pipe.delete(key)

        try:
            self._client.transaction(compare_and_delete, key)
        except RedisError as e:
            raise UnexpectedError("failed to consume challenge") from e


def _decode(raw: Union[bytes, str]) -> PendingChallenge:
    if isinstance(raw, bytes):
        raw = raw.decode()
    try:
        challenge_id, code, created_at = json.loads(raw)
        return PendingChallenge(
            challenge_id=ChallengeId.parse(challenge_id),
            code=OneTimeCode.parse(code),
            created_at=float(created_at),
        )
    except (AuthError, TypeError, ValueError) as e:
        raise UnexpectedError("stored challenge is malformed") from e
