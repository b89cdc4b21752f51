"""Cache adapters - Revocation and challenge store implementations."""

from .memory import InMemoryChallengeStore, InMemoryRevocationStore
from .redis import RedisChallengeStore, RedisRevocationStore

__all__ = [
    "InMemoryChallengeStore",
    "InMemoryRevocationStore",
    "RedisChallengeStore",
    "RedisRevocationStore",
]
