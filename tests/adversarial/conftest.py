"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition, enumeration
and second-factor guessing tests.
"""

from collections.abc import Generator

import pytest

from src.adapters.crypto.bcrypt_hasher import BcryptPasswordHasher

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(scope="module")
def production_hasher() -> Generator[BcryptPasswordHasher, None, None]:
    """bcrypt at the production cost so hashing dominates timings."""
    hasher = BcryptPasswordHasher(rounds=10, max_workers=4)
    yield hasher
    hasher.close()
