"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A fast bcrypt hasher (cost 4) on its own worker pool
- In-memory stores and a fully wired LoginService
- A PostgreSQL pool that skips the requesting test when no database is reachable
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.cache.memory import InMemoryChallengeStore, InMemoryRevocationStore
from src.adapters.crypto.bcrypt_hasher import BcryptPasswordHasher
from src.adapters.crypto.jwt_signer import JwtTokenSigner
from src.adapters.repository.memory import InMemoryIdentityStore
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from src.domain.login import LoginService
from src.domain.tokens import SessionTokenService

TEST_JWT_SECRET = "test-signing-secret-0123456789-abcdefghijklmnop"


@pytest.fixture(scope="session")
def hasher() -> Generator[BcryptPasswordHasher, None, None]:
    """bcrypt at minimum cost so tests stay fast."""
    hasher = BcryptPasswordHasher(rounds=4, max_workers=4)
    yield hasher
    hasher.close()


@pytest.fixture
def signer() -> JwtTokenSigner:
    return JwtTokenSigner(TEST_JWT_SECRET)


@pytest.fixture
def identity_store(hasher: BcryptPasswordHasher) -> InMemoryIdentityStore:
    return InMemoryIdentityStore(hasher)


@pytest.fixture
def revocation_store() -> InMemoryRevocationStore:
    return InMemoryRevocationStore()


@pytest.fixture
def challenge_store() -> InMemoryChallengeStore:
    return InMemoryChallengeStore()


@pytest.fixture
def message_sender() -> Mock:
    """Message sender mock; the last delivered code is call_args[0][2]."""
    return Mock()


@pytest.fixture
def token_service(
    signer: JwtTokenSigner, revocation_store: InMemoryRevocationStore
) -> SessionTokenService:
    return SessionTokenService(signer=signer, revocation_store=revocation_store)


@pytest.fixture
def login_service(
    identity_store: InMemoryIdentityStore,
    challenge_store: InMemoryChallengeStore,
    hasher: BcryptPasswordHasher,
    token_service: SessionTokenService,
    message_sender: Mock,
) -> LoginService:
    return LoginService(
        identity_store=identity_store,
        challenge_store=challenge_store,
        hasher=hasher,
        tokens=token_service,
        message_sender=message_sender,
    )


@pytest.fixture(scope="session")
def postgres_pool() -> Generator[ConnectionPool, None, None]:
    """Connection pool against DATABASE_URL with migrations applied."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=3.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_identities(postgres_pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean identities table before each test."""
    with postgres_pool.connection() as conn:
        conn.execute("DELETE FROM identities")
        conn.commit()
    yield
