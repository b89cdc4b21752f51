"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures routers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool
from redis import Redis

from src.adapters.cache.memory import InMemoryChallengeStore, InMemoryRevocationStore
from src.adapters.cache.redis import RedisChallengeStore, RedisRevocationStore
from src.adapters.crypto.bcrypt_hasher import BcryptPasswordHasher
from src.adapters.crypto.jwt_signer import JwtTokenSigner
from src.adapters.repository.memory import InMemoryIdentityStore
from src.adapters.repository.postgres import PostgresIdentityStore, run_migrations
from src.api.v1 import router as v1_router
from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Session API v1 - Sign up, log in with optional one-time code, log out",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Builds the signer (fails fast without a signing secret)
    - Starts the dedicated hashing pool
    - Connects the configured store backend (running migrations for PostgreSQL)
    - Releases everything on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    signer = JwtTokenSigner(settings.jwt_secret.get_secret_value(), settings.jwt_algorithm)
    hasher = BcryptPasswordHasher(rounds=settings.bcrypt_cost, max_workers=settings.hasher_workers)

    pool = None
    redis_client = None

    if settings.store_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)

        logger.info("Connecting to Redis...")
        redis_client = Redis.from_url(settings.redis_url)

        app.state.identity_store = PostgresIdentityStore(pool, hasher)
        app.state.revocation_store = RedisRevocationStore(redis_client)
        app.state.challenge_store = RedisChallengeStore(redis_client)
    else:
        logger.warning("Using in-memory stores; state is lost on restart")
        app.state.identity_store = InMemoryIdentityStore(hasher)
        app.state.revocation_store = InMemoryRevocationStore()
        app.state.challenge_store = InMemoryChallengeStore()

    app.state.pool = pool
    app.state.redis = redis_client
    app.state.signer = signer
    app.state.hasher = hasher

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")
    if redis_client is not None:
        redis_client.close()
    hasher.close()


app = FastAPI(
    title="sessiongate",
    description="Session issuance and revocation with an optional one-time code second factor",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with backend validation.

    Returns 200 OK if application and configured backends are healthy.
    Raises exception if a backend connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    redis_client = request.app.state.redis
    if redis_client is not None:
        redis_client.ping()

    return {"status": "healthy"}
