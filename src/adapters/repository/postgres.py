"""
PostgreSQL identity store - Implements IdentityStore protocol.

This module provides the PostgreSQL implementation of the domain's
identity store port using psycopg3 with raw SQL.

Concurrency Design
------------------
Address uniqueness is enforced by the PRIMARY KEY on ``identities.address``.
``add`` uses INSERT ... ON CONFLICT DO NOTHING, so concurrent registrations
for the same address yield exactly one inserted row without any in-process
check-then-insert race.

Credential checks read the hash, return the connection to the pool, and only
then run the (slow) hash verification, so a pooled connection is never held
across bcrypt work.
"""

import logging
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.exceptions import IdentityAlreadyExists, IdentityNotFound, UnexpectedError, ValidationError
from src.domain.ports import IdentityRecord, PasswordHasher
from src.domain.values import CredentialHash, IdentityAddress, PlaintextCredential, SecretCredential

from .credentials import check_credential, make_dummy_hash

logger = logging.getLogger(__name__)


class PostgresIdentityStore:
    """
    Implements IdentityStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, hasher: PasswordHasher) -> None:
        """
        Args:
            pool: psycopg3 ConnectionPool for database connections
            hasher: Password hasher used by validate_credential
        """
        self._pool = pool
        self._hasher = hasher
        self._dummy_hash = make_dummy_hash(hasher)

    def add(self, record: IdentityRecord) -> None:
        sql = """
            INSERT INTO identities (address, credential_hash, requires_second_factor)
            VALUES (%s, %s, %s)
            ON CONFLICT (address) DO NOTHING
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    sql,
                    (record.address.value, record.credential_hash.value, record.requires_second_factor),
                )
                conn.commit()
                inserted = cursor.rowcount == 1
        except psycopg.Error as e:
            raise UnexpectedError("failed to add identity") from e

        if not inserted:
            raise IdentityAlreadyExists(str(record.address))

    def get(self, address: IdentityAddress) -> IdentityRecord:
        sql = """
            SELECT address, credential_hash, requires_second_factor
            FROM identities
            WHERE address = %s
        """
        row = self._fetch_one(sql, address)
        if row is None:
            raise IdentityNotFound(str(address))

        try:
            stored_address = IdentityAddress.parse(row[0])
        except ValidationError as e:
            raise UnexpectedError("stored identity address is invalid") from e
        return IdentityRecord(
            address=stored_address,
            credential_hash=SecretCredential.from_hash(row[1]),
            requires_second_factor=row[2],
        )

    def validate_credential(self, address: IdentityAddress, candidate: PlaintextCredential) -> None:
        sql = "SELECT credential_hash FROM identities WHERE address = %s"
        row = self._fetch_one(sql, address)
        stored = SecretCredential.from_hash(row[0]) if row is not None else None
        check_credential(self._hasher, address, candidate, stored, self._dummy_hash)

    def update_credential(self, address: IdentityAddress, credential_hash: CredentialHash) -> None:
        sql = """
            UPDATE identities
            SET credential_hash = %s, credential_updated_at = NOW()
            WHERE address = %s
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (credential_hash.value, address.value))
                conn.commit()
                updated = cursor.rowcount == 1
        except psycopg.Error as e:
            raise UnexpectedError("failed to update credential") from e

        if not updated:
            raise IdentityNotFound(str(address))

    def _fetch_one(self, sql: str, address: IdentityAddress):
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (address.value,))
                return cursor.fetchone()
        except psycopg.Error as e:
            raise UnexpectedError("failed to read identity") from e


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except psycopg.Error as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
        logger.info("Migration complete: %s", sql_file.name)
