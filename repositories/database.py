# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 14 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
There is no process-wide pool: whoever opens a DatabasePool owns it and
passes it to the store explicitly.

Connection string resolution:
1. DATABASE_URL environment variable
2. Individual POSTGRES_* components

Usage:
    from repositories.database import DatabasePool

    async with DatabasePool() as pool:
        store = PostgresDeploymentStore(pool)
        ...
"""

import logging
import os
from typing import Optional

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from core.config import DatabaseDefaults

logger = logging.getLogger(__name__)


def get_connection_string() -> str:
    """
    Get database connection string from environment.

    Returns:
        PostgreSQL connection string
    """
    if url := os.environ.get("DATABASE_URL"):
        return url

    host = os.environ.get("POSTGRES_HOST", "localhost")
    port = os.environ.get("POSTGRES_PORT", "5432")
    name = os.environ.get("POSTGRES_DB", "postgres")
    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    sslmode = os.environ.get("POSTGRES_SSLMODE", "prefer")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def mask_conninfo(conninfo: str) -> str:
    """Strip credentials from a connection string for logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        head, _, tail = conninfo.partition("password=")
        rest = tail.split(" ", 1)
        return head + "password=***" + (" " + rest[1] if len(rest) > 1 else "")
    return conninfo


class DatabasePool:
    """
    Async context manager for pool lifecycle.

    Usage:
        async with DatabasePool() as pool:
            async with pool.connection() as conn:
                ...
    """

    def __init__(
        self,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        connection_string: Optional[str] = None,
        defaults: Optional[DatabaseDefaults] = None,
    ):
        defaults = defaults or DatabaseDefaults.from_env()
        self.min_size = min_size if min_size is not None else defaults.pool_min_size
        self.max_size = max_size if max_size is not None else defaults.pool_max_size
        self.connection_string = connection_string
        self._pool: Optional[AsyncConnectionPool] = None

    async def open(self) -> AsyncConnectionPool:
        """Open the pool. Idempotent."""
        if self._pool is not None:
            logger.warning("Pool already open, returning existing pool")
            return self._pool

        conninfo = self.connection_string or get_connection_string()
        logger.info(f"Initializing connection pool: {mask_conninfo(conninfo)}")

        self._pool = AsyncConnectionPool(
            conninfo=conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False,
        )
        await self._pool.open()
        logger.info(f"Connection pool opened (min={self.min_size}, max={self.max_size})")
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Connection pool closed")

    async def __aenter__(self) -> AsyncConnectionPool:
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = DatabaseDefaults.from_env().schema

# Table identifiers - use with psycopg sql.SQL().format() for injection-safe queries
TABLE_SERVERS = sql.Identifier(SCHEMA, "servers")
TABLE_DEPLOYMENTS = sql.Identifier(SCHEMA, "deployments")
TABLE_LEASES = sql.Identifier(SCHEMA, "leases")
TABLE_METADATA = sql.Identifier(SCHEMA, "metadata")
TABLE_GEOMETADATA = sql.Identifier(SCHEMA, "geometadata")
