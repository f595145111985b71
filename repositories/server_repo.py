# ============================================================================
# SERVER REPOSITORY
# ============================================================================
# STATUS: Core - Server directory reads and placement
# PURPOSE: Database access for the servers table and atomic placement
# CREATED: 14 OCT 2026
# ============================================================================
"""
Server Repository

Reads the server directory and performs placement: choosing the server
with the lowest response_time and inserting the STARTING deployment row
happen in one transaction.

Concurrent starts for the same locator are serialized by a
transaction-scoped advisory lock on the locator; the partial unique index
on active deployments backs that up. Starts for different locators never
block each other.
"""

import hashlib
from typing import Any, Dict, List

from psycopg import errors, sql
from psycopg.rows import dict_row

from core.contracts import DeploymentState
from core.errors import DeploymentConflict, PlacementError
from core.models import Placement, Server
from .base import BaseRepository
from .database import TABLE_DEPLOYMENTS, TABLE_SERVERS

LOCATOR_LOCK_PREFIX = "geodeploy:locator:"


def locator_lock_id(locator: str) -> int:
    """
    Convert a locator to an int64 advisory lock key.

    Uses the first 8 bytes of SHA256, interpreted as signed int64.
    """
    h = hashlib.sha256(f"{LOCATOR_LOCK_PREFIX}{locator}".encode()).digest()[:8]
    return int.from_bytes(h, byteorder="big", signed=True)


def row_to_server(row: Dict[str, Any]) -> Server:
    """Build a Server from a row with server_id/host/port/local_path/response_time."""
    return Server(
        id=row["server_id"],
        host=row["host"],
        port=row["port"],
        local_path=row["local_path"],
        response_time=row["response_time"],
    )


class ServerRepository(BaseRepository):
    """Repository for the server directory."""

    async def list_all(self) -> List[Server]:
        """
        List every server in placement order.

        Returns:
            Servers ordered by (response_time, id)
        """
        with self._error_context("list servers"):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT id AS server_id, host, port, local_path, response_time
                        FROM {}
                        ORDER BY response_time, id
                    """).format(TABLE_SERVERS)
                )
                rows = await result.fetchall()
                return [row_to_server(row) for row in rows]

    async def register(
        self,
        host: str,
        port: int,
        local_path: str,
        response_time: float = 0.0,
    ) -> Server:
        """Insert a server and return it with its generated id."""
        with self._error_context("register server", f"{host}:{port}"):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        INSERT INTO {} (host, port, local_path, response_time)
                        VALUES (%s, %s, %s, %s)
                        RETURNING id AS server_id, host, port, local_path, response_time
                    """).format(TABLE_SERVERS),
                    (host, port, local_path, response_time),
                )
                row = await result.fetchone()
                self.logger.info(f"Registered server {host}:{port} as id {row['server_id']}")
                return row_to_server(row)

    async def place_deployment(self, locator: str) -> Placement:
        """
        Choose a server and create a STARTING deployment for ``locator``.

        Args:
            locator: Dataset identifier

        Returns:
            Placement with the chosen server and new deployment id

        Raises:
            PlacementError: Server directory is empty
            DeploymentConflict: Locator already has a starting or live deployment
        """
        with self._error_context("place deployment", locator):
            try:
                async with self.pool.connection() as conn:
                    conn.row_factory = dict_row
                    async with conn.transaction():
                        await conn.execute(
                            "SELECT pg_advisory_xact_lock(%s)",
                            (locator_lock_id(locator),),
                        )

                        result = await conn.execute(
                            sql.SQL("""
                                SELECT id FROM {}
                                WHERE locator = %s AND state IN (%s, %s)
                                ORDER BY id
                                LIMIT 1
                            """).format(TABLE_DEPLOYMENTS),
                            (
                                locator,
                                DeploymentState.STARTING.value,
                                DeploymentState.LIVE.value,
                            ),
                        )
                        existing = await result.fetchone()
                        if existing is not None:
                            raise DeploymentConflict(locator, existing["id"])

                        # state comes from the column default (starting)
                        result = await conn.execute(
                            sql.SQL("""
                                WITH chosen AS (
                                    SELECT id, host, port, local_path, response_time
                                    FROM {servers}
                                    ORDER BY response_time, id
                                    LIMIT 1
                                ), inserted AS (
                                    INSERT INTO {deployments} (locator, server_id)
                                    SELECT %s, chosen.id FROM chosen
                                    RETURNING id, server_id
                                )
                                SELECT
                                    inserted.id AS deployment_id,
                                    chosen.id AS server_id,
                                    chosen.host, chosen.port,
                                    chosen.local_path, chosen.response_time
                                FROM inserted JOIN chosen ON chosen.id = inserted.server_id
                            """).format(servers=TABLE_SERVERS, deployments=TABLE_DEPLOYMENTS),
                            (locator,),
                        )
                        row = await result.fetchone()
            except errors.UniqueViolation as e:
                raise DeploymentConflict(locator) from e

            if row is None:
                raise PlacementError(
                    f"No servers registered to place {locator!r}",
                    operation="start_deployment",
                    entity_id=locator,
                )

            placement = Placement(server=row_to_server(row), deployment_id=row["deployment_id"])
            self.logger.info(
                f"Placed {locator} on {placement.server.address} "
                f"as deployment {placement.deployment_id}"
            )
            return placement


__all__ = ["ServerRepository", "row_to_server", "locator_lock_id"]
