# ============================================================================
# LEASE REPOSITORY
# ============================================================================
# STATUS: Core - Lease inserts, renewals and reads
# PURPOSE: Database access for the leases table
# CREATED: 14 OCT 2026
# ============================================================================
"""
Lease Repository

Leases are inserted and renewed, never deleted. ``lifetime`` NULL means
pending. Inserts take a share lock on the deployment row so they serialize
against activation, which is what keeps a pending lease off a live
deployment.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from psycopg import sql
from psycopg.rows import dict_row

from core.contracts import DeploymentState
from core.errors import NotFound
from core.models import Deployment, Lease, Server, lifetime_from_column
from .base import BaseRepository
from .database import TABLE_DEPLOYMENTS, TABLE_LEASES, TABLE_SERVERS
from .deployment_repo import row_to_deployment
from .server_repo import row_to_server

_LEASE_COLUMNS = sql.SQL(
    "id AS lease_id, locator, deployment_id, lifetime, tag"
)


def row_to_lease(row: Dict[str, Any]) -> Lease:
    return Lease(
        id=row["lease_id"],
        locator=row["locator"],
        deployment_id=row["deployment_id"],
        lifetime=lifetime_from_column(row["lifetime"]),
        tag=bytes(row["tag"]) if row["tag"] is not None else b"",
    )


class LeaseRepository(BaseRepository):
    """Repository for Lease entities."""

    async def insert(
        self,
        locator: str,
        deployment_id: int,
        tag: bytes,
        ttl: Optional[timedelta],
        activation_ttl: timedelta,
    ) -> Lease:
        """
        Insert a pending (ttl None) or timed lease.

        Raises:
            NotFound: No such deployment
            ValueError: Locator does not match the deployment
        """
        with self._error_context("insert lease", deployment_id):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                async with conn.transaction():
                    result = await conn.execute(
                        sql.SQL(
                            "SELECT locator, state FROM {} WHERE id = %s FOR SHARE"
                        ).format(TABLE_DEPLOYMENTS),
                        (deployment_id,),
                    )
                    deployment = await result.fetchone()
                    if deployment is None:
                        raise NotFound(
                            f"Deployment {deployment_id} not found",
                            operation="insert_lease",
                            entity_id=deployment_id,
                        )
                    if deployment["locator"] != locator:
                        raise ValueError(
                            f"Deployment {deployment_id} serves {deployment['locator']!r}, "
                            f"not {locator!r}"
                        )

                    if ttl is None and deployment["state"] == DeploymentState.LIVE.value:
                        ttl = activation_ttl

                    if ttl is None:
                        lifetime_sql, params = sql.SQL("NULL"), (locator, deployment_id, tag)
                    else:
                        lifetime_sql, params = sql.SQL("NOW() + %s"), (locator, deployment_id, ttl, tag)

                    result = await conn.execute(
                        sql.SQL("""
                            INSERT INTO {} (locator, deployment_id, lifetime, tag)
                            VALUES (%s, %s, {}, %s)
                            RETURNING {}
                        """).format(TABLE_LEASES, lifetime_sql, _LEASE_COLUMNS),
                        params,
                    )
                    lease = row_to_lease(await result.fetchone())
                    self.logger.debug(
                        f"Inserted lease {lease.id} on deployment {deployment_id} "
                        f"({lease.lifetime.kind})"
                    )
                    return lease

    async def set_lifetime(self, lease_id: int, ttl: timedelta) -> Optional[Lease]:
        """Set lifetime to ``NOW() + ttl``, whatever it was before."""
        with self._error_context("renew lease", lease_id):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        UPDATE {} SET lifetime = NOW() + %s
                        WHERE id = %s
                        RETURNING {}
                    """).format(TABLE_LEASES, _LEASE_COLUMNS),
                    (ttl, lease_id),
                )
                row = await result.fetchone()
                return row_to_lease(row) if row else None

    async def get(self, lease_id: int) -> Optional[Lease]:
        with self._error_context("get lease", lease_id):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("SELECT {} FROM {} WHERE id = %s").format(
                        _LEASE_COLUMNS, TABLE_LEASES
                    ),
                    (lease_id,),
                )
                row = await result.fetchone()
                return row_to_lease(row) if row else None

    async def get_with_deployment(
        self, lease_id: int
    ) -> Optional[Tuple[Lease, Deployment, Server]]:
        """Join a lease through its deployment to the hosting server."""
        with self._error_context("resolve lease", lease_id):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT
                            l.id AS lease_id, l.locator, l.deployment_id, l.lifetime, l.tag,
                            d.server_id, d.state,
                            s.host, s.port, s.local_path, s.response_time,
                            d.locator AS deployment_locator
                        FROM {leases} l
                        JOIN {deployments} d ON d.id = l.deployment_id
                        JOIN {servers} s ON s.id = d.server_id
                        WHERE l.id = %s
                    """).format(
                        leases=TABLE_LEASES,
                        deployments=TABLE_DEPLOYMENTS,
                        servers=TABLE_SERVERS,
                    ),
                    (lease_id,),
                )
                row = await result.fetchone()
                if row is None:
                    return None
                deployment = row_to_deployment({**row, "locator": row["deployment_locator"]})
                return row_to_lease(row), deployment, row_to_server(row)

    async def list_for_deployment(self, deployment_id: int) -> List[Lease]:
        """All leases on a deployment, oldest first."""
        with self._error_context("list leases", deployment_id):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT {} FROM {}
                        WHERE deployment_id = %s
                        ORDER BY id
                    """).format(_LEASE_COLUMNS, TABLE_LEASES),
                    (deployment_id,),
                )
                rows = await result.fetchall()
                return [row_to_lease(row) for row in rows]


__all__ = ["LeaseRepository", "row_to_lease"]
