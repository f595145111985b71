# ============================================================================
# DEPLOYMENT REPOSITORY
# ============================================================================
# STATUS: Core - Deployment reads and conditional state updates
# PURPOSE: Database access for the deployments table
# CREATED: 14 OCT 2026
# ============================================================================
"""
Deployment Repository

Every state change is a conditional UPDATE (``WHERE id = ? AND state = ?``)
so two racing callers cannot both apply the same transition. Activation
also stamps pending leases in the same transaction. Times come from the
database clock.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from psycopg import sql
from psycopg.rows import dict_row

from core.contracts import DeploymentState
from core.models import Deployment, ExpiredDeployment, Server
from .base import BaseRepository
from .database import TABLE_DEPLOYMENTS, TABLE_LEASES, TABLE_SERVERS
from .server_repo import row_to_server


def row_to_deployment(row: Dict[str, Any]) -> Deployment:
    return Deployment(
        id=row["deployment_id"],
        locator=row["locator"],
        server_id=row["server_id"],
        state=DeploymentState(row["state"]),
    )


class DeploymentRepository(BaseRepository):
    """Repository for Deployment entities."""

    async def get(self, deployment_id: int) -> Optional[Deployment]:
        """
        Get a deployment by id.

        Returns:
            Deployment or None
        """
        with self._error_context("get deployment", deployment_id):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT id AS deployment_id, locator, server_id, state
                        FROM {} WHERE id = %s
                    """).format(TABLE_DEPLOYMENTS),
                    (deployment_id,),
                )
                row = await result.fetchone()
                return row_to_deployment(row) if row else None

    async def list_for_locator(self, locator: str) -> List[Tuple[Deployment, Server]]:
        """
        Every deployment of a locator joined to its server, newest first.
        """
        with self._error_context("list deployments", locator):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT
                            d.id AS deployment_id, d.locator, d.server_id, d.state,
                            s.host, s.port, s.local_path, s.response_time
                        FROM {deployments} d
                        JOIN {servers} s ON s.id = d.server_id
                        WHERE d.locator = %s
                        ORDER BY d.id DESC
                    """).format(deployments=TABLE_DEPLOYMENTS, servers=TABLE_SERVERS),
                    (locator,),
                )
                rows = await result.fetchall()
                return [(row_to_deployment(row), row_to_server(row)) for row in rows]

    async def transition(
        self,
        deployment_id: int,
        expected: DeploymentState,
        target: DeploymentState,
    ) -> bool:
        """
        Move a deployment from ``expected`` to ``target``.

        Returns:
            True if updated, False if the row is absent or in another state
        """
        with self._error_context(f"transition to {target.value}", deployment_id):
            async with self.pool.connection() as conn:
                result = await conn.execute(
                    sql.SQL("""
                        UPDATE {} SET state = %s, updated_at = NOW()
                        WHERE id = %s AND state = %s
                    """).format(TABLE_DEPLOYMENTS),
                    (target.value, deployment_id, expected.value),
                )
                updated = result.rowcount > 0
                if updated:
                    self.logger.debug(
                        f"Deployment {deployment_id}: {expected.value} -> {target.value}"
                    )
                return updated

    async def activate(self, deployment_id: int, ttl: timedelta) -> bool:
        """
        STARTING -> LIVE, then give every pending lease ``now() + ttl``.

        Both updates share one transaction. The state UPDATE takes the
        deployment row lock, which lease inserts wait on, so no pending
        lease can slip in after the lease UPDATE.

        Returns:
            True if the deployment was activated
        """
        with self._error_context("activate deployment", deployment_id):
            async with self.pool.connection() as conn:
                async with conn.transaction():
                    result = await conn.execute(
                        sql.SQL("""
                            UPDATE {} SET state = %s, updated_at = NOW()
                            WHERE id = %s AND state = %s
                        """).format(TABLE_DEPLOYMENTS),
                        (
                            DeploymentState.LIVE.value,
                            deployment_id,
                            DeploymentState.STARTING.value,
                        ),
                    )
                    if result.rowcount == 0:
                        return False

                    result = await conn.execute(
                        sql.SQL("""
                            UPDATE {} SET lifetime = NOW() + %s
                            WHERE deployment_id = %s AND lifetime IS NULL
                        """).format(TABLE_LEASES),
                        (ttl, deployment_id),
                    )
                    self.logger.info(
                        f"Deployment {deployment_id} live, "
                        f"activated {result.rowcount} pending leases"
                    )
                    return True

    async def start_expired_undeployment(self, deployment_id: int) -> bool:
        """
        LIVE -> KILLING, conditional on the lease horizon still being past.

        The deployment's leases are share-locked first so an in-flight
        renewal commits before the horizon is read; the UPDATE then sees it
        and leaves the deployment live.

        Returns:
            True if the deployment was moved to killing
        """
        with self._error_context("start expired undeployment", deployment_id):
            async with self.pool.connection() as conn:
                async with conn.transaction():
                    await conn.execute(
                        sql.SQL("""
                            SELECT id FROM {} WHERE deployment_id = %s FOR SHARE
                        """).format(TABLE_LEASES),
                        (deployment_id,),
                    )
                    result = await conn.execute(
                        sql.SQL("""
                            UPDATE {deployments} SET state = %s, updated_at = NOW()
                            WHERE id = %s AND state = %s
                              AND (
                                  SELECT max(l.lifetime) FROM {leases} l
                                  WHERE l.deployment_id = %s
                              ) < NOW()
                        """).format(
                            deployments=TABLE_DEPLOYMENTS,
                            leases=TABLE_LEASES,
                        ),
                        (
                            DeploymentState.KILLING.value,
                            deployment_id,
                            DeploymentState.LIVE.value,
                            deployment_id,
                        ),
                    )
                    updated = result.rowcount > 0
                    if updated:
                        self.logger.info(f"Deployment {deployment_id} expired, now killing")
                    return updated

    async def list_expired(self) -> List[ExpiredDeployment]:
        """
        Live deployments whose protection horizon is strictly in the past.

        max() ignores NULL lifetimes, so a deployment with only pending
        leases (or none) has a NULL horizon and is never reported.
        """
        with self._error_context("list expired deployments"):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT
                            d.id AS deployment_id, d.locator,
                            s.id AS server_id, s.host, s.port, s.local_path, s.response_time
                        FROM {deployments} d
                        JOIN {servers} s ON s.id = d.server_id
                        JOIN LATERAL (
                            SELECT max(l.lifetime) AS horizon
                            FROM {leases} l
                            WHERE l.deployment_id = d.id
                        ) h ON true
                        WHERE d.state = %s AND h.horizon < NOW()
                        ORDER BY d.id
                    """).format(
                        deployments=TABLE_DEPLOYMENTS,
                        servers=TABLE_SERVERS,
                        leases=TABLE_LEASES,
                    ),
                    (DeploymentState.LIVE.value,),
                )
                rows = await result.fetchall()
                return [
                    ExpiredDeployment(
                        deployment_id=row["deployment_id"],
                        locator=row["locator"],
                        server=row_to_server(row),
                    )
                    for row in rows
                ]


__all__ = ["DeploymentRepository", "row_to_deployment"]
