# ============================================================================
# POSTGRESQL DEPLOYMENT STORE
# ============================================================================
# STATUS: Core - Durable store backed by PostgreSQL
# PURPOSE: DeploymentStore implementation over the table repositories
# CREATED: 14 OCT 2026
# ============================================================================
"""
PostgresDeploymentStore

Adapts ServerRepository, DeploymentRepository and LeaseRepository to the
DeploymentStore contract. Holds one explicit pool; there is no shared
module-level connection.

Usage:
    async with DatabasePool() as pool:
        store = PostgresDeploymentStore(pool)
        manager = DeploymentManager(store)
"""

from datetime import timedelta
from typing import List, Optional, Tuple

from psycopg_pool import AsyncConnectionPool

from core.contracts import DeploymentState
from core.models import Deployment, ExpiredDeployment, Lease, Placement, Server
from .base import DeploymentStore
from .deployment_repo import DeploymentRepository
from .lease_repo import LeaseRepository
from .server_repo import ServerRepository


class PostgresDeploymentStore(DeploymentStore):
    """DeploymentStore over an AsyncConnectionPool."""

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.server_repo = ServerRepository(pool)
        self.deployment_repo = DeploymentRepository(pool)
        self.lease_repo = LeaseRepository(pool)

    async def list_servers(self) -> List[Server]:
        return await self.server_repo.list_all()

    async def register_server(
        self,
        host: str,
        port: int,
        local_path: str,
        response_time: float = 0.0,
    ) -> Server:
        return await self.server_repo.register(host, port, local_path, response_time)

    async def place_deployment(self, locator: str) -> Placement:
        return await self.server_repo.place_deployment(locator)

    async def get_deployment(self, deployment_id: int) -> Optional[Deployment]:
        return await self.deployment_repo.get(deployment_id)

    async def list_deployments_for_locator(
        self, locator: str
    ) -> List[Tuple[Deployment, Server]]:
        return await self.deployment_repo.list_for_locator(locator)

    async def transition_deployment(
        self,
        deployment_id: int,
        expected: DeploymentState,
        target: DeploymentState,
    ) -> bool:
        return await self.deployment_repo.transition(deployment_id, expected, target)

    async def activate_deployment(self, deployment_id: int, ttl: timedelta) -> bool:
        return await self.deployment_repo.activate(deployment_id, ttl)

    async def list_expired_deployments(self) -> List[ExpiredDeployment]:
        return await self.deployment_repo.list_expired()

    async def start_expired_undeployment(self, deployment_id: int) -> bool:
        return await self.deployment_repo.start_expired_undeployment(deployment_id)

    async def insert_lease(
        self,
        locator: str,
        deployment_id: int,
        tag: bytes,
        ttl: Optional[timedelta],
        activation_ttl: timedelta,
    ) -> Lease:
        return await self.lease_repo.insert(locator, deployment_id, tag, ttl, activation_ttl)

    async def set_lease_lifetime(self, lease_id: int, ttl: timedelta) -> Optional[Lease]:
        return await self.lease_repo.set_lifetime(lease_id, ttl)

    async def get_lease(self, lease_id: int) -> Optional[Lease]:
        return await self.lease_repo.get(lease_id)

    async def get_lease_deployment(
        self, lease_id: int
    ) -> Optional[Tuple[Lease, Deployment, Server]]:
        return await self.lease_repo.get_with_deployment(lease_id)

    async def list_leases(self, deployment_id: int) -> List[Lease]:
        return await self.lease_repo.list_for_deployment(deployment_id)


__all__ = ["PostgresDeploymentStore"]
