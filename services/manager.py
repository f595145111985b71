# ============================================================================
# DEPLOYMENT MANAGER
# ============================================================================
# STATUS: Core - Public entry point of the lifecycle manager
# PURPOSE: One object exposing every lifecycle operation over one store
# CREATED: 16 OCT 2026
# ============================================================================
"""
DeploymentManager

Facade consumed by the request front-end and the teardown worker. It owns
no state beyond the store handle and the services built on it.

Usage:
    manager = DeploymentManager(InMemoryDeploymentStore())
    placement = await manager.start_deployment("layer1")
    # ... provision on placement.server ...
    await manager.complete_deployment(placement.deployment_id)
"""

from datetime import timedelta
from typing import List, Optional

from core.config import Defaults, get_defaults
from core.models import DeployStatus, ExpiredDeployment, Lease, Placement, ResolvedLease
from repositories.base import DeploymentStore
from .deployment_service import DeploymentService
from .lease_service import LeaseService
from .placement_service import PlacementService
from .reaper_service import ReaperService


class DeploymentManager:
    """Placement, state machine, leases and reaping over one explicit store."""

    def __init__(self, store: DeploymentStore, defaults: Optional[Defaults] = None):
        self.store = store
        self.defaults = defaults or get_defaults()
        self.placement = PlacementService(store)
        self.deployments = DeploymentService(store, self.defaults.leases)
        self.leases = LeaseService(store, self.defaults.leases)
        self.reaper = ReaperService(store)

    # ================================================================
    # PLACEMENT AND STATE MACHINE
    # ================================================================

    async def start_deployment(self, locator: str) -> Placement:
        return await self.placement.start_deployment(locator)

    async def complete_deployment(self, deployment_id: int) -> bool:
        return await self.deployments.complete_deployment(deployment_id)

    async def fail_deployment(self, deployment_id: int) -> bool:
        return await self.deployments.fail_deployment(deployment_id)

    async def start_undeployment(self, deployment_id: int) -> bool:
        return await self.deployments.start_undeployment(deployment_id)

    async def complete_undeployment(self, deployment_id: int) -> bool:
        return await self.deployments.complete_undeployment(deployment_id)

    async def fail_undeployment(self, deployment_id: int) -> None:
        await self.deployments.fail_undeployment(deployment_id)

    async def get_deployment_status(self, locator: str) -> DeployStatus:
        return await self.deployments.get_deployment_status(locator)

    # ================================================================
    # LEASES
    # ================================================================

    async def create_lease(self, locator: str, deployment_id: int, tag: bytes = b"") -> Lease:
        return await self.leases.create_lease(locator, deployment_id, tag)

    async def attach_lease(
        self,
        locator: str,
        deployment_id: int,
        tag: bytes = b"",
        ttl: Optional[timedelta] = None,
    ) -> Lease:
        return await self.leases.attach_lease(locator, deployment_id, tag, ttl)

    async def renew_lease(self, lease_id: int, ttl: timedelta) -> Lease:
        return await self.leases.renew_lease(lease_id, ttl)

    async def resolve_lease(self, lease_id: int) -> ResolvedLease:
        return await self.leases.resolve_lease(lease_id)

    async def check_lease_deployment(self, lease_id: int) -> DeployStatus:
        return await self.leases.check_lease_deployment(lease_id)

    async def list_leases(self, deployment_id: int) -> List[Lease]:
        return await self.leases.list_leases(deployment_id)

    # ================================================================
    # REAPER
    # ================================================================

    async def find_expired_deployments(self) -> List[ExpiredDeployment]:
        return await self.reaper.find_expired_deployments()

    async def reap_deployment(self, deployment_id: int) -> bool:
        return await self.reaper.reap_deployment(deployment_id)


__all__ = ["DeploymentManager"]
