# ============================================================================
# LEASE SERVICE
# ============================================================================
# STATUS: Core - Lease creation, renewal and resolution
# PURPOSE: Keep deployments alive through time-boxed claims of interest
# CREATED: 15 OCT 2026
# ============================================================================
"""
LeaseService

A lease protects its deployment until its lifetime passes. Leases made
before the deployment is live are pending (no lifetime) and protect
nothing until activation gives them one. Lifetimes are only ever set to a
fresh ``now + ttl``; nothing here moves one backwards.

Leases are never deleted. Expiry is a comparison against the clock.
"""

from datetime import timedelta
from typing import List, Optional

from core.config import LeaseDefaults, get_defaults
from core.errors import NotFound
from core.logging import ComponentType, get_logger, log_context
from core.models import DeployStatus, Lease, ResolvedLease, status_from_row
from repositories.base import DeploymentStore

logger = get_logger(__name__, ComponentType.LEASE)


def _require_positive(ttl: timedelta) -> timedelta:
    if ttl <= timedelta(0):
        raise ValueError(f"Lease ttl must be positive, got {ttl}")
    return ttl


class LeaseService:
    """Lease lifecycle over a DeploymentStore."""

    def __init__(
        self,
        store: DeploymentStore,
        lease_defaults: Optional[LeaseDefaults] = None,
    ):
        self.store = store
        self.lease_defaults = lease_defaults or get_defaults().leases

    def _not_found(self, lease_id: int, operation: str) -> NotFound:
        return NotFound(
            f"Lease {lease_id} not found",
            operation=operation,
            entity_id=lease_id,
        )

    async def create_lease(
        self,
        locator: str,
        deployment_id: int,
        tag: bytes = b"",
    ) -> Lease:
        """
        Create a pending lease.

        If the deployment has gone live in the meantime the lease is
        stamped with the activation ttl instead of staying pending.

        Raises:
            NotFound: No such deployment
            ValueError: Locator does not match the deployment
        """
        with log_context(locator=locator, deployment_id=deployment_id, operation="create_lease"):
            lease = await self.store.insert_lease(
                locator,
                deployment_id,
                tag,
                None,
                self.lease_defaults.activation_ttl,
            )
            logger.info(f"Lease {lease.id} created ({lease.lifetime.kind})")
            return lease

    async def attach_lease(
        self,
        locator: str,
        deployment_id: int,
        tag: bytes = b"",
        ttl: Optional[timedelta] = None,
    ) -> Lease:
        """
        Create a lease that is timed from the start.

        Args:
            ttl: Lifetime from now; defaults to the configured attach ttl

        Raises:
            NotFound: No such deployment
            ValueError: Non-positive ttl, or locator mismatch
        """
        ttl = _require_positive(ttl if ttl is not None else self.lease_defaults.attach_ttl)
        with log_context(locator=locator, deployment_id=deployment_id, operation="attach_lease"):
            lease = await self.store.insert_lease(
                locator,
                deployment_id,
                tag,
                ttl,
                self.lease_defaults.activation_ttl,
            )
            logger.info(f"Lease {lease.id} attached for {ttl}")
            return lease

    async def renew_lease(self, lease_id: int, ttl: timedelta) -> Lease:
        """
        Set the lease lifetime to ``now + ttl``, whatever it was.

        Raises:
            NotFound: No such lease
            ValueError: Non-positive ttl
        """
        _require_positive(ttl)
        with log_context(lease_id=lease_id, operation="renew_lease"):
            lease = await self.store.set_lease_lifetime(lease_id, ttl)
            if lease is None:
                raise self._not_found(lease_id, "renew_lease")
            logger.debug(f"Renewed until {lease.lifetime.expires_at.isoformat()}")
            return lease

    async def resolve_lease(self, lease_id: int) -> ResolvedLease:
        """Route a lease to the server hosting its deployment."""
        found = await self.store.get_lease_deployment(lease_id)
        if found is None:
            raise self._not_found(lease_id, "resolve_lease")
        lease, _deployment, server = found
        return ResolvedLease(locator=lease.locator, lifetime=lease.lifetime, server=server)

    async def check_lease_deployment(self, lease_id: int) -> DeployStatus:
        """Status of the deployment a lease points at."""
        found = await self.store.get_lease_deployment(lease_id)
        if found is None:
            raise self._not_found(lease_id, "check_lease_deployment")
        _lease, deployment, server = found
        return status_from_row(deployment.state, deployment.id, server)

    async def list_leases(self, deployment_id: int) -> List[Lease]:
        """Every lease on a deployment, pending and timed, oldest first."""
        return await self.store.list_leases(deployment_id)


__all__ = ["LeaseService"]
