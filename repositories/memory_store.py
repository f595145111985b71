# ============================================================================
# IN-MEMORY DEPLOYMENT STORE
# ============================================================================
# STATUS: Core - Process-local store for tests and single-node runs
# PURPOSE: DeploymentStore implementation without a database
# CREATED: 15 OCT 2026
# ============================================================================
"""
InMemoryDeploymentStore

Same contract as the PostgreSQL store, kept in dicts. Every method runs
under one asyncio.Lock, so each call is an atomic unit with respect to the
event loop. Ids are assigned from per-table counters starting at 1, which
also gives the insertion order used as the placement tie-break.

``clock`` supplies "now" (defaults to UTC wall time) so expiry can be
tested without sleeping.
"""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from core.contracts import DeploymentState
from core.errors import DeploymentConflict, NotFound, PlacementError
from core.models import (
    ActiveUntil,
    Deployment,
    ExpiredDeployment,
    Lease,
    Pending,
    Placement,
    Server,
)
from .base import DeploymentStore


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDeploymentStore(DeploymentStore):
    """DeploymentStore kept in process memory."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self._lock = asyncio.Lock()
        self._servers: Dict[int, Server] = {}
        self._deployments: Dict[int, Deployment] = {}
        self._leases: Dict[int, Lease] = {}
        self._server_ids = itertools.count(1)
        self._deployment_ids = itertools.count(1)
        self._lease_ids = itertools.count(1)

    # =========================================================================
    # SERVER DIRECTORY
    # =========================================================================

    def _ranked_servers(self) -> List[Server]:
        return sorted(self._servers.values(), key=lambda s: (s.response_time, s.id))

    async def list_servers(self) -> List[Server]:
        async with self._lock:
            return self._ranked_servers()

    async def register_server(
        self,
        host: str,
        port: int,
        local_path: str,
        response_time: float = 0.0,
    ) -> Server:
        async with self._lock:
            server = Server(
                id=next(self._server_ids),
                host=host,
                port=port,
                local_path=local_path,
                response_time=response_time,
            )
            self._servers[server.id] = server
            return server

    async def set_response_time(self, server_id: int, response_time: float) -> Server:
        """Stand-in for the external monitor that updates the metric."""
        async with self._lock:
            server = self._servers[server_id].model_copy(
                update={"response_time": response_time}
            )
            self._servers[server_id] = server
            return server

    # =========================================================================
    # DEPLOYMENTS
    # =========================================================================

    async def place_deployment(self, locator: str) -> Placement:
        async with self._lock:
            for deployment in self._deployments.values():
                if deployment.locator == locator and deployment.state.is_active():
                    raise DeploymentConflict(locator, deployment.id)

            ranked = self._ranked_servers()
            if not ranked:
                raise PlacementError(
                    f"No servers registered to place {locator!r}",
                    operation="start_deployment",
                    entity_id=locator,
                )

            server = ranked[0]
            deployment = Deployment(
                id=next(self._deployment_ids),
                locator=locator,
                server_id=server.id,
                state=DeploymentState.STARTING,
            )
            self._deployments[deployment.id] = deployment
            return Placement(server=server, deployment_id=deployment.id)

    async def get_deployment(self, deployment_id: int) -> Optional[Deployment]:
        async with self._lock:
            return self._deployments.get(deployment_id)

    async def list_deployments_for_locator(
        self, locator: str
    ) -> List[Tuple[Deployment, Server]]:
        async with self._lock:
            rows = [d for d in self._deployments.values() if d.locator == locator]
            rows.sort(key=lambda d: d.id, reverse=True)
            return [(d, self._servers[d.server_id]) for d in rows]

    def _set_state(self, deployment: Deployment, state: DeploymentState) -> None:
        self._deployments[deployment.id] = deployment.model_copy(update={"state": state})

    async def transition_deployment(
        self,
        deployment_id: int,
        expected: DeploymentState,
        target: DeploymentState,
    ) -> bool:
        async with self._lock:
            deployment = self._deployments.get(deployment_id)
            if deployment is None or deployment.state is not expected:
                return False
            self._set_state(deployment, target)
            return True

    async def activate_deployment(self, deployment_id: int, ttl: timedelta) -> bool:
        async with self._lock:
            deployment = self._deployments.get(deployment_id)
            if deployment is None or deployment.state is not DeploymentState.STARTING:
                return False

            self._set_state(deployment, DeploymentState.LIVE)
            expires_at = self.clock() + ttl
            for lease in list(self._leases.values()):
                if lease.deployment_id == deployment_id and lease.is_pending:
                    self._leases[lease.id] = lease.model_copy(
                        update={"lifetime": ActiveUntil(expires_at=expires_at)}
                    )
            return True

    def _horizons(self) -> Dict[int, datetime]:
        horizons: Dict[int, datetime] = {}
        for lease in self._leases.values():
            if isinstance(lease.lifetime, ActiveUntil):
                current = horizons.get(lease.deployment_id)
                if current is None or lease.lifetime.expires_at > current:
                    horizons[lease.deployment_id] = lease.lifetime.expires_at
        return horizons

    async def start_expired_undeployment(self, deployment_id: int) -> bool:
        async with self._lock:
            deployment = self._deployments.get(deployment_id)
            if deployment is None or deployment.state is not DeploymentState.LIVE:
                return False
            horizon = self._horizons().get(deployment_id)
            if horizon is None or not horizon < self.clock():
                return False
            self._set_state(deployment, DeploymentState.KILLING)
            return True

    async def list_expired_deployments(self) -> List[ExpiredDeployment]:
        async with self._lock:
            now = self.clock()
            horizons = self._horizons()

            expired = []
            for deployment in sorted(self._deployments.values(), key=lambda d: d.id):
                if deployment.state is not DeploymentState.LIVE:
                    continue
                horizon = horizons.get(deployment.id)
                if horizon is not None and horizon < now:
                    expired.append(
                        ExpiredDeployment(
                            deployment_id=deployment.id,
                            locator=deployment.locator,
                            server=self._servers[deployment.server_id],
                        )
                    )
            return expired

    # =========================================================================
    # LEASES
    # =========================================================================

    async def insert_lease(
        self,
        locator: str,
        deployment_id: int,
        tag: bytes,
        ttl: Optional[timedelta],
        activation_ttl: timedelta,
    ) -> Lease:
        async with self._lock:
            deployment = self._deployments.get(deployment_id)
            if deployment is None:
                raise NotFound(
                    f"Deployment {deployment_id} not found",
                    operation="insert_lease",
                    entity_id=deployment_id,
                )
            if deployment.locator != locator:
                raise ValueError(
                    f"Deployment {deployment_id} serves {deployment.locator!r}, "
                    f"not {locator!r}"
                )

            if ttl is None and deployment.state is DeploymentState.LIVE:
                ttl = activation_ttl

            lifetime = Pending() if ttl is None else ActiveUntil(expires_at=self.clock() + ttl)
            lease = Lease(
                id=next(self._lease_ids),
                locator=locator,
                deployment_id=deployment_id,
                lifetime=lifetime,
                tag=tag,
            )
            self._leases[lease.id] = lease
            return lease

    async def set_lease_lifetime(self, lease_id: int, ttl: timedelta) -> Optional[Lease]:
        async with self._lock:
            lease = self._leases.get(lease_id)
            if lease is None:
                return None
            lease = lease.model_copy(
                update={"lifetime": ActiveUntil(expires_at=self.clock() + ttl)}
            )
            self._leases[lease_id] = lease
            return lease

    async def get_lease(self, lease_id: int) -> Optional[Lease]:
        async with self._lock:
            return self._leases.get(lease_id)

    async def get_lease_deployment(
        self, lease_id: int
    ) -> Optional[Tuple[Lease, Deployment, Server]]:
        async with self._lock:
            lease = self._leases.get(lease_id)
            if lease is None:
                return None
            deployment = self._deployments[lease.deployment_id]
            return lease, deployment, self._servers[deployment.server_id]

    async def list_leases(self, deployment_id: int) -> List[Lease]:
        async with self._lock:
            return sorted(
                (lease for lease in self._leases.values() if lease.deployment_id == deployment_id),
                key=lambda lease: lease.id,
            )


__all__ = ["InMemoryDeploymentStore", "utc_now"]
