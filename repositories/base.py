# ============================================================================
# STORE CONTRACT AND BASE REPOSITORY
# ============================================================================
# STATUS: Core - Durable store interface and shared error handling
# PURPOSE: The operations the lifecycle manager needs from its store, plus
#          driver-error translation for the PostgreSQL repositories
# CREATED: 14 OCT 2026
# ============================================================================
"""
Store Contract

DeploymentStore lists every read and atomic write the services use. Each
method is one indivisible unit against the store: an implementation either
applies all of it or none of it.

Implementations:
    PostgresDeploymentStore  - psycopg3 async pool, one transaction per unit
    InMemoryDeploymentStore  - process memory behind an asyncio.Lock

BaseRepository gives the PostgreSQL repositories a uniform error context:
connection, pool and transaction failures surface as StoreUnavailable, and
domain errors pass through untouched.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import timedelta
from typing import List, Optional, Tuple

import psycopg
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from core.contracts import DeploymentState
from core.errors import DeploymentError, StoreUnavailable
from core.logging import ComponentType, get_logger
from core.models import Deployment, ExpiredDeployment, Lease, Placement, Server


class DeploymentStore(ABC):
    """Durable store for servers, deployments and leases."""

    # =========================================================================
    # SERVER DIRECTORY
    # =========================================================================

    @abstractmethod
    async def list_servers(self) -> List[Server]:
        """All registered servers in placement order (response_time, id)."""

    @abstractmethod
    async def register_server(
        self,
        host: str,
        port: int,
        local_path: str,
        response_time: float = 0.0,
    ) -> Server:
        """Add a server to the directory (bootstrap/admin use)."""

    # =========================================================================
    # DEPLOYMENTS
    # =========================================================================

    @abstractmethod
    async def place_deployment(self, locator: str) -> Placement:
        """
        Pick the lowest response_time server and insert a STARTING row, atomically.

        Raises:
            PlacementError: No servers registered
            DeploymentConflict: Locator already has a starting or live deployment
        """

    @abstractmethod
    async def get_deployment(self, deployment_id: int) -> Optional[Deployment]:
        """Point read by id."""

    @abstractmethod
    async def list_deployments_for_locator(
        self, locator: str
    ) -> List[Tuple[Deployment, Server]]:
        """Every deployment of a locator with its server, newest first."""

    @abstractmethod
    async def transition_deployment(
        self,
        deployment_id: int,
        expected: DeploymentState,
        target: DeploymentState,
    ) -> bool:
        """
        Conditional update: set state to target only if it is currently expected.

        Returns:
            True if the row was updated
        """

    @abstractmethod
    async def activate_deployment(self, deployment_id: int, ttl: timedelta) -> bool:
        """
        STARTING -> LIVE and give every pending lease ``now + ttl``, in one unit.

        Returns:
            True if the deployment was starting and is now live
        """

    @abstractmethod
    async def list_expired_deployments(self) -> List[ExpiredDeployment]:
        """Live deployments whose maximum lease lifetime is strictly before now."""

    @abstractmethod
    async def start_expired_undeployment(self, deployment_id: int) -> bool:
        """
        LIVE -> KILLING only if the deployment is still expired, in one unit.

        The lease horizon is re-read inside the same update, so a lease
        renewed after list_expired_deployments keeps the deployment live.

        Returns:
            True if the deployment was live and expired and is now killing
        """

    # =========================================================================
    # LEASES
    # =========================================================================

    @abstractmethod
    async def insert_lease(
        self,
        locator: str,
        deployment_id: int,
        tag: bytes,
        ttl: Optional[timedelta],
        activation_ttl: timedelta,
    ) -> Lease:
        """
        Insert a lease.

        ``ttl`` None requests a pending lease. If the deployment is already
        live the lease gets ``now + activation_ttl`` instead, so a pending
        lease never sits on a live deployment.

        Raises:
            NotFound: No such deployment
            ValueError: Locator does not match the deployment's locator
        """

    @abstractmethod
    async def set_lease_lifetime(self, lease_id: int, ttl: timedelta) -> Optional[Lease]:
        """Set lifetime to ``now + ttl``. Returns the updated lease, None if absent."""

    @abstractmethod
    async def get_lease(self, lease_id: int) -> Optional[Lease]:
        """Point read by id."""

    @abstractmethod
    async def get_lease_deployment(
        self, lease_id: int
    ) -> Optional[Tuple[Lease, Deployment, Server]]:
        """A lease joined to its deployment and that deployment's server."""

    @abstractmethod
    async def list_leases(self, deployment_id: int) -> List[Lease]:
        """Every lease (pending or timed) on a deployment, oldest first."""


class BaseRepository:
    """
    Base for PostgreSQL repositories.

    Provides the pool handle and a consistent error context.
    """

    def __init__(self, pool: AsyncConnectionPool):
        self.pool = pool
        self.logger = get_logger(self.__class__.__name__, ComponentType.REPOSITORY)

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[object] = None):
        """
        Translate driver failures for one repository operation.

        Usable around ``async with`` blocks; a failed transaction has already
        rolled back by the time the exception reaches this frame.

        Args:
            operation: Human-readable description of the operation
            entity_id: Optional entity id for context
        """
        try:
            yield
        except DeploymentError:
            raise
        except (psycopg.OperationalError, psycopg.InterfaceError, PoolTimeout) as e:
            self.logger.error(
                f"Store unavailable during {operation}"
                + (f" ({entity_id})" if entity_id is not None else "")
                + f": {e}"
            )
            raise StoreUnavailable(
                f"{operation} failed: {e}",
                operation=operation,
                entity_id=entity_id,
            ) from e


__all__ = ["DeploymentStore", "BaseRepository"]
