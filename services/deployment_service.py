# ============================================================================
# DEPLOYMENT SERVICE
# ============================================================================
# STATUS: Core - Deployment state machine
# PURPOSE: Apply lifecycle transitions and resolve deployment status
# CREATED: 15 OCT 2026
# ============================================================================
"""
DeploymentService

Lifecycle: starting -> live -> killing -> dead, with starting -> dead on
provisioning failure. Each transition is one conditional update in the
store. When the update misses, the current row decides the outcome:

    row absent              -> NotFound
    row already at target   -> no-op (repeat callback), logged
    anything else           -> InvalidTransition

Dead rows are never written.

failUndeployment is deliberately inert: a failed teardown is not tracked
separately from a completed one.
"""

from typing import Optional

from core.config import LeaseDefaults, get_defaults
from core.contracts import DeploymentState
from core.errors import IntegrityViolation, InvalidTransition, NotFound
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import Dead, DeployStatus, status_from_row
from repositories.base import DeploymentStore

logger = get_logger(__name__, ComponentType.DEPLOYMENT)


class DeploymentService:
    """Deployment state transitions and status queries."""

    def __init__(
        self,
        store: DeploymentStore,
        lease_defaults: Optional[LeaseDefaults] = None,
    ):
        self.store = store
        self.lease_defaults = lease_defaults or get_defaults().leases

    # ================================================================
    # TRANSITIONS
    # ================================================================

    async def _resolve_miss(
        self,
        deployment_id: int,
        target: DeploymentState,
        operation: str,
    ) -> bool:
        """Explain a conditional update that matched no row."""
        deployment = await self.store.get_deployment(deployment_id)
        if deployment is None:
            raise NotFound(
                f"Deployment {deployment_id} not found",
                operation=operation,
                entity_id=deployment_id,
            )
        if deployment.state is target:
            logger.info(
                f"Deployment {deployment_id} already {target.value}, "
                f"ignoring repeated {operation}"
            )
            return False
        raise InvalidTransition(deployment_id, deployment.state, target, operation=operation)

    async def _transition(
        self,
        deployment_id: int,
        expected: DeploymentState,
        target: DeploymentState,
        operation: str,
    ) -> bool:
        with log_context(deployment_id=deployment_id, operation=operation):
            if await self.store.transition_deployment(deployment_id, expected, target):
                logger.info(f"{expected.value} -> {target.value}")
                return True
            return await self._resolve_miss(deployment_id, target, operation)

    async def complete_deployment(self, deployment_id: int) -> bool:
        """
        starting -> live, stamping pending leases with the activation ttl.

        Returns:
            True if the deployment went live now, False if it already was
        """
        operation = "complete_deployment"
        ttl = self.lease_defaults.activation_ttl
        with log_context(deployment_id=deployment_id, operation=operation):
            if await self.store.activate_deployment(deployment_id, ttl):
                log_checkpoint(
                    "deployment_live",
                    {"activation_ttl_seconds": ttl.total_seconds()},
                )
                return True
            return await self._resolve_miss(deployment_id, DeploymentState.LIVE, operation)

    async def fail_deployment(self, deployment_id: int) -> bool:
        """starting -> dead. Leases are left as they are."""
        changed = await self._transition(
            deployment_id,
            DeploymentState.STARTING,
            DeploymentState.DEAD,
            "fail_deployment",
        )
        if changed:
            with log_context(deployment_id=deployment_id):
                log_checkpoint("deployment_failed")
        return changed

    async def start_undeployment(self, deployment_id: int) -> bool:
        """live -> killing. The teardown worker takes it from here."""
        changed = await self._transition(
            deployment_id,
            DeploymentState.LIVE,
            DeploymentState.KILLING,
            "start_undeployment",
        )
        if changed:
            with log_context(deployment_id=deployment_id):
                log_checkpoint("undeployment_started")
        return changed

    async def complete_undeployment(self, deployment_id: int) -> bool:
        """killing -> dead."""
        changed = await self._transition(
            deployment_id,
            DeploymentState.KILLING,
            DeploymentState.DEAD,
            "complete_undeployment",
        )
        if changed:
            with log_context(deployment_id=deployment_id):
                log_checkpoint("deployment_dead")
        return changed

    async def fail_undeployment(self, deployment_id: int) -> None:
        """Teardown failed. Recorded in the log only; the row is not touched."""
        with log_context(deployment_id=deployment_id, operation="fail_undeployment"):
            logger.warning("Teardown reported failure; deployment state unchanged")

    # ================================================================
    # STATUS
    # ================================================================

    async def get_deployment_status(self, locator: str) -> DeployStatus:
        """
        Status of the locator's current deployment.

        The single starting/live deployment if there is one, else the most
        recent deployment, else Dead (no row at all reads as torn down).

        Raises:
            IntegrityViolation: More than one starting/live deployment
        """
        rows = await self.store.list_deployments_for_locator(locator)
        active = [(d, s) for d, s in rows if d.state.is_active()]

        if len(active) > 1:
            ids = ", ".join(str(d.id) for d, _ in active)
            logger.error(f"Locator {locator} has several active deployments: {ids}")
            raise IntegrityViolation(
                f"Locator {locator!r} has {len(active)} active deployments ({ids})",
                operation="get_deployment_status",
                entity_id=locator,
            )

        if active:
            deployment, server = active[0]
        elif rows:
            deployment, server = rows[0]
        else:
            return Dead()

        return status_from_row(deployment.state, deployment.id, server)


__all__ = ["DeploymentService"]
