# ============================================================================
# REAPER SERVICE
# ============================================================================
# STATUS: Core - Expired deployment detection
# PURPOSE: Find live deployments that no lease protects any more
# CREATED: 15 OCT 2026
# ============================================================================
"""
ReaperService

A live deployment is expired when its protection horizon (the latest
lease lifetime) is set and strictly before now. Pending leases add
nothing to the horizon, so a deployment with only pending leases, or none
at all, is never reported.

Detection is a read and may be stale by the time it is acted on, so
reap_deployment re-checks the horizon inside the transition itself. A
lease renewed after a scan keeps its deployment live until the next scan
(see scheduler.ReaperLoop).
"""

from typing import List

from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import ExpiredDeployment
from repositories.base import DeploymentStore

logger = get_logger(__name__, ComponentType.REAPER)


class ReaperService:
    """Detects and reaps live deployments that no lease protects."""

    def __init__(self, store: DeploymentStore):
        self.store = store

    async def find_expired_deployments(self) -> List[ExpiredDeployment]:
        expired = await self.store.list_expired_deployments()
        if expired:
            logger.info(f"{len(expired)} expired deployments")
            log_checkpoint(
                "deployments_expired",
                {"deployment_ids": [e.deployment_id for e in expired]},
            )
        return expired

    async def reap_deployment(self, deployment_id: int) -> bool:
        """
        Move one expired deployment to killing.

        Returns:
            True if it was still live and unprotected; False if a renewal
            or another transition got there first
        """
        with log_context(deployment_id=deployment_id):
            reaped = await self.store.start_expired_undeployment(deployment_id)
            if reaped:
                log_checkpoint("deployment_reaped")
            else:
                logger.info(f"Deployment {deployment_id} no longer expired, left alone")
            return reaped


__all__ = ["ReaperService"]
