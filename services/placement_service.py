# ============================================================================
# PLACEMENT SERVICE
# ============================================================================
# STATUS: Core - Server selection for new deployments
# PURPOSE: Start a deployment on the least loaded server
# CREATED: 15 OCT 2026
# ============================================================================
"""
PlacementService

Greedy placement: the server with the lowest response_time wins, ties go
to the earliest registered server. Choosing the server and inserting the
STARTING deployment is a single store unit, so the deployment exists
before the caller begins provisioning and can report back against its id.

The response_time ranking is maintained by an external monitor; placement
only reads it.
"""

from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import Placement
from repositories.base import DeploymentStore

logger = get_logger(__name__, ComponentType.PLACEMENT)


class PlacementService:
    """Chooses servers and creates STARTING deployments."""

    def __init__(self, store: DeploymentStore):
        self.store = store

    async def start_deployment(self, locator: str) -> Placement:
        """
        Place ``locator`` on the best server.

        Returns:
            Placement(server, deployment_id)

        Raises:
            ValueError: Empty locator
            PlacementError: No servers registered
            DeploymentConflict: Locator already starting or live
        """
        if not locator:
            raise ValueError("locator must be a non-empty string")

        with log_context(locator=locator, operation="start_deployment"):
            placement = await self.store.place_deployment(locator)
            with log_context(
                deployment_id=placement.deployment_id,
                server=placement.server.address,
            ):
                logger.info(
                    f"Deployment {placement.deployment_id} starting on "
                    f"{placement.server.address}"
                )
                log_checkpoint(
                    "deployment_started",
                    {"response_time": placement.server.response_time},
                )
            return placement


__all__ = ["PlacementService"]
