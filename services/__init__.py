# ============================================================================
# SERVICES MODULE
# ============================================================================
# STATUS: Core - Lifecycle logic layer
# PURPOSE: Placement, deployment state machine, leases and reaping
# CREATED: 15 OCT 2026
# ============================================================================
"""
Services Module

Lifecycle rules on top of a DeploymentStore. Every service takes its store
(and config, where it needs any) in the constructor.

Usage:
    from services import DeploymentManager

    manager = DeploymentManager(store)
    placement = await manager.start_deployment("layer1")
"""

from .deployment_service import DeploymentService
from .lease_service import LeaseService
from .manager import DeploymentManager
from .placement_service import PlacementService
from .reaper_service import ReaperService

__all__ = [
    "PlacementService",
    "DeploymentService",
    "LeaseService",
    "ReaperService",
    "DeploymentManager",
]
