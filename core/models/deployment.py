# ============================================================================
# DEPLOYMENT MODEL
# ============================================================================
# STATUS: Core model - One placement of a dataset onto a server
# PURPOSE: Persisted deployment row and the placement result
# CREATED: 12 OCT 2026
# EXPORTS: Deployment, Placement, ExpiredDeployment
# DEPENDENCIES: pydantic
# ============================================================================
"""
Deployment Model

A Deployment is one attempt to publish a dataset (``locator``) onto a
chosen server. It references the Server by id; the Server record is shared
and owned by the server directory.

Lifecycle:
    1. Created in STARTING by placement
    2. LIVE when provisioning succeeds (pending leases activate)
    3. KILLING when teardown is initiated (deliberately or by the reaper)
    4. DEAD on failed provisioning or finished teardown (terminal)
"""

from typing import ClassVar, List

from pydantic import BaseModel, Field

from core.contracts import DeploymentState
from core.models.server import Server


class Deployment(BaseModel):
    """
    Deployment row.

    Maps to: geodeploy.deployments
    """

    __sql_table__: ClassVar[str] = "deployments"
    __sql_primary_key__: ClassVar[List[str]] = ["id"]

    id: int
    locator: str = Field(..., min_length=1, description="Dataset identifier")
    server_id: int = Field(..., description="Hosting server (reference, not ownership)")
    state: DeploymentState = Field(default=DeploymentState.STARTING)

    model_config = {"frozen": True}


class Placement(BaseModel):
    """Result of starting a deployment: where to provision, and the row to report against."""
    server: Server
    deployment_id: int

    model_config = {"frozen": True}


class ExpiredDeployment(BaseModel):
    """Live deployment whose protection horizon has passed."""
    deployment_id: int
    locator: str
    server: Server

    model_config = {"frozen": True}


__all__ = ["Deployment", "Placement", "ExpiredDeployment"]
