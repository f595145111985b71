# ============================================================================
# DEPLOY STATUS VARIANTS
# ============================================================================
# STATUS: Core model - Closed tagged variant over deployment state
# PURPOSE: API-boundary view of a deployment (Starting | Live | Killing | Dead)
# CREATED: 12 OCT 2026
# EXPORTS: DeployStatus, Starting, Live, Killing, Dead, status_from_row
# DEPENDENCIES: pydantic
# ============================================================================
"""
DeployStatus

Callers never see the stored state string. They get one of four frozen
variants, discriminated by ``status``:

    Starting(deployment_id)       provisioning in progress
    Live(deployment_id, server)   route requests to ``server``
    Killing()                     teardown in progress
    Dead()                        torn down, failed, or never deployed
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from core.contracts import DeploymentState
from core.models.server import Server


class Starting(BaseModel):
    status: Literal["starting"] = "starting"
    deployment_id: int

    model_config = {"frozen": True}


class Live(BaseModel):
    status: Literal["live"] = "live"
    deployment_id: int
    server: Server

    model_config = {"frozen": True}


class Killing(BaseModel):
    status: Literal["killing"] = "killing"

    model_config = {"frozen": True}


class Dead(BaseModel):
    status: Literal["dead"] = "dead"

    model_config = {"frozen": True}


DeployStatus = Annotated[
    Union[Starting, Live, Killing, Dead],
    Field(discriminator="status"),
]


def status_from_row(
    state: Union[str, DeploymentState],
    deployment_id: int,
    server: Optional[Server] = None,
) -> Union[Starting, Live, Killing, Dead]:
    """
    Decode a stored deployment state into its status variant.

    Args:
        state: Stored state string or enum
        deployment_id: Deployment row id
        server: Hosting server, required when the state is live

    Returns:
        The matching DeployStatus variant

    Raises:
        ValueError: Unknown state string, or a live row without a server
    """
    state = DeploymentState(state)
    if state is DeploymentState.STARTING:
        return Starting(deployment_id=deployment_id)
    if state is DeploymentState.LIVE:
        if server is None:
            raise ValueError(f"Live deployment {deployment_id} has no server")
        return Live(deployment_id=deployment_id, server=server)
    if state is DeploymentState.KILLING:
        return Killing()
    return Dead()


__all__ = ["DeployStatus", "Starting", "Live", "Killing", "Dead", "status_from_row"]
