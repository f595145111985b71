# ============================================================================
# SERVER MODEL
# ============================================================================
# STATUS: Core model - Rendering node directory entry
# PURPOSE: A rendering server that can host deployments
# CREATED: 12 OCT 2026
# EXPORTS: Server
# DEPENDENCIES: pydantic
# ============================================================================
"""
Server Model

Servers are provisioned externally and ranked by ``response_time`` during
placement. The lifecycle manager reads them and never mutates the metric;
an external monitor keeps it current.
"""

from typing import ClassVar, List

from pydantic import BaseModel, Field


class Server(BaseModel):
    """
    Rendering node.

    Maps to: geodeploy.servers
    """

    __sql_table__: ClassVar[str] = "servers"
    __sql_primary_key__: ClassVar[List[str]] = ["id"]

    id: int = Field(..., description="Store-assigned id, also the placement tie-break")
    host: str = Field(..., max_length=255)
    port: int = Field(..., ge=1, le=65535)
    local_path: str = Field(..., description="Filesystem root on the node")
    response_time: float = Field(
        default=0.0,
        ge=0.0,
        description="Rolling response time metric, lower is better",
    )

    model_config = {"frozen": True}

    @property
    def address(self) -> str:
        """``host:port`` for routing and logs."""
        return f"{self.host}:{self.port}"


__all__ = ["Server"]
