# ============================================================================
# MODELS MODULE
# ============================================================================
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 12 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the deployment lifecycle manager. Status and lease
lifetime variants are frozen so they can be compared and hashed freely.
"""

from core.models.server import Server
from core.models.deployment import Deployment, Placement, ExpiredDeployment
from core.models.status import DeployStatus, Starting, Live, Killing, Dead, status_from_row
from core.models.lease import (
    Lease,
    LeaseLifetime,
    Pending,
    ActiveUntil,
    ResolvedLease,
    lifetime_from_column,
    lifetime_to_column,
)
from core.models.metadata import BoundingBox, Metadata, GeoMetadata, KeywordHit

__all__ = [
    # Servers
    "Server",
    # Deployments
    "Deployment",
    "Placement",
    "ExpiredDeployment",
    # Status
    "DeployStatus",
    "Starting",
    "Live",
    "Killing",
    "Dead",
    "status_from_row",
    # Leases
    "Lease",
    "LeaseLifetime",
    "Pending",
    "ActiveUntil",
    "ResolvedLease",
    "lifetime_from_column",
    "lifetime_to_column",
    # Metadata
    "BoundingBox",
    "Metadata",
    "GeoMetadata",
    "KeywordHit",
]
