# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export contracts, models, errors and schema utilities
# CREATED: 12 OCT 2026
# ============================================================================

from core.contracts import DeploymentState
from core.errors import (
    DeploymentError,
    NotFound,
    PlacementError,
    IntegrityViolation,
    StoreUnavailable,
    InvalidTransition,
    DeploymentConflict,
)
from core.models import (
    Server,
    Deployment,
    Placement,
    ExpiredDeployment,
    DeployStatus,
    Starting,
    Live,
    Killing,
    Dead,
    Lease,
    Pending,
    ActiveUntil,
    ResolvedLease,
)
from core.schema import DeploymentSchema

__all__ = [
    # Enums
    "DeploymentState",
    # Errors
    "DeploymentError",
    "NotFound",
    "PlacementError",
    "IntegrityViolation",
    "StoreUnavailable",
    "InvalidTransition",
    "DeploymentConflict",
    # Models
    "Server",
    "Deployment",
    "Placement",
    "ExpiredDeployment",
    "DeployStatus",
    "Starting",
    "Live",
    "Killing",
    "Dead",
    "Lease",
    "Pending",
    "ActiveUntil",
    "ResolvedLease",
    # Schema
    "DeploymentSchema",
]
