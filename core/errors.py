# ============================================================================
# ERROR TYPES
# ============================================================================
# STATUS: Foundation - Exceptions surfaced by the lifecycle manager
# PURPOSE: One exception class per failure kind the front-end must translate
# CREATED: 13 OCT 2026
# EXPORTS: DeploymentError, NotFound, PlacementError, IntegrityViolation,
#          StoreUnavailable, InvalidTransition, DeploymentConflict
# ============================================================================
"""
Error types.

Front-end mapping:
    PlacementError, StoreUnavailable   -> retryable, service unavailable
    NotFound, InvalidTransition,
    DeploymentConflict                 -> client error
    IntegrityViolation                 -> server error

Nothing in this package retries internally. A StoreUnavailable means the
whole atomic unit was rolled back and the caller may retry it.
"""

from typing import Optional

from core.contracts import DeploymentState


class DeploymentError(Exception):
    """Base exception for lifecycle manager operations."""

    def __init__(self, message: str, operation: str = None, entity_id: object = None):
        self.operation = operation
        self.entity_id = entity_id
        super().__init__(message)


class NotFound(DeploymentError):
    """No row for the requested locator, deployment id or lease id."""


class PlacementError(DeploymentError):
    """No server is registered to host a new deployment."""


class IntegrityViolation(DeploymentError):
    """More rows than an invariant allows (e.g. two live deployments of one locator)."""


class StoreUnavailable(DeploymentError):
    """The durable store could not be reached or the transaction failed."""


class InvalidTransition(DeploymentError):
    """The deployment's current state has no edge to the requested state."""

    def __init__(
        self,
        deployment_id: int,
        current: DeploymentState,
        target: DeploymentState,
        operation: Optional[str] = None,
    ):
        self.deployment_id = deployment_id
        self.current = current
        self.target = target
        super().__init__(
            f"Deployment {deployment_id} cannot move from "
            f"{current.value} to {target.value}",
            operation=operation,
            entity_id=deployment_id,
        )


class DeploymentConflict(DeploymentError):
    """The locator already has a starting or live deployment."""

    def __init__(self, locator: str, deployment_id: Optional[int] = None):
        self.locator = locator
        self.deployment_id = deployment_id
        existing = f" (deployment {deployment_id})" if deployment_id is not None else ""
        super().__init__(
            f"Locator {locator!r} already has an active deployment{existing}",
            operation="start_deployment",
            entity_id=locator,
        )


__all__ = [
    "DeploymentError",
    "NotFound",
    "PlacementError",
    "IntegrityViolation",
    "StoreUnavailable",
    "InvalidTransition",
    "DeploymentConflict",
]
