# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Deployment lifecycle states
# PURPOSE: Define the deployment state machine shared by store and services
# CREATED: 12 OCT 2026
# EXPORTS: DeploymentState
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the deployment lifecycle manager.

DeploymentState is the storage-level encoding of a deployment's lifecycle.
Every boundary (SQL enum, in-memory rows, status variants) uses the enum
``.value`` strings defined here.
"""

from enum import Enum


class DeploymentState(str, Enum):
    """
    Deployment lifecycle states.

    State transitions:
        STARTING -> LIVE -> KILLING -> DEAD
                 -> DEAD (provisioning failed)
    """
    STARTING = "starting"    # Row created, provisioning in progress
    LIVE = "live"            # Dataset published on its server
    KILLING = "killing"      # Teardown requested
    DEAD = "dead"            # Terminal

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self is DeploymentState.DEAD

    def is_active(self) -> bool:
        """Starting and live deployments count against the one-per-locator rule."""
        return self in (DeploymentState.STARTING, DeploymentState.LIVE)

    def can_transition_to(self, target: "DeploymentState") -> bool:
        """Check whether the state machine has an edge from self to target."""
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    DeploymentState.STARTING: frozenset({DeploymentState.LIVE, DeploymentState.DEAD}),
    DeploymentState.LIVE: frozenset({DeploymentState.KILLING}),
    DeploymentState.KILLING: frozenset({DeploymentState.DEAD}),
    DeploymentState.DEAD: frozenset(),
}


__all__ = ["DeploymentState"]
