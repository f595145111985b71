# ============================================================================
# LEASE MODEL
# ============================================================================
# STATUS: Core model - Time-boxed interest in a deployment
# PURPOSE: Lease rows and their Pending / ActiveUntil lifetime variants
# CREATED: 12 OCT 2026
# EXPORTS: Lease, LeaseLifetime, Pending, ActiveUntil, ResolvedLease
# DEPENDENCIES: pydantic
# ============================================================================
"""
Lease Model

A lease keeps its deployment alive until its lifetime passes. Leases are
never deleted; expiry is purely a comparison against the current time.

Lifetime is one of two variants (stored as a nullable timestamp):

- Pending: requested before the deployment went live. Protects nothing.
  Activation gives every pending lease ``now + 1 hour``.
- ActiveUntil(expires_at): protects the deployment until ``expires_at``.
  Renewal replaces it with a fresh absolute instant.
"""

from datetime import datetime
from typing import Annotated, ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from core.models.server import Server


class Pending(BaseModel):
    kind: Literal["pending"] = "pending"

    model_config = {"frozen": True}

    def is_expired(self, now: datetime) -> bool:
        return False


class ActiveUntil(BaseModel):
    kind: Literal["active"] = "active"
    expires_at: datetime

    model_config = {"frozen": True}

    def is_expired(self, now: datetime) -> bool:
        """Strictly past: a lease expiring exactly at ``now`` still protects."""
        return self.expires_at < now


LeaseLifetime = Annotated[
    Union[Pending, ActiveUntil],
    Field(discriminator="kind"),
]


def lifetime_from_column(value: Optional[datetime]) -> Union[Pending, ActiveUntil]:
    """Decode the nullable ``lifetime`` column."""
    if value is None:
        return Pending()
    return ActiveUntil(expires_at=value)


def lifetime_to_column(lifetime: Union[Pending, ActiveUntil]) -> Optional[datetime]:
    """Encode a lifetime variant for the nullable ``lifetime`` column."""
    if isinstance(lifetime, ActiveUntil):
        return lifetime.expires_at
    return None


class Lease(BaseModel):
    """
    Lease row.

    Maps to: geodeploy.leases
    """

    __sql_table__: ClassVar[str] = "leases"
    __sql_primary_key__: ClassVar[List[str]] = ["id"]

    id: int
    locator: str
    deployment_id: int
    lifetime: LeaseLifetime = Field(default_factory=Pending)
    tag: bytes = Field(default=b"", description="Opaque holder identity")

    model_config = {"frozen": True}

    @property
    def is_pending(self) -> bool:
        return isinstance(self.lifetime, Pending)


class ResolvedLease(BaseModel):
    """A lease dereferenced to the server currently hosting its deployment."""
    locator: str
    lifetime: LeaseLifetime
    server: Server

    model_config = {"frozen": True}


__all__ = [
    "Lease",
    "LeaseLifetime",
    "Pending",
    "ActiveUntil",
    "ResolvedLease",
    "lifetime_from_column",
    "lifetime_to_column",
]
