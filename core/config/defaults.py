# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for lease TTLs, reaper cadence, database
# CREATED: 13 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides defaults for the lifecycle manager.
These can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Passed explicitly into services; get_defaults() is only the fallback
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LeaseDefaults:
    """
    Lease time-to-live defaults.

    activation_ttl applies to pending leases when their deployment goes
    live; attach_ttl applies to leases attached to an already-live
    deployment when the caller gives no ttl.
    """
    activation_ttl_seconds: int = 3600  # 1 hour
    attach_ttl_seconds: int = 3600

    @property
    def activation_ttl(self) -> timedelta:
        return timedelta(seconds=self.activation_ttl_seconds)

    @property
    def attach_ttl(self) -> timedelta:
        return timedelta(seconds=self.attach_ttl_seconds)

    @classmethod
    def from_env(cls) -> "LeaseDefaults":
        """Create from environment variables."""
        return cls(
            activation_ttl_seconds=int(os.getenv("LEASE_ACTIVATION_TTL_SECONDS", 3600)),
            attach_ttl_seconds=int(os.getenv("LEASE_ATTACH_TTL_SECONDS", 3600)),
        )


@dataclass(frozen=True)
class ReaperDefaults:
    """Defaults for the expired-deployment sweep."""
    poll_interval_seconds: float = 60.0
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "ReaperDefaults":
        """Create from environment variables."""
        return cls(
            poll_interval_seconds=float(os.getenv("REAPER_POLL_INTERVAL_SECONDS", 60)),
            enabled=_env_bool("REAPER_ENABLED", True),
        )


@dataclass(frozen=True)
class DatabaseDefaults:
    """Defaults for the PostgreSQL store."""
    schema: str = "geodeploy"
    pool_min_size: int = 2
    pool_max_size: int = 10

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            schema=os.getenv("GEODEPLOY_SCHEMA", "geodeploy"),
            pool_min_size=int(os.getenv("DB_POOL_MIN_SIZE", 2)),
            pool_max_size=int(os.getenv("DB_POOL_MAX_SIZE", 10)),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    leases: LeaseDefaults = field(default_factory=LeaseDefaults)
    reaper: ReaperDefaults = field(default_factory=ReaperDefaults)
    database: DatabaseDefaults = field(default_factory=DatabaseDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            leases=LeaseDefaults.from_env(),
            reaper=ReaperDefaults.from_env(),
            database=DatabaseDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "LeaseDefaults",
    "ReaperDefaults",
    "DatabaseDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
