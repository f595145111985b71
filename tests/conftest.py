# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# STATUS: Tests - Clock, store and manager builders
# PURPOSE: Deterministic time and a fresh in-memory store per test
# CREATED: 16 OCT 2026
# ============================================================================
"""
Shared fixtures.

Tests drive async code with asyncio.run; nothing here needs a database.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.config import Defaults, LeaseDefaults, ReaperDefaults
from repositories.memory_store import InMemoryDeploymentStore
from services.manager import DeploymentManager

T0 = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_defaults(activation=3600, attach=3600, poll=0.01) -> Defaults:
    return Defaults(
        leases=LeaseDefaults(activation_ttl_seconds=activation, attach_ttl_seconds=attach),
        reaper=ReaperDefaults(poll_interval_seconds=poll),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryDeploymentStore(clock=clock)


@pytest.fixture
def manager(store):
    return DeploymentManager(store, make_defaults())
