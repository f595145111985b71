# ============================================================================
# DEPLOYMENT SERVICE TESTS
# ============================================================================
# STATUS: Tests - Deployment state machine
# PURPOSE: Verify transitions, idempotent repeats and status resolution
# CREATED: 16 OCT 2026
# ============================================================================
"""
DeploymentService Tests

Run with:
    pytest tests/test_deployment_service.py -v
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from core.config import LeaseDefaults
from core.contracts import DeploymentState
from core.errors import IntegrityViolation, InvalidTransition, NotFound
from core.models import Dead, Deployment, Killing, Live, Server, Starting
from services.deployment_service import DeploymentService
from services.placement_service import PlacementService


def _server(server_id=1):
    return Server(id=server_id, host="a", port=8080, local_path="/data")


def _deployment(deployment_id=1, state=DeploymentState.STARTING, locator="layer1"):
    return Deployment(id=deployment_id, locator=locator, server_id=1, state=state)


def _build_service(store):
    return DeploymentService(store, LeaseDefaults())


def _started(store, locator="layer1"):
    async def go():
        if not await store.list_servers():
            await store.register_server("a", 8080, "/data")
        return await PlacementService(store).start_deployment(locator)
    return asyncio.run(go()).deployment_id


# ============================================================================
# TRANSITIONS
# ============================================================================

class TestTransitions:
    """Every legal path and every rejected one."""

    def test_happy_path_to_dead(self, store):
        svc = _build_service(store)
        d = _started(store)

        assert asyncio.run(svc.complete_deployment(d))
        assert asyncio.run(svc.start_undeployment(d))
        assert asyncio.run(svc.complete_undeployment(d))
        assert asyncio.run(store.get_deployment(d)).state is DeploymentState.DEAD

    def test_fail_deployment_from_starting(self, store):
        svc = _build_service(store)
        d = _started(store)
        assert asyncio.run(svc.fail_deployment(d))
        assert asyncio.run(store.get_deployment(d)).state is DeploymentState.DEAD

    def test_fail_deployment_twice_is_noop(self, store):
        svc = _build_service(store)
        d = _started(store)
        asyncio.run(svc.fail_deployment(d))

        assert asyncio.run(svc.fail_deployment(d)) is False
        assert asyncio.run(store.get_deployment(d)).state is DeploymentState.DEAD

    def test_complete_deployment_twice_is_noop(self, store):
        svc = _build_service(store)
        d = _started(store)
        asyncio.run(svc.complete_deployment(d))
        assert asyncio.run(svc.complete_deployment(d)) is False

    def test_killing_not_reachable_from_starting(self, store):
        svc = _build_service(store)
        d = _started(store)

        with pytest.raises(InvalidTransition) as exc_info:
            asyncio.run(svc.start_undeployment(d))

        assert exc_info.value.current is DeploymentState.STARTING
        assert exc_info.value.target is DeploymentState.KILLING
        assert asyncio.run(store.get_deployment(d)).state is DeploymentState.STARTING

    def test_live_cannot_fail_deployment(self, store):
        svc = _build_service(store)
        d = _started(store)
        asyncio.run(svc.complete_deployment(d))
        with pytest.raises(InvalidTransition):
            asyncio.run(svc.fail_deployment(d))

    @pytest.mark.parametrize("operation", [
        "complete_deployment",
        "start_undeployment",
    ])
    def test_dead_is_never_mutated(self, store, operation):
        svc = _build_service(store)
        d = _started(store)
        asyncio.run(svc.fail_deployment(d))

        with pytest.raises(InvalidTransition):
            asyncio.run(getattr(svc, operation)(d))
        assert asyncio.run(store.get_deployment(d)).state is DeploymentState.DEAD

    def test_complete_undeployment_on_dead_is_noop(self, store):
        svc = _build_service(store)
        d = _started(store)
        asyncio.run(svc.fail_deployment(d))
        assert asyncio.run(svc.complete_undeployment(d)) is False

    def test_unknown_deployment(self, store):
        svc = _build_service(store)
        with pytest.raises(NotFound):
            asyncio.run(svc.complete_deployment(123))
        with pytest.raises(NotFound):
            asyncio.run(svc.start_undeployment(123))

    def test_fail_undeployment_leaves_state(self, store):
        svc = _build_service(store)
        d = _started(store)
        asyncio.run(svc.complete_deployment(d))
        asyncio.run(svc.start_undeployment(d))

        assert asyncio.run(svc.fail_undeployment(d)) is None
        assert asyncio.run(store.get_deployment(d)).state is DeploymentState.KILLING

    def test_complete_uses_configured_activation_ttl(self):
        store = AsyncMock()
        store.activate_deployment = AsyncMock(return_value=True)
        svc = DeploymentService(store, LeaseDefaults(activation_ttl_seconds=120))

        asyncio.run(svc.complete_deployment(5))

        store.activate_deployment.assert_awaited_once_with(5, timedelta(seconds=120))

    def test_miss_checks_current_row(self):
        store = AsyncMock()
        store.transition_deployment = AsyncMock(return_value=False)
        store.get_deployment = AsyncMock(
            return_value=_deployment(state=DeploymentState.KILLING)
        )
        svc = _build_service(store)

        with pytest.raises(InvalidTransition, match="killing to dead"):
            asyncio.run(svc.fail_deployment(1))


# ============================================================================
# STATUS
# ============================================================================

class TestDeploymentStatus:
    """get_deployment_status resolution order."""

    def test_never_deployed_is_dead(self, store):
        assert asyncio.run(_build_service(store).get_deployment_status("nothing")) == Dead()

    def test_each_state(self, store):
        svc = _build_service(store)
        d = _started(store)
        server = asyncio.run(store.list_servers())[0]

        assert asyncio.run(svc.get_deployment_status("layer1")) == Starting(deployment_id=d)
        asyncio.run(svc.complete_deployment(d))
        assert asyncio.run(svc.get_deployment_status("layer1")) == Live(deployment_id=d, server=server)
        asyncio.run(svc.start_undeployment(d))
        assert asyncio.run(svc.get_deployment_status("layer1")) == Killing()
        asyncio.run(svc.complete_undeployment(d))
        assert asyncio.run(svc.get_deployment_status("layer1")) == Dead()

    def test_active_row_wins_over_newer_history(self):
        store = AsyncMock()
        server = _server()
        store.list_deployments_for_locator = AsyncMock(return_value=[
            (_deployment(3, DeploymentState.DEAD), server),
            (_deployment(2, DeploymentState.LIVE), server),
            (_deployment(1, DeploymentState.DEAD), server),
        ])
        status = asyncio.run(_build_service(store).get_deployment_status("layer1"))
        assert status == Live(deployment_id=2, server=server)

    def test_most_recent_row_when_none_active(self):
        store = AsyncMock()
        server = _server()
        store.list_deployments_for_locator = AsyncMock(return_value=[
            (_deployment(2, DeploymentState.KILLING), server),
            (_deployment(1, DeploymentState.DEAD), server),
        ])
        status = asyncio.run(_build_service(store).get_deployment_status("layer1"))
        assert status == Killing()

    def test_two_active_rows_surface_integrity_violation(self):
        store = AsyncMock()
        server = _server()
        store.list_deployments_for_locator = AsyncMock(return_value=[
            (_deployment(2, DeploymentState.STARTING), server),
            (_deployment(1, DeploymentState.LIVE), server),
        ])
        with pytest.raises(IntegrityViolation):
            asyncio.run(_build_service(store).get_deployment_status("layer1"))
