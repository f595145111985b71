# ============================================================================
# POSTGRESQL REPOSITORY TESTS
# ============================================================================
# STATUS: Tests - Repository logic against a mocked pool
# PURPOSE: Verify row mapping, domain errors and driver error translation
# CREATED: 17 OCT 2026
# ============================================================================
"""
PostgreSQL Repository Tests

The pool, connection and cursor results are mocks; no database is needed.
Each mocked ``conn.execute`` call returns the next queued result.

Run with:
    pytest tests/test_postgres_repos.py -v
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import psycopg
import pytest
from psycopg import errors
from psycopg_pool import PoolTimeout

from core.contracts import DeploymentState
from core.errors import (
    DeploymentConflict,
    IntegrityViolation,
    NotFound,
    PlacementError,
    StoreUnavailable,
)
from core.models import ActiveUntil, Pending
from repositories.deployment_repo import DeploymentRepository
from repositories.lease_repo import LeaseRepository
from repositories.metadata_repo import MetadataRepository, row_to_dataset
from repositories.postgres_store import PostgresDeploymentStore
from repositories.server_repo import ServerRepository, locator_lock_id

from conftest import T0

HOUR = timedelta(hours=1)


# ============================================================================
# HELPERS
# ============================================================================

def _async_cm(value):
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def _result(row=None, rows=None, rowcount=1):
    result = MagicMock()
    result.fetchone = AsyncMock(return_value=row)
    result.fetchall = AsyncMock(return_value=rows or [])
    result.rowcount = rowcount
    return result


def _mock_pool(*results):
    """Pool whose connection returns ``results`` from successive execute calls."""
    conn = MagicMock()
    conn.execute = AsyncMock(side_effect=list(results))
    conn.transaction = MagicMock(return_value=_async_cm(None))
    pool = MagicMock()
    pool.connection = MagicMock(return_value=_async_cm(conn))
    return pool, conn


def _server_row(**overrides):
    row = {
        "server_id": 1,
        "host": "a",
        "port": 8080,
        "local_path": "/data",
        "response_time": 0.25,
    }
    row.update(overrides)
    return row


def _lease_row(**overrides):
    row = {
        "lease_id": 3,
        "locator": "layer1",
        "deployment_id": 1,
        "lifetime": None,
        "tag": b"holder",
    }
    row.update(overrides)
    return row


# ============================================================================
# ERROR TRANSLATION
# ============================================================================

class TestErrorTranslation:
    """Driver failures surface as StoreUnavailable."""

    @pytest.mark.parametrize("exc", [
        psycopg.OperationalError("connection refused"),
        psycopg.InterfaceError("connection closed"),
    ])
    def test_driver_errors(self, exc):
        pool, conn = _mock_pool()
        conn.execute = AsyncMock(side_effect=exc)

        with pytest.raises(StoreUnavailable) as exc_info:
            asyncio.run(DeploymentRepository(pool).get(1))

        assert exc_info.value.__cause__ is exc
        assert exc_info.value.entity_id == 1

    def test_pool_timeout(self):
        pool = MagicMock()
        pool.connection = MagicMock(side_effect=PoolTimeout("pool exhausted"))

        with pytest.raises(StoreUnavailable):
            asyncio.run(ServerRepository(pool).list_all())

    def test_domain_errors_pass_through(self):
        pool, _ = _mock_pool(_result(), _result(row=None))
        with pytest.raises(NotFound):
            asyncio.run(LeaseRepository(pool).insert("layer1", 1, b"", None, HOUR))


# ============================================================================
# SERVERS AND PLACEMENT
# ============================================================================

class TestServerRepository:

    def test_list_maps_rows(self):
        pool, _ = _mock_pool(_result(rows=[_server_row(), _server_row(server_id=2, host="b")]))
        servers = asyncio.run(ServerRepository(pool).list_all())
        assert [s.host for s in servers] == ["a", "b"]
        assert servers[0].response_time == 0.25

    def test_place_takes_locator_lock(self):
        pool, conn = _mock_pool(
            _result(),
            _result(row=None),
            _result(row={**_server_row(), "deployment_id": 9}),
        )

        placement = asyncio.run(ServerRepository(pool).place_deployment("layer1"))

        assert placement.deployment_id == 9
        assert placement.server.address == "a:8080"
        lock_call = conn.execute.await_args_list[0]
        assert lock_call.args[1] == (locator_lock_id("layer1"),)

    def test_place_with_no_servers(self):
        pool, _ = _mock_pool(_result(), _result(row=None), _result(row=None))
        with pytest.raises(PlacementError):
            asyncio.run(ServerRepository(pool).place_deployment("layer1"))

    def test_place_with_active_deployment(self):
        pool, conn = _mock_pool(_result(), _result(row={"id": 4}))

        with pytest.raises(DeploymentConflict) as exc_info:
            asyncio.run(ServerRepository(pool).place_deployment("layer1"))

        assert exc_info.value.deployment_id == 4
        assert conn.execute.await_count == 2

    def test_unique_violation_is_conflict(self):
        pool, _ = _mock_pool(
            _result(),
            _result(row=None),
            errors.UniqueViolation("duplicate key"),
        )
        with pytest.raises(DeploymentConflict):
            asyncio.run(ServerRepository(pool).place_deployment("layer1"))

    def test_lock_id_is_stable_signed_int64(self):
        lock_id = locator_lock_id("layer1")
        assert lock_id == locator_lock_id("layer1")
        assert lock_id != locator_lock_id("layer2")
        assert -(2 ** 63) <= lock_id < 2 ** 63


# ============================================================================
# DEPLOYMENTS
# ============================================================================

class TestDeploymentRepository:

    def test_transition_miss(self):
        pool, conn = _mock_pool(_result(rowcount=0))
        updated = asyncio.run(DeploymentRepository(pool).transition(
            1, DeploymentState.LIVE, DeploymentState.KILLING
        ))
        assert updated is False
        assert conn.execute.await_args.args[1] == ("killing", 1, "live")

    def test_activate_miss_skips_lease_update(self):
        pool, conn = _mock_pool(_result(rowcount=0))
        assert asyncio.run(DeploymentRepository(pool).activate(1, HOUR)) is False
        assert conn.execute.await_count == 1

    def test_activate_stamps_pending(self):
        pool, conn = _mock_pool(_result(rowcount=1), _result(rowcount=3))
        assert asyncio.run(DeploymentRepository(pool).activate(1, HOUR)) is True
        assert conn.execute.await_args_list[1].args[1] == (HOUR, 1)

    def test_expired_undeployment_rechecks_horizon_in_update(self):
        pool, conn = _mock_pool(_result(rows=[]), _result(rowcount=1))
        assert asyncio.run(DeploymentRepository(pool).start_expired_undeployment(7)) is True

        lock_query, lock_params = conn.execute.await_args_list[0].args
        assert "FOR SHARE" in repr(lock_query)
        assert lock_params == (7,)

        update_query, update_params = conn.execute.await_args_list[1].args
        assert "max(l.lifetime)" in repr(update_query)
        assert update_params == ("killing", 7, "live", 7)
        conn.transaction.assert_called_once()

    def test_expired_undeployment_miss_after_renewal(self):
        pool, _ = _mock_pool(_result(rows=[]), _result(rowcount=0))
        assert asyncio.run(DeploymentRepository(pool).start_expired_undeployment(7)) is False

    def test_get_maps_state(self):
        pool, _ = _mock_pool(_result(row={
            "deployment_id": 1, "locator": "layer1", "server_id": 2, "state": "killing",
        }))
        deployment = asyncio.run(DeploymentRepository(pool).get(1))
        assert deployment.state is DeploymentState.KILLING

    def test_list_expired(self):
        pool, _ = _mock_pool(_result(rows=[{**_server_row(), "deployment_id": 5, "locator": "layer1"}]))
        expired = asyncio.run(DeploymentRepository(pool).list_expired())
        assert [(e.deployment_id, e.server.id) for e in expired] == [(5, 1)]


# ============================================================================
# LEASES
# ============================================================================

class TestLeaseRepository:

    def test_pending_insert_on_starting(self):
        pool, conn = _mock_pool(
            _result(row={"locator": "layer1", "state": "starting"}),
            _result(row=_lease_row()),
        )
        lease = asyncio.run(LeaseRepository(pool).insert("layer1", 1, b"holder", None, HOUR))

        assert lease.lifetime == Pending()
        assert lease.tag == b"holder"
        assert conn.execute.await_args_list[1].args[1] == ("layer1", 1, b"holder")

    def test_pending_request_on_live_uses_activation_ttl(self):
        pool, conn = _mock_pool(
            _result(row={"locator": "layer1", "state": "live"}),
            _result(row=_lease_row(lifetime=T0)),
        )
        lease = asyncio.run(LeaseRepository(pool).insert("layer1", 1, b"holder", None, HOUR))

        assert lease.lifetime == ActiveUntil(expires_at=T0)
        assert conn.execute.await_args_list[1].args[1] == ("layer1", 1, HOUR, b"holder")

    def test_locator_mismatch(self):
        pool, _ = _mock_pool(_result(row={"locator": "other", "state": "live"}))
        with pytest.raises(ValueError):
            asyncio.run(LeaseRepository(pool).insert("layer1", 1, b"", None, HOUR))

    def test_set_lifetime_missing(self):
        pool, _ = _mock_pool(_result(row=None))
        assert asyncio.run(LeaseRepository(pool).set_lifetime(3, HOUR)) is None

    def test_get_with_deployment(self):
        row = {
            **_lease_row(lifetime=T0),
            **_server_row(server_id=2),
            "state": "live",
            "deployment_locator": "layer1",
        }
        pool, _ = _mock_pool(_result(row=row))

        lease, deployment, server = asyncio.run(LeaseRepository(pool).get_with_deployment(3))

        assert lease.id == 3
        assert deployment.state is DeploymentState.LIVE
        assert deployment.server_id == server.id == 2


# ============================================================================
# METADATA
# ============================================================================

def _dataset_row(**overrides):
    row = {
        "name": "roads",
        "locator": "layer1",
        "checksum": "01ab",
        "size": 2048,
        "native_srid": "EPSG:3857",
        "native_format": "geotiff",
        "native_min_x": 0.0, "native_max_x": 10.0, "native_min_y": 0.0, "native_max_y": 5.0,
        "latlon_min_x": -1.0, "latlon_max_x": 1.0, "latlon_min_y": -2.0, "latlon_max_y": 2.0,
    }
    row.update(overrides)
    return row


class TestMetadataRepository:

    def test_row_to_dataset(self):
        metadata, geo = row_to_dataset(_dataset_row())
        assert metadata.checksum == b"\x01\xab"
        assert geo.crs_code == "EPSG:3857"
        assert geo.latlon_bounding_box.min_y == -2.0

    def test_get_dataset_missing(self):
        pool, _ = _mock_pool(_result(rows=[]))
        with pytest.raises(NotFound):
            asyncio.run(MetadataRepository(pool).get_dataset("layer1"))

    def test_get_dataset_duplicate(self):
        pool, _ = _mock_pool(_result(rows=[_dataset_row(), _dataset_row()]))
        with pytest.raises(IntegrityViolation):
            asyncio.run(MetadataRepository(pool).get_dataset("layer1"))

    def test_keyword_search_wraps_pattern(self):
        pool, conn = _mock_pool(_result(rows=[{
            "name": "roads",
            "checksum": "01ab",
            "size": 2048,
            "locator": "layer1",
            "native_srid": None,
            "latlon_bbox": None,
            "deployed": True,
        }]))

        hits = asyncio.run(MetadataRepository(pool).keyword_search("road"))

        assert hits[0].deployed is True
        assert conn.execute.await_args.args[1] == ("live", "%road%", 10)

    def test_insert_metadata_stores_hex(self):
        from core.models import Metadata

        pool, conn = _mock_pool(_result())
        metadata = Metadata(name="roads", locator="layer1", checksum=b"\xff", size=1)
        asyncio.run(MetadataRepository(pool).insert_metadata(metadata))
        assert conn.execute.await_args.args[1] == ("roads", "layer1", "ff", 1)


# ============================================================================
# STORE COMPOSITION
# ============================================================================

class TestPostgresDeploymentStore:

    def test_delegates_to_repositories(self):
        store = PostgresDeploymentStore(MagicMock())
        store.lease_repo.list_for_deployment = AsyncMock(return_value=[])
        store.deployment_repo.transition = AsyncMock(return_value=True)

        assert asyncio.run(store.list_leases(4)) == []
        assert asyncio.run(store.transition_deployment(
            4, DeploymentState.LIVE, DeploymentState.KILLING
        )) is True
        store.lease_repo.list_for_deployment.assert_awaited_once_with(4)

    def test_expired_undeployment_delegates(self):
        store = PostgresDeploymentStore(MagicMock())
        store.deployment_repo.start_expired_undeployment = AsyncMock(return_value=False)
        assert asyncio.run(store.start_expired_undeployment(4)) is False
        store.deployment_repo.start_expired_undeployment.assert_awaited_once_with(4)


# ============================================================================
# POOL LIFECYCLE
# ============================================================================

class TestDatabasePool:

    def test_context_manager_opens_and_closes(self):
        from unittest.mock import patch

        from core.config import DatabaseDefaults
        from repositories.database import DatabasePool

        pool = MagicMock()
        pool.open = AsyncMock()
        pool.close = AsyncMock()

        async def go():
            async with DatabasePool(
                connection_string="postgresql://u:p@db/x",
                defaults=DatabaseDefaults(pool_min_size=1, pool_max_size=3),
            ) as opened:
                assert opened is pool

        with patch("repositories.database.AsyncConnectionPool", return_value=pool) as factory:
            asyncio.run(go())

        assert factory.call_args.kwargs["max_size"] == 3
        assert factory.call_args.kwargs["open"] is False
        pool.open.assert_awaited_once()
        pool.close.assert_awaited_once()
