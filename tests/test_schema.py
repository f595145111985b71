# ============================================================================
# SCHEMA GENERATION TESTS
# ============================================================================
# STATUS: Tests - DDL generation without a database
# PURPOSE: Verify statement order, tables and the active-deployment index
# CREATED: 17 OCT 2026
# ============================================================================
"""
Schema Generation Tests

Statements are inspected through their repr, which lists the SQL fragments
and identifiers without needing a connection.

Run with:
    pytest tests/test_schema.py -v
"""

from unittest.mock import MagicMock

from psycopg import sql

from core.schema import DeploymentSchema, IndexBuilder


class TestDeploymentSchema:

    def test_statement_count(self):
        statements = DeploymentSchema().generate_all()
        # extension, schema, enum, 5 tables, 6 indexes
        assert len(statements) == 14
        assert all(isinstance(s, sql.Composable) for s in statements)

    def test_without_postgis(self):
        statements = DeploymentSchema(with_postgis=False).generate_all()
        assert len(statements) == 13
        assert "postgis" not in repr(statements[0])

    def test_order_extension_schema_enum_first(self):
        statements = DeploymentSchema("geo_test").generate_all()
        assert "postgis" in repr(statements[0])
        assert "CREATE SCHEMA" in repr(statements[1])
        assert "geo_test" in repr(statements[1])
        assert "deployment_state" in repr(statements[2])

    def test_every_table_created(self):
        tables = DeploymentSchema().generate_tables()
        text = " ".join(repr(t) for t in tables)
        for name in DeploymentSchema.EXPECTED_TABLES:
            assert f"'{name}'" in text

    def test_enum_lists_every_state(self):
        enum_stmt = repr(DeploymentSchema().generate_state_enum())
        for value in ("starting", "live", "killing", "dead"):
            assert f"'{value}'" in enum_stmt

    def test_active_locator_index_is_unique_partial(self):
        indexes = [repr(i) for i in DeploymentSchema().generate_indexes()]
        active = [i for i in indexes if "uq_deployments_active_locator" in i]
        assert len(active) == 1
        assert "UNIQUE" in active[0]
        assert "state IN ('starting', 'live')" in active[0]

    def test_drop_schema(self):
        assert "DROP SCHEMA" in repr(DeploymentSchema("x").generate_drop_schema())

    def test_execute_runs_in_one_transaction(self):
        conn = MagicMock()
        cursor = conn.cursor.return_value.__enter__.return_value

        count = DeploymentSchema().execute(conn)

        assert count == 14
        assert cursor.execute.call_count == 14
        conn.transaction.assert_called_once()


class TestIndexBuilder:

    def test_default_name(self):
        stmt = repr(IndexBuilder.btree("geodeploy", "leases", ["deployment_id"]))
        assert "idx_leases_deployment_id" in stmt

    def test_unique_prefix(self):
        stmt = repr(IndexBuilder.btree("geodeploy", "servers", ["host", "port"], unique=True))
        assert "uq_servers_host_port" in stmt
        assert "UNIQUE" in stmt
