# ============================================================================
# DEPLOYMENT SCHEMA DDL
# ============================================================================
# STATUS: Core - DDL for the durable store
# PURPOSE: Generate PostgreSQL CREATE statements for servers, deployments,
#          leases and dataset metadata
# CREATED: 14 OCT 2026
# EXPORTS: DeploymentSchema, IndexBuilder
# DEPENDENCIES: psycopg
# ============================================================================
"""
Deployment Schema DDL.

All statements are psycopg.sql.Composed objects built from identifiers,
never string concatenation. Every statement is idempotent
(IF NOT EXISTS / guarded DO blocks) so deployment can be re-run.

The partial unique index ``uq_deployments_active_locator`` is the store-level
backstop for the at-most-one-active-deployment-per-locator invariant.

Usage:
    schema = DeploymentSchema("geodeploy")
    for stmt in schema.generate_all():
        cursor.execute(stmt)
"""

from typing import List, Optional, Sequence

from psycopg import sql

from core.contracts import DeploymentState
from core.logging import ComponentType, get_logger

logger = get_logger(__name__, ComponentType.SCHEMA)


class IndexBuilder:
    """Builder for CREATE INDEX statements."""

    @staticmethod
    def btree(
        schema: str,
        table: str,
        columns: Sequence[str],
        name: Optional[str] = None,
        unique: bool = False,
        partial_where: Optional[str] = None,
    ) -> sql.Composed:
        """
        Create a B-tree index.

        Args:
            schema: Schema name
            table: Table name
            columns: Column names, in index order
            name: Optional custom index name
            unique: Create a UNIQUE index
            partial_where: Optional WHERE clause for a partial index

        Returns:
            sql.Composed CREATE INDEX statement
        """
        cols = list(columns)
        prefix = "uq" if unique else "idx"
        idx_name = name or f"{prefix}_{table}_{'_'.join(cols)}"

        stmt = sql.SQL(
            "CREATE {unique}INDEX IF NOT EXISTS {name} ON {schema}.{table} ({columns})"
        ).format(
            unique=sql.SQL("UNIQUE " if unique else ""),
            name=sql.Identifier(idx_name),
            schema=sql.Identifier(schema),
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
        )

        if partial_where:
            stmt = sql.SQL("{} WHERE {}").format(stmt, sql.SQL(partial_where))

        return stmt


class DeploymentSchema:
    """
    DDL generator for the lifecycle manager's tables.

    Tables:
        servers      rendering nodes (read-only to the core)
        deployments  one row per placement attempt
        leases       time-boxed claims on deployments
        metadata     dataset records
        geometadata  PostGIS bounds per dataset
    """

    STATE_ENUM = "deployment_state"
    EXPECTED_TABLES = ["servers", "deployments", "leases", "metadata", "geometadata"]

    def __init__(self, schema_name: str = "geodeploy", with_postgis: bool = True):
        """
        Args:
            schema_name: PostgreSQL schema that holds every table
            with_postgis: Emit CREATE EXTENSION postgis (geometadata needs box2d)
        """
        self.schema_name = schema_name
        self.with_postgis = with_postgis

    def _table(self, name: str) -> sql.Identifier:
        return sql.Identifier(self.schema_name, name)

    # =========================================================================
    # ENUM
    # =========================================================================

    def generate_state_enum(self) -> sql.Composed:
        """CREATE TYPE guarded by a catalog check (safe to re-run)."""
        values = sql.SQL(", ").join(sql.Literal(s.value) for s in DeploymentState)
        return sql.SQL("""
DO $$
BEGIN
    IF NOT EXISTS (
        SELECT 1 FROM pg_type t
        JOIN pg_namespace n ON n.oid = t.typnamespace
        WHERE t.typname = {type_name} AND n.nspname = {schema_name}
    ) THEN
        CREATE TYPE {qualified} AS ENUM ({values});
    END IF;
END$$
""").format(
            type_name=sql.Literal(self.STATE_ENUM),
            schema_name=sql.Literal(self.schema_name),
            qualified=self._table(self.STATE_ENUM),
            values=values,
        )

    # =========================================================================
    # TABLES
    # =========================================================================

    def generate_tables(self) -> List[sql.Composed]:
        servers = sql.SQL("""
CREATE TABLE IF NOT EXISTS {servers} (
    id BIGSERIAL PRIMARY KEY,
    host VARCHAR(255) NOT NULL,
    port INTEGER NOT NULL CHECK (port BETWEEN 1 AND 65535),
    local_path TEXT NOT NULL,
    response_time DOUBLE PRECISION NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)""").format(servers=self._table("servers"))

        deployments = sql.SQL("""
CREATE TABLE IF NOT EXISTS {deployments} (
    id BIGSERIAL PRIMARY KEY,
    locator TEXT NOT NULL,
    server_id BIGINT NOT NULL REFERENCES {servers} (id),
    state {state_type} NOT NULL DEFAULT {starting},
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)""").format(
            deployments=self._table("deployments"),
            servers=self._table("servers"),
            state_type=self._table(self.STATE_ENUM),
            starting=sql.Literal(DeploymentState.STARTING.value),
        )

        leases = sql.SQL("""
CREATE TABLE IF NOT EXISTS {leases} (
    id BIGSERIAL PRIMARY KEY,
    locator TEXT NOT NULL,
    deployment_id BIGINT NOT NULL REFERENCES {deployments} (id),
    lifetime TIMESTAMPTZ,
    tag BYTEA NOT NULL DEFAULT '\\x',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)""").format(
            leases=self._table("leases"),
            deployments=self._table("deployments"),
        )

        metadata = sql.SQL("""
CREATE TABLE IF NOT EXISTS {metadata} (
    id BIGSERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    locator TEXT NOT NULL UNIQUE,
    checksum VARCHAR(128) NOT NULL,
    size BIGINT NOT NULL CHECK (size >= 0)
)""").format(metadata=self._table("metadata"))

        geometadata = sql.SQL("""
CREATE TABLE IF NOT EXISTS {geometadata} (
    locator TEXT PRIMARY KEY REFERENCES {metadata} (locator),
    native_srid VARCHAR(64) NOT NULL,
    native_bounds box2d NOT NULL,
    latlon_bounds box2d NOT NULL,
    native_format VARCHAR(64) NOT NULL
)""").format(
            geometadata=self._table("geometadata"),
            metadata=self._table("metadata"),
        )

        return [servers, deployments, leases, metadata, geometadata]

    # =========================================================================
    # INDEXES
    # =========================================================================

    def generate_indexes(self) -> List[sql.Composed]:
        s = self.schema_name
        return [
            IndexBuilder.btree(s, "servers", ["response_time", "id"], name="idx_servers_placement"),
            IndexBuilder.btree(s, "deployments", ["locator", "id"]),
            IndexBuilder.btree(s, "deployments", ["state"]),
            IndexBuilder.btree(
                s, "deployments", ["locator"],
                name="uq_deployments_active_locator",
                unique=True,
                partial_where="state IN ('starting', 'live')",
            ),
            IndexBuilder.btree(s, "leases", ["deployment_id"]),
            IndexBuilder.btree(
                s, "leases", ["deployment_id"],
                name="idx_leases_pending",
                partial_where="lifetime IS NULL",
            ),
        ]

    # =========================================================================
    # COMPLETE SCHEMA GENERATION
    # =========================================================================

    def generate_drop_schema(self) -> sql.Composed:
        """
        Generate DROP SCHEMA CASCADE statement.

        WARNING: This destroys ALL data in the schema!
        """
        return sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(
            sql.Identifier(self.schema_name)
        )

    def generate_all(self) -> List[sql.Composed]:
        """
        Generate complete DDL, in dependency order.

        Returns:
            List of sql.Composed statements ready for execution
        """
        statements: List[sql.Composed] = []

        if self.with_postgis:
            statements.append(sql.SQL("CREATE EXTENSION IF NOT EXISTS postgis"))

        statements.append(
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.schema_name))
        )
        statements.append(self.generate_state_enum())
        statements.extend(self.generate_tables())
        statements.extend(self.generate_indexes())

        logger.info(f"Generated {len(statements)} DDL statements for schema {self.schema_name}")
        return statements

    def execute(self, conn, dry_run: bool = False) -> int:
        """
        Execute all DDL statements on a sync psycopg connection.

        Args:
            conn: psycopg connection
            dry_run: If True, log statements but don't execute

        Returns:
            Number of statements executed
        """
        statements = self.generate_all()

        if dry_run:
            for stmt in statements:
                logger.info(f"[DRY RUN] {stmt.as_string(conn)}")
            return len(statements)

        with conn.transaction():
            with conn.cursor() as cur:
                for stmt in statements:
                    cur.execute(stmt)

        logger.info(f"Executed {len(statements)} DDL statements")
        return len(statements)


__all__ = ["DeploymentSchema", "IndexBuilder"]
