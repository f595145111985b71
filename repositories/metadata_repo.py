# ============================================================================
# DATASET METADATA REPOSITORY
# ============================================================================
# STATUS: Domain - Dataset and geometadata reads for deployments
# PURPOSE: Database access for the metadata and geometadata tables
# CREATED: 15 OCT 2026
# ============================================================================
"""
Dataset Metadata Repository

Ingest writes one metadata row and one geometadata row per locator.
Bounding boxes live in PostGIS box2d columns; checksums are stored hex
encoded. Reads join against deployments to report which datasets are
currently served.
"""

from typing import Any, Dict, List, Optional, Tuple

from psycopg import sql
from psycopg.rows import dict_row

from core.contracts import DeploymentState
from core.errors import IntegrityViolation, NotFound
from core.models import BoundingBox, GeoMetadata, KeywordHit, Metadata, Server
from .base import BaseRepository
from .database import (
    TABLE_DEPLOYMENTS,
    TABLE_GEOMETADATA,
    TABLE_METADATA,
    TABLE_SERVERS,
)
from .server_repo import row_to_server

_DATASET_COLUMNS = sql.SQL("""
    m.name, m.locator, m.checksum, m.size,
    gm.native_srid, gm.native_format,
    ST_XMin(gm.native_bounds) AS native_min_x,
    ST_XMax(gm.native_bounds) AS native_max_x,
    ST_YMin(gm.native_bounds) AS native_min_y,
    ST_YMax(gm.native_bounds) AS native_max_y,
    ST_XMin(gm.latlon_bounds) AS latlon_min_x,
    ST_XMax(gm.latlon_bounds) AS latlon_max_x,
    ST_YMin(gm.latlon_bounds) AS latlon_min_y,
    ST_YMax(gm.latlon_bounds) AS latlon_max_y
""")

Dataset = Tuple[Metadata, GeoMetadata]


def _box(row: Dict[str, Any], prefix: str) -> BoundingBox:
    return BoundingBox(
        min_x=row[f"{prefix}_min_x"],
        max_x=row[f"{prefix}_max_x"],
        min_y=row[f"{prefix}_min_y"],
        max_y=row[f"{prefix}_max_y"],
    )


def row_to_dataset(row: Dict[str, Any]) -> Dataset:
    metadata = Metadata(
        name=row["name"],
        locator=row["locator"],
        checksum=bytes.fromhex(row["checksum"]),
        size=row["size"],
    )
    geo = GeoMetadata(
        locator=row["locator"],
        crs_code=row["native_srid"],
        native_bounding_box=_box(row, "native"),
        latlon_bounding_box=_box(row, "latlon"),
        native_format=row["native_format"],
    )
    return metadata, geo


class MetadataRepository(BaseRepository):
    """Repository for dataset metadata."""

    async def insert_metadata(self, metadata: Metadata) -> Metadata:
        with self._error_context("insert metadata", metadata.locator):
            async with self.pool.connection() as conn:
                await conn.execute(
                    sql.SQL("""
                        INSERT INTO {} (name, locator, checksum, size)
                        VALUES (%s, %s, %s, %s)
                    """).format(TABLE_METADATA),
                    (metadata.name, metadata.locator, metadata.checksum_hex, metadata.size),
                )
                self.logger.info(f"Stored metadata for {metadata.locator}")
                return metadata

    async def insert_geometadata(self, geo: GeoMetadata) -> GeoMetadata:
        """Store bounds as box2d built from the corner points."""
        native = geo.native_bounding_box
        latlon = geo.latlon_bounding_box
        with self._error_context("insert geometadata", geo.locator):
            async with self.pool.connection() as conn:
                await conn.execute(
                    sql.SQL("""
                        INSERT INTO {} (
                            locator, native_srid, native_bounds, latlon_bounds, native_format
                        ) VALUES (
                            %s, %s,
                            ST_MakeBox2D(ST_Point(%s, %s), ST_Point(%s, %s)),
                            ST_MakeBox2D(ST_Point(%s, %s), ST_Point(%s, %s)),
                            %s
                        )
                    """).format(TABLE_GEOMETADATA),
                    (
                        geo.locator,
                        geo.crs_code,
                        native.min_x, native.min_y, native.max_x, native.max_y,
                        latlon.min_x, latlon.min_y, latlon.max_x, latlon.max_y,
                        geo.native_format,
                    ),
                )
                self.logger.info(f"Stored geometadata for {geo.locator}")
                return geo

    async def get_dataset(self, locator: str) -> Dataset:
        """
        Metadata and geometadata for one locator.

        Raises:
            NotFound: No geometadata for the locator
            IntegrityViolation: More than one row joined
        """
        with self._error_context("get dataset", locator):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT {columns}
                        FROM {metadata} m
                        JOIN {geometadata} gm USING (locator)
                        WHERE m.locator = %s
                        LIMIT 2
                    """).format(
                        columns=_DATASET_COLUMNS,
                        metadata=TABLE_METADATA,
                        geometadata=TABLE_GEOMETADATA,
                    ),
                    (locator,),
                )
                rows = await result.fetchall()

        if not rows:
            raise NotFound(
                f"No geometadata found for {locator}",
                operation="get_dataset",
                entity_id=locator,
            )
        if len(rows) > 1:
            raise IntegrityViolation(
                f"Multiple results found for {locator}",
                operation="get_dataset",
                entity_id=locator,
            )
        return row_to_dataset(rows[0])

    async def get_live_dataset(self, locator: str) -> Optional[Dataset]:
        """Metadata for a locator only if it has a live deployment."""
        with self._error_context("get live dataset", locator):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT {columns}
                        FROM {metadata} m
                        JOIN {geometadata} gm USING (locator)
                        JOIN {deployments} d ON d.locator = m.locator
                        WHERE d.state = %s AND m.locator = %s
                        LIMIT 1
                    """).format(
                        columns=_DATASET_COLUMNS,
                        metadata=TABLE_METADATA,
                        geometadata=TABLE_GEOMETADATA,
                        deployments=TABLE_DEPLOYMENTS,
                    ),
                    (DeploymentState.LIVE.value, locator),
                )
                row = await result.fetchone()
                return row_to_dataset(row) if row else None

    async def keyword_search(self, keyword: str, limit: int = 10) -> List[KeywordHit]:
        """
        Datasets whose name contains ``keyword``, oldest first.

        ``deployed`` is true when any deployment of the locator is live.
        Datasets without geometadata are included with empty spatial fields.
        """
        with self._error_context("keyword search", keyword):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT
                            m.name, m.checksum, m.size, m.locator,
                            gm.native_srid,
                            ST_AsGeoJSON(gm.latlon_bounds::geometry)::json AS latlon_bbox,
                            COALESCE((
                                SELECT bool_or(d.state = %s)
                                FROM {deployments} d
                                WHERE d.locator = m.locator
                            ), false) AS deployed
                        FROM {metadata} m
                        LEFT JOIN {geometadata} gm USING (locator)
                        WHERE m.name LIKE %s
                        ORDER BY m.id
                        LIMIT %s
                    """).format(
                        deployments=TABLE_DEPLOYMENTS,
                        metadata=TABLE_METADATA,
                        geometadata=TABLE_GEOMETADATA,
                    ),
                    (DeploymentState.LIVE.value, f"%{keyword}%", limit),
                )
                rows = await result.fetchall()
                return [KeywordHit(**row) for row in rows]

    async def deployed_servers(self, locator: str) -> List[Server]:
        """Servers currently hosting a live deployment of ``locator``."""
        with self._error_context("deployed servers", locator):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    sql.SQL("""
                        SELECT s.id AS server_id, s.host, s.port, s.local_path, s.response_time
                        FROM {servers} s
                        JOIN {deployments} d ON d.server_id = s.id
                        WHERE d.state = %s AND d.locator = %s
                        ORDER BY d.id
                    """).format(servers=TABLE_SERVERS, deployments=TABLE_DEPLOYMENTS),
                    (DeploymentState.LIVE.value, locator),
                )
                rows = await result.fetchall()
                return [row_to_server(row) for row in rows]


__all__ = ["MetadataRepository", "row_to_dataset"]
