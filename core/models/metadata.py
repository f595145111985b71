# ============================================================================
# DATASET METADATA MODELS
# ============================================================================
# STATUS: Domain model - Read-mostly dataset and geometadata records
# PURPOSE: Describe the datasets that deployments publish
# CREATED: 14 OCT 2026
# EXPORTS: BoundingBox, Metadata, GeoMetadata, KeywordHit
# DEPENDENCIES: pydantic
# ============================================================================
"""
Dataset Metadata

Ingest writes these records; the lifecycle manager reads them to report what
a deployment serves. Bounding boxes are stored as PostGIS boxes, so no
projection math happens here.
"""

from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class BoundingBox(BaseModel):
    """Axis-aligned box in the coordinate system of its owner."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_order(self) -> "BoundingBox":
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ValueError(
                f"Inverted bounding box: x=[{self.min_x}, {self.max_x}] "
                f"y=[{self.min_y}, {self.max_y}]"
            )
        return self


class Metadata(BaseModel):
    """
    Core dataset record.

    Maps to: geodeploy.metadata
    """

    __sql_table__: ClassVar[str] = "metadata"

    name: str = Field(..., max_length=512)
    locator: str = Field(..., min_length=1)
    checksum: bytes = Field(..., description="Raw digest bytes, stored hex encoded")
    size: int = Field(..., ge=0, description="Size in bytes")

    @property
    def checksum_hex(self) -> str:
        return self.checksum.hex()


class GeoMetadata(BaseModel):
    """
    Spatial facts about a dataset.

    Maps to: geodeploy.geometadata
    """

    __sql_table__: ClassVar[str] = "geometadata"

    locator: str = Field(..., min_length=1)
    crs_code: str = Field(..., max_length=64, description="e.g. EPSG:4326")
    native_bounding_box: BoundingBox
    latlon_bounding_box: BoundingBox
    native_format: str = Field(..., max_length=64)


class KeywordHit(BaseModel):
    """One row of a dataset name search, flagged with live deployment status."""
    name: str
    checksum: str
    size: int
    locator: str
    native_srid: Optional[str] = None
    latlon_bbox: Optional[Dict[str, Any]] = Field(
        default=None,
        description="GeoJSON geometry of the lat/lon bounds",
    )
    deployed: bool = False


__all__ = ["BoundingBox", "Metadata", "GeoMetadata", "KeywordHit"]
