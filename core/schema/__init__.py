# ============================================================================
# SCHEMA MODULE
# ============================================================================
# STATUS: Core - DDL for the durable store
# PURPOSE: Generate PostgreSQL DDL for the lifecycle manager's tables
# CREATED: 14 OCT 2026
# ============================================================================

from core.schema.ddl import DeploymentSchema, IndexBuilder

__all__ = [
    "DeploymentSchema",
    "IndexBuilder",
]
