# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# STATUS: Core - Durable store layer
# PURPOSE: Store contract plus PostgreSQL and in-memory implementations
# CREATED: 14 OCT 2026
# ============================================================================
"""
Repositories Module

The lifecycle services talk to a DeploymentStore. PostgresDeploymentStore
is the durable implementation (psycopg3 async with connection pooling);
InMemoryDeploymentStore serves tests and single-process runs.

Usage:
    from repositories import DatabasePool, PostgresDeploymentStore

    async with DatabasePool() as pool:
        store = PostgresDeploymentStore(pool)
"""

from .base import BaseRepository, DeploymentStore
from .database import DatabasePool, get_connection_string
from .deployment_repo import DeploymentRepository
from .lease_repo import LeaseRepository
from .memory_store import InMemoryDeploymentStore
from .metadata_repo import MetadataRepository
from .postgres_store import PostgresDeploymentStore
from .server_repo import ServerRepository

__all__ = [
    "BaseRepository",
    "DeploymentStore",
    "DatabasePool",
    "get_connection_string",
    "ServerRepository",
    "DeploymentRepository",
    "LeaseRepository",
    "MetadataRepository",
    "PostgresDeploymentStore",
    "InMemoryDeploymentStore",
]
