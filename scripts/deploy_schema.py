#!/usr/bin/env python
# ============================================================================
# SCHEMA DEPLOYMENT SCRIPT
# ============================================================================
# PURPOSE: Deploy the geodeploy schema to PostgreSQL
# USAGE:
#   python scripts/deploy_schema.py --dry-run    # Preview SQL
#   python scripts/deploy_schema.py              # Execute deployment
#   python scripts/deploy_schema.py --drop       # Drop and recreate
# ============================================================================

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import psycopg

from __version__ import __version__
from core.config import DatabaseDefaults
from core.logging import configure_logging
from core.schema import DeploymentSchema
from repositories.database import get_connection_string, mask_conninfo

logger = logging.getLogger("deploy_schema")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Deploy geodeploy schema to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/deploy_schema.py --dry-run     # Preview DDL without executing
  python scripts/deploy_schema.py               # Deploy schema
  python scripts/deploy_schema.py --no-postgis  # Skip CREATE EXTENSION

Environment Variables:
  DATABASE_URL          Full PostgreSQL connection string
  POSTGRES_HOST         Database host (default: localhost)
  POSTGRES_DB           Database name (default: postgres)
  POSTGRES_USER         Database user (default: postgres)
  POSTGRES_PASSWORD     Database password
  POSTGRES_PORT         Database port (default: 5432)
  POSTGRES_SSLMODE      SSL mode (default: prefer)
  GEODEPLOY_SCHEMA      Target schema (default: geodeploy)
        """
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print DDL without connecting or executing"
    )
    parser.add_argument(
        "--connection",
        type=str,
        help="PostgreSQL connection string (overrides environment)"
    )
    parser.add_argument(
        "--schema",
        type=str,
        default=None,
        help="Schema name (overrides GEODEPLOY_SCHEMA)"
    )
    parser.add_argument(
        "--no-postgis",
        action="store_true",
        help="Do not emit CREATE EXTENSION postgis"
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="DROP SCHEMA ... CASCADE before deploying (destroys all data)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "INFO")

    schema = DeploymentSchema(
        schema_name=args.schema or DatabaseDefaults.from_env().schema,
        with_postgis=not args.no_postgis,
    )

    print("=" * 70)
    print(f"GEODEPLOY v{__version__} - Schema Deployment")
    print("=" * 70)
    print(f"Schema: {schema.schema_name}")
    print(f"Mode: {'DRY RUN' if args.dry_run else 'EXECUTE'}")

    if args.dry_run:
        count = schema.execute(None, dry_run=True)
        print(f"\n{count} statements previewed")
        return 0

    conninfo = args.connection or get_connection_string()
    print(f"Target: {mask_conninfo(conninfo)}")
    print("=" * 70)

    try:
        with psycopg.connect(conninfo) as conn:
            if args.drop:
                logger.warning(f"Dropping schema {schema.schema_name}")
                with conn.transaction():
                    conn.execute(schema.generate_drop_schema())
            count = schema.execute(conn)
    except psycopg.Error as e:
        logger.error(f"Schema deployment failed: {e}")
        print("\nDeployment failed!")
        return 1

    print(f"\nDeployment completed: {count} statements executed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
