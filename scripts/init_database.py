#!/usr/bin/env python3
"""
Database Initialization Script
==============================

Create the MedReview PostgreSQL schema: the pgvector extension and the
submission, regulation, chunk and analysis tables.

Usage:
    python scripts/init_database.py
    python scripts/init_database.py --check

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="init-db")
logger = get_logger(__name__)


async def init_postgres() -> bool:
    """Create the extension and every review table."""
    # Registers the ORM tables on Base.metadata
    import services.compliance_review.models.tables  # noqa: F401
    from shared.database.postgres import PostgresClient

    logger.info("postgres_init_started")

    try:
        await PostgresClient.create_schema()
        logger.info("postgres_init_completed")
        return True

    except Exception as e:
        logger.error("postgres_init_failed", error=str(e))
        return False

    finally:
        await PostgresClient.close()


async def check_postgres() -> bool:
    """Report database connectivity without changing anything."""
    from shared.database.postgres import PostgresClient

    health = await PostgresClient.health_check()
    await PostgresClient.close()
    logger.info("postgres_health", **health)
    return health.get("status") == "healthy"


async def main(args: argparse.Namespace) -> int:
    """Run the requested step."""
    ok = await check_postgres() if args.check else await init_postgres()
    return 0 if ok else 1


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Initialize the MedReview database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--check",
        action="store_true",
        help="Only check connectivity",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
