#!/usr/bin/env python3
"""
Initialize the Book Catalog database.

This script:
1. Creates all database tables
2. Optionally loads the sample catalog
3. Verifies the database is ready for MCP server use

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from book_catalog_mcp.config import get_config
from book_catalog_mcp.database import DatabaseManager
from book_catalog_mcp.database.seed import seed_catalog

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"authors", "books", "book_genres", "users"}


def main():
    """Main entry point for database initialization."""
    parser = argparse.ArgumentParser(description="Initialize the Book Catalog MCP Server database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load the sample catalog after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="SQLite URL to use instead of the configured database path",
    )

    args = parser.parse_args()

    logger.info("Initializing database manager...")
    db_manager = DatabaseManager(args.database_url or get_config().get_database_url())

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            logger.info("Loading sample catalog...")
            created = seed_catalog(db_manager)
            logger.info(
                "Sample catalog loaded: %d new authors, %d new books",
                created["authors"],
                created["books"],
            )

        tables = set(inspect(db_manager.engine).get_table_names())
        logger.info("Tables: %s", ", ".join(sorted(tables)))

        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing_tables)))
            sys.exit(1)

        logger.info("Database initialization complete. The catalog server is ready to use.")

    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
