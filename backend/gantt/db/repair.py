"""Operator command that repairs ownership on an existing store.

Recovers stores that fail with "no such column: user_id" or "table
gantt_expanded_new already exists": adds missing owner columns, resolves the
leftover shadow table and hands ownerless rows to the admin. Restart the API
afterwards.
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from gantt.core.config import settings
from gantt.db.init_db import MaintenanceReport, run_ownership_maintenance
from gantt.db.session import open_store

logger = logging.getLogger("gantt.repair")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the store (defaults to DATABASE_URL, then DB_PATH)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="exit with status 2 when any table could not be repaired",
    )
    return parser.parse_args(argv)


def _log_report(report: MaintenanceReport) -> None:
    migration = report.migration
    if migration.awaiting_schema:
        logger.info("Database has no users table; start the API to create the schema")
        return
    if not migration.changed:
        logger.info("Schema already up to date")
    if migration.shadow_repaired:
        logger.info("Shadow table repair: %s", migration.shadow_resolution.value)
    if report.backfill.admin_id is None:
        remaining = sum(report.backfill.ownerless.values())
        if remaining:
            logger.info("No admin user; %s rows remain without an owner", remaining)
    elif report.backfill.total_assigned == 0:
        logger.info("No ownerless rows")


async def repair(url: str) -> MaintenanceReport:
    logger.info("Opening database: %s", make_url(url).render_as_string(hide_password=True))
    async with open_store(url, exclusive=True) as engine:
        report = await run_ownership_maintenance(engine, create_schema=False)
    _log_report(report)
    return report


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(message)s")
    url = args.database_url or settings.database_url
    try:
        report = asyncio.run(repair(url))
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Error: %s", exc)
        return EXIT_ERROR

    if not report.ok and args.strict:
        return EXIT_PARTIAL
    logger.info("Done. Restart the API to pick up the repaired schema")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
