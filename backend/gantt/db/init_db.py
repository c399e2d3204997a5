import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import SQLModel

from gantt.core.config import settings
from gantt.db.backfill import BackfillReport, backfill
from gantt.db.migrator import MigrationReport, migrate
from gantt.db.schema_state import introspect
from gantt.db.session import ensure_store_directory, open_store

logger = logging.getLogger(__name__)


@dataclass
class MaintenanceReport:
    migration: MigrationReport
    backfill: BackfillReport

    @property
    def ok(self) -> bool:
        return self.migration.ok and self.backfill.ok


def acquire_maintenance_lock(connection: Connection) -> None:
    """Serialize maintenance runs across processes sharing one store.

    PostgreSQL holds a transaction-scoped advisory lock. SQLite engines built
    with ``exclusive=True`` already hold the writer lock from ``BEGIN
    IMMEDIATE``.
    """
    if connection.dialect.name == "postgresql":
        connection.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": settings.MIGRATION_LOCK_KEY},
        )


def _run_maintenance(connection: Connection, create_schema: bool) -> MaintenanceReport:
    acquire_maintenance_lock(connection)
    migration = migrate(connection, introspect(connection))
    if create_schema:
        SQLModel.metadata.create_all(connection)
    # The migration may have added owner columns, so take a new snapshot.
    backfill_report = backfill(connection, introspect(connection))
    return MaintenanceReport(migration=migration, backfill=backfill_report)


async def run_ownership_maintenance(engine: AsyncEngine, *, create_schema: bool = False) -> MaintenanceReport:
    """Migrate, optionally create missing tables, then backfill, in one transaction."""
    async with engine.begin() as conn:
        report = await conn.run_sync(_run_maintenance, create_schema)
    if not report.ok:
        logger.warning(
            "Ownership maintenance finished with failures: %s",
            {**report.migration.failures, **report.backfill.failures},
        )
    return report


async def init_store(url: str | None = None) -> MaintenanceReport:
    """Startup hook: bring the store to the current schema before serving requests."""
    url = url or settings.database_url
    ensure_store_directory(url)
    async with open_store(url, exclusive=True) as engine:
        return await run_ownership_maintenance(engine, create_schema=True)


if __name__ == "__main__":  # pragma: no cover
    asyncio.run(init_store())
