"""Assign an owner to rows left ownerless by the ownership migration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import sqlalchemy as sa
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from gantt.db.migrator import EXPANSION_TABLE, OWNED_TABLES
from gantt.db.schema_state import IDENTITY_TABLE, OWNER_COLUMN, SchemaState, introspect

logger = logging.getLogger(__name__)

BACKFILL_TABLES = (*OWNED_TABLES, EXPANSION_TABLE)


@dataclass
class BackfillReport:
    admin_id: int | None = None
    assigned: dict[str, int] = field(default_factory=dict)
    ownerless: dict[str, int] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def total_assigned(self) -> int:
        return sum(self.assigned.values())

    @property
    def ok(self) -> bool:
        return not self.failures


def find_default_owner(connection: Connection, state: SchemaState) -> int | None:
    """Return the admin that inherits ownerless rows.

    Admin uniqueness is not enforced by the schema, so when several users are
    flagged the one with the lowest id wins.
    """
    if not state.has_column(IDENTITY_TABLE, "is_admin"):
        return None
    users = sa.table(IDENTITY_TABLE, sa.column("id"), sa.column("is_admin"))
    statement = (
        sa.select(users.c.id)
        .where(users.c.is_admin == sa.true())
        .order_by(users.c.id.asc())
        .limit(1)
    )
    return connection.execute(statement).scalar_one_or_none()


def _count_ownerless(connection: Connection, table: sa.TableClause) -> int:
    statement = sa.select(sa.func.count()).select_from(table).where(table.c[OWNER_COLUMN].is_(None))
    return int(connection.execute(statement).scalar_one())


def backfill(connection: Connection, state: SchemaState | None = None) -> BackfillReport:
    """Give every ownerless row in the owned tables to the default admin.

    With no admin present nothing is written; the number of ownerless rows per
    table is still reported.
    """
    state = state if state is not None else introspect(connection)
    report = BackfillReport()
    if not state.initialized:
        return report

    report.admin_id = find_default_owner(connection, state)
    if report.admin_id is None:
        logger.info("No admin user; leaving ownerless rows untouched")

    for name in BACKFILL_TABLES:
        if not state.has_owner_column(name):
            continue
        table = sa.table(name, sa.column(OWNER_COLUMN))
        try:
            with connection.begin_nested():
                if report.admin_id is None:
                    report.ownerless[name] = _count_ownerless(connection, table)
                    continue
                result = connection.execute(
                    sa.update(table)
                    .where(table.c[OWNER_COLUMN].is_(None))
                    .values({OWNER_COLUMN: report.admin_id})
                )
        except SQLAlchemyError as exc:
            logger.error("Ownership backfill for %s failed: %s", name, exc)
            report.failures[name] = str(exc)
            continue
        report.assigned[name] = result.rowcount
        if result.rowcount > 0:
            logger.info("Assigned %s orphan rows in %s to admin %s", result.rowcount, name, report.admin_id)
    return report
