"""Idempotent ownership migration for stores created by the single-tenant schema.

Every step is additive except the shadow-table repair, which removes the
transient ``gantt_expanded_new`` artifact (and, when the artifact holds the
already-migrated rows, the stale table it was meant to replace). Running the
migrator again after a completed run finds nothing to do.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import sqlalchemy as sa
from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from gantt.db.schema_state import IDENTITY_TABLE, OWNER_COLUMN, SchemaState, introspect

logger = logging.getLogger(__name__)

# Order matters only for the report; each table is independent.
OWNED_TABLES = ("categories", "projects", "tasks")
EXPANSION_TABLE = "gantt_expanded"
SHADOW_TABLE = "gantt_expanded_new"


class ShadowResolution(str, Enum):
    none = "none"
    completed_swap = "completed_swap"
    dropped_orphan = "dropped_orphan"
    restored_target = "restored_target"


@dataclass
class MigrationReport:
    awaiting_schema: bool = False
    altered_tables: list[str] = field(default_factory=list)
    rebuilt_tables: list[str] = field(default_factory=list)
    shadow_resolution: ShadowResolution = ShadowResolution.none
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def shadow_repaired(self) -> bool:
        return self.shadow_resolution is not ShadowResolution.none

    @property
    def changed(self) -> bool:
        return bool(self.altered_tables or self.rebuilt_tables or self.shadow_repaired)

    @property
    def ok(self) -> bool:
        return not self.failures


def _operations(connection: Connection) -> Operations:
    return Operations(MigrationContext.configure(connection))


def _run_step(
    connection: Connection,
    report: MigrationReport,
    table: str,
    action: Callable[..., Any],
    *args: Any,
) -> bool:
    """Run *action* inside a savepoint, recording a failure instead of raising."""
    try:
        with connection.begin_nested():
            action(*args)
    except SQLAlchemyError as exc:
        logger.error("Ownership migration step for %s failed: %s", table, exc)
        report.failures[table] = str(exc)
        return False
    return True


def _expansion_shadow_table() -> sa.Table:
    return sa.Table(
        SHADOW_TABLE,
        sa.MetaData(),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(OWNER_COLUMN, sa.Integer(), nullable=True),
        sa.Column("item_type", sa.String(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("expanded", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint(OWNER_COLUMN, "item_type", "item_id", name="uq_gantt_expanded_user_item"),
    )


def _rebuild_expansion_table(connection: Connection, op: Operations, state: SchemaState) -> None:
    shadow = _expansion_shadow_table()
    shadow.create(connection)
    legacy_columns = state.columns(EXPANSION_TABLE)
    shared = [column.name for column in shadow.columns if column.name in legacy_columns]
    source = sa.table(EXPANSION_TABLE, *[sa.column(name) for name in shared])
    connection.execute(shadow.insert().from_select(shared, sa.select(*source.c)))
    op.drop_table(EXPANSION_TABLE)
    op.rename_table(SHADOW_TABLE, EXPANSION_TABLE)


def _swap_in_shadow(op: Operations, drop_target: bool) -> None:
    if drop_target:
        op.drop_table(EXPANSION_TABLE)
    op.rename_table(SHADOW_TABLE, EXPANSION_TABLE)


def _resolve_expansion_table(
    connection: Connection,
    op: Operations,
    state: SchemaState,
    report: MigrationReport,
) -> None:
    target_exists = state.has_table(EXPANSION_TABLE)
    target_migrated = state.has_owner_column(EXPANSION_TABLE)

    if not state.has_table(SHADOW_TABLE):
        if target_exists and not target_migrated:
            logger.info("Rebuilding %s with per-user expansion state", EXPANSION_TABLE)
            if _run_step(connection, report, EXPANSION_TABLE, _rebuild_expansion_table, connection, op, state):
                report.rebuilt_tables.append(EXPANSION_TABLE)
        return

    if target_exists and not target_migrated:
        logger.info("Completing %s migration (dropping old, renaming %s)", EXPANSION_TABLE, SHADOW_TABLE)
        if _run_step(connection, report, SHADOW_TABLE, _swap_in_shadow, op, True):
            report.shadow_resolution = ShadowResolution.completed_swap
    elif target_exists:
        logger.info("Dropping orphan %s", SHADOW_TABLE)
        if _run_step(connection, report, SHADOW_TABLE, op.drop_table, SHADOW_TABLE):
            report.shadow_resolution = ShadowResolution.dropped_orphan
    else:
        logger.info("Restoring missing %s from %s", EXPANSION_TABLE, SHADOW_TABLE)
        if _run_step(connection, report, SHADOW_TABLE, _swap_in_shadow, op, False):
            report.shadow_resolution = ShadowResolution.restored_target


def migrate(connection: Connection, state: SchemaState | None = None) -> MigrationReport:
    """Bring a live store up to the multi-tenant shape.

    Expects to run inside a transaction on a connection that already holds the
    maintenance lock. ``state`` defaults to a fresh snapshot of *connection*.
    """
    state = state if state is not None else introspect(connection)
    report = MigrationReport()

    if not state.initialized:
        logger.info(
            "No %s table; the store is empty and awaits first-run schema creation",
            IDENTITY_TABLE,
        )
        report.awaiting_schema = True
        return report

    op = _operations(connection)
    for table in OWNED_TABLES:
        if not state.has_table(table):
            logger.info("Skipping %s; it will be created with %s", table, OWNER_COLUMN)
            continue
        if state.has_owner_column(table):
            logger.info("%s already has %s", table, OWNER_COLUMN)
            continue
        logger.info("Adding %s to %s", OWNER_COLUMN, table)
        column = sa.Column(OWNER_COLUMN, sa.Integer(), nullable=True)
        if _run_step(connection, report, table, op.add_column, table, column):
            report.altered_tables.append(table)

    _resolve_expansion_table(connection, op, state, report)
    return report
