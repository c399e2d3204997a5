"""
Unit tests for the ownership backfill.

Covers:
- Handing every ownerless row to the default admin
- Lowest-id tie-break between several admins
- Leaving rows untouched when no admin exists
"""

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from gantt.db.backfill import BACKFILL_TABLES, backfill
from gantt.db.init_db import run_ownership_maintenance
from gantt.testing.legacy_store import create_legacy_store, execute_statements

LEGACY_ROW_COUNTS = {"categories": 2, "projects": 2, "tasks": 3, "gantt_expanded": 2}


async def _backfill(engine: AsyncEngine):
    async with engine.begin() as conn:
        return await conn.run_sync(backfill)


async def _owners(engine: AsyncEngine, table: str) -> set:
    async with engine.connect() as conn:
        result = await conn.execute(text(f"SELECT DISTINCT user_id FROM {table}"))
        return set(result.scalars().all())


async def _add_users(engine: AsyncEngine, *users: tuple[int, str, bool]) -> None:
    await execute_statements(
        engine,
        [
            f"INSERT INTO users (id, username, is_admin) VALUES ({user_id}, '{name}', {int(admin)})"
            for user_id, name, admin in users
        ],
    )


@pytest.fixture
async def migrated_store(engine: AsyncEngine) -> AsyncEngine:
    """A legacy store after migration: owner columns exist but are empty."""
    await create_legacy_store(engine)
    await run_ownership_maintenance(engine)
    return engine


@pytest.mark.unit
async def test_rows_go_to_admin(migrated_store: AsyncEngine):
    await _add_users(migrated_store, (1, "member", False), (2, "admin", True))

    report = await _backfill(migrated_store)

    assert report.ok
    assert report.admin_id == 2
    assert report.assigned == LEGACY_ROW_COUNTS
    for table in BACKFILL_TABLES:
        assert await _owners(migrated_store, table) == {2}, table


@pytest.mark.unit
async def test_lowest_admin_id_wins(migrated_store: AsyncEngine):
    await _add_users(migrated_store, (7, "late-admin", True), (3, "early-admin", True))

    report = await _backfill(migrated_store)

    assert report.admin_id == 3
    assert await _owners(migrated_store, "tasks") == {3}


@pytest.mark.unit
async def test_owned_rows_are_untouched(migrated_store: AsyncEngine):
    await _add_users(migrated_store, (1, "admin", True), (2, "owner", False))
    await execute_statements(migrated_store, ["UPDATE tasks SET user_id = 2 WHERE id = 1"])

    report = await _backfill(migrated_store)

    assert report.assigned["tasks"] == 2
    async with migrated_store.connect() as conn:
        result = await conn.execute(text("SELECT id, user_id FROM tasks ORDER BY id"))
        assert [tuple(row) for row in result.all()] == [(1, 2), (2, 1), (3, 1)]


@pytest.mark.unit
async def test_without_admin_nothing_is_written(migrated_store: AsyncEngine):
    await _add_users(migrated_store, (1, "member", False))

    report = await _backfill(migrated_store)

    assert report.ok
    assert report.admin_id is None
    assert report.total_assigned == 0
    assert report.ownerless == LEGACY_ROW_COUNTS
    assert await _owners(migrated_store, "categories") == {None}


@pytest.mark.unit
async def test_second_backfill_assigns_nothing(migrated_store: AsyncEngine):
    await _add_users(migrated_store, (1, "admin", True))
    await _backfill(migrated_store)

    report = await _backfill(migrated_store)

    assert report.total_assigned == 0


@pytest.mark.unit
async def test_empty_store_is_ignored(engine: AsyncEngine):
    report = await _backfill(engine)

    assert report.ok
    assert report.admin_id is None
    assert report.assigned == {}


@pytest.mark.unit
async def test_maintenance_backfills_after_migration(engine: AsyncEngine):
    await create_legacy_store(engine)
    await _add_users(engine, (1, "admin", True))

    report = await run_ownership_maintenance(engine)

    assert report.ok
    assert report.migration.altered_tables == ["categories", "projects", "tasks"]
    assert report.backfill.total_assigned == sum(LEGACY_ROW_COUNTS.values())
    assert await _owners(engine, "gantt_expanded") == {1}
