"""
Unit tests for the ownership migration.

Covers:
- Adding owner columns to legacy tables
- Rebuilding gantt_expanded with per-user state
- Resolving a leftover gantt_expanded_new shadow table
- Idempotence and per-table failure isolation
"""

import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from gantt.core.config import sqlite_url_for_path
from gantt.db.init_db import init_store, run_ownership_maintenance
from gantt.db.migrator import EXPANSION_TABLE, OWNED_TABLES, SHADOW_TABLE, ShadowResolution, migrate
from gantt.db.schema_state import SchemaState, introspect
from gantt.db.session import open_store
from gantt.testing.legacy_store import (
    SHADOW_SCHEMA,
    create_legacy_store,
    execute_statements,
    legacy_statements,
)


async def _migrate(engine: AsyncEngine, state: SchemaState | None = None):
    async with engine.begin() as conn:
        return await conn.run_sync(migrate, state)


async def _state(engine: AsyncEngine) -> SchemaState:
    async with engine.connect() as conn:
        return await conn.run_sync(introspect)


async def _rows(engine: AsyncEngine, sql: str) -> list[tuple]:
    async with engine.connect() as conn:
        result = await conn.execute(text(sql))
        return [tuple(row) for row in result.all()]


@pytest.mark.unit
async def test_empty_store_awaits_schema(engine: AsyncEngine):
    report = await _migrate(engine)

    assert report.awaiting_schema is True
    assert report.ok
    assert not report.changed
    assert (await _state(engine)).tables == {}


@pytest.mark.unit
async def test_legacy_store_gains_owner_columns(engine: AsyncEngine):
    await create_legacy_store(engine)

    report = await _migrate(engine)

    assert report.ok
    assert report.altered_tables == list(OWNED_TABLES)
    assert report.rebuilt_tables == [EXPANSION_TABLE]
    assert report.shadow_resolution is ShadowResolution.none
    state = await _state(engine)
    for table in (*OWNED_TABLES, EXPANSION_TABLE):
        assert state.has_owner_column(table), table
    assert not state.has_table(SHADOW_TABLE)


@pytest.mark.unit
async def test_migration_preserves_rows(engine: AsyncEngine):
    await create_legacy_store(engine)

    await _migrate(engine)

    assert await _rows(engine, "SELECT id, name, user_id FROM tasks ORDER BY id") == [
        (1, "Draft", None),
        (2, "Review", None),
        (3, "Plant", None),
    ]
    assert await _rows(engine, "SELECT item_type, item_id, expanded, user_id FROM gantt_expanded ORDER BY id") == [
        ("category", 1, 1, None),
        ("project", 1, 0, None),
    ]


@pytest.mark.unit
async def test_second_run_is_a_no_op(engine: AsyncEngine):
    await create_legacy_store(engine)
    await _migrate(engine)
    before = await _state(engine)

    report = await _migrate(engine)

    assert report.ok
    assert not report.changed
    assert await _state(engine) == before


@pytest.mark.unit
async def test_missing_tables_are_skipped(engine: AsyncEngine):
    await execute_statements(engine, legacy_statements(tables=("users", "categories")))

    report = await _migrate(engine)

    assert report.ok
    assert report.altered_tables == ["categories"]
    assert report.rebuilt_tables == []
    assert not (await _state(engine)).has_table("tasks")


@pytest.mark.unit
async def test_shadow_completes_interrupted_swap(engine: AsyncEngine):
    await create_legacy_store(engine)
    await execute_statements(
        engine,
        [
            SHADOW_SCHEMA,
            "INSERT INTO gantt_expanded_new (user_id, item_type, item_id, expanded) VALUES (1, 'task', 3, 1)",
        ],
    )

    report = await _migrate(engine)

    assert report.ok
    assert report.shadow_resolution is ShadowResolution.completed_swap
    assert report.rebuilt_tables == []
    state = await _state(engine)
    assert not state.has_table(SHADOW_TABLE)
    assert state.has_owner_column(EXPANSION_TABLE)
    assert await _rows(engine, "SELECT user_id, item_type, item_id FROM gantt_expanded") == [(1, "task", 3)]


@pytest.mark.unit
async def test_orphan_shadow_is_dropped(engine: AsyncEngine):
    await create_legacy_store(engine)
    await _migrate(engine)
    await execute_statements(engine, [SHADOW_SCHEMA])

    report = await _migrate(engine)

    assert report.ok
    assert report.shadow_resolution is ShadowResolution.dropped_orphan
    assert not (await _state(engine)).has_table(SHADOW_TABLE)
    assert len(await _rows(engine, "SELECT id FROM gantt_expanded")) == 2


@pytest.mark.unit
async def test_shadow_without_target_is_restored(engine: AsyncEngine):
    await execute_statements(
        engine,
        [
            *legacy_statements(tables=("users",)),
            SHADOW_SCHEMA,
            "INSERT INTO gantt_expanded_new (user_id, item_type, item_id, expanded) VALUES (4, 'project', 2, 0)",
        ],
    )

    report = await _migrate(engine)

    assert report.ok
    assert report.shadow_resolution is ShadowResolution.restored_target
    state = await _state(engine)
    assert state.has_owner_column(EXPANSION_TABLE)
    assert not state.has_table(SHADOW_TABLE)
    assert await _rows(engine, "SELECT user_id, item_id FROM gantt_expanded") == [(4, 2)]


@pytest.mark.unit
async def test_failed_step_does_not_block_other_tables(engine: AsyncEngine):
    await create_legacy_store(engine)
    await execute_statements(engine, ["ALTER TABLE categories ADD COLUMN user_id INTEGER"])
    live = await _state(engine)
    # A stale snapshot claims categories still lacks the owner column.
    stale = SchemaState.from_tables(
        {**live.tables, "categories": live.columns("categories") - {"user_id"}}
    )

    report = await _migrate(engine, stale)

    assert not report.ok
    assert set(report.failures) == {"categories"}
    assert report.altered_tables == ["projects", "tasks"]
    assert report.rebuilt_tables == [EXPANSION_TABLE]
    assert (await _state(engine)).has_owner_column("tasks")


@pytest.mark.unit
async def test_maintenance_creates_missing_tables(engine: AsyncEngine):
    await create_legacy_store(engine)

    report = await run_ownership_maintenance(engine, create_schema=True)

    assert report.ok
    state = await _state(engine)
    assert state.has_table("user_shares")
    assert state.has_table("share_links")


@pytest.mark.unit
async def test_init_store_on_fresh_path(tmp_path):
    url = sqlite_url_for_path(str(tmp_path / "nested" / "gantt.db"))

    report = await init_store(url)

    assert report.ok
    assert report.migration.awaiting_schema is True
    assert (tmp_path / "nested" / "gantt.db").exists()
    second = await init_store(url)
    assert second.ok
    assert second.migration.awaiting_schema is False
    assert not second.migration.changed


@pytest.mark.unit
async def test_concurrent_runs_swap_once(engine: AsyncEngine, database_url: str):
    await create_legacy_store(engine)
    await execute_statements(
        engine,
        [
            SHADOW_SCHEMA,
            "INSERT INTO gantt_expanded_new (user_id, item_type, item_id, expanded) VALUES (1, 'task', 3, 1)",
        ],
    )
    await engine.dispose()

    async def maintain():
        async with open_store(database_url, exclusive=True) as store:
            return await run_ownership_maintenance(store)

    first, second = await asyncio.gather(maintain(), maintain())

    reports = sorted((first.migration, second.migration), key=lambda report: report.changed)
    assert all(report.ok for report in reports)
    assert reports[0].shadow_resolution is ShadowResolution.none
    assert not reports[0].changed
    assert reports[1].shadow_resolution is ShadowResolution.completed_swap
    state = await _state(engine)
    assert not state.has_table(SHADOW_TABLE)
    assert await _rows(engine, "SELECT user_id, item_type, item_id FROM gantt_expanded") == [(1, "task", 3)]
