"""Immutable snapshots of the live schema.

Migration and backfill steps branch on a single snapshot taken after the
maintenance lock is held, never on ad-hoc introspection in the middle of a
run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from sqlalchemy import inspect
from sqlalchemy.engine import Connection

OWNER_COLUMN = "user_id"
IDENTITY_TABLE = "users"


@dataclass(frozen=True)
class SchemaState:
    tables: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_tables(cls, tables: Mapping[str, set[str] | frozenset[str] | list[str]]) -> SchemaState:
        return cls(MappingProxyType({name: frozenset(columns) for name, columns in tables.items()}))

    def has_table(self, table: str) -> bool:
        return table in self.tables

    def has_column(self, table: str, column: str) -> bool:
        return column in self.tables.get(table, frozenset())

    def columns(self, table: str) -> frozenset[str]:
        return self.tables.get(table, frozenset())

    def has_owner_column(self, table: str) -> bool:
        return self.has_column(table, OWNER_COLUMN)

    @property
    def initialized(self) -> bool:
        return self.has_table(IDENTITY_TABLE)


def introspect(connection: Connection) -> SchemaState:
    """Read table and column names through a fresh inspector."""
    inspector = inspect(connection)
    tables = {
        name: [column["name"] for column in inspector.get_columns(name)]
        for name in inspector.get_table_names()
    }
    return SchemaState.from_tables(tables)
