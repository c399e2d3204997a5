"""Shared query schemas for filtering and sorting."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class SortDir(str, Enum):
    asc = "asc"
    desc = "desc"


class FilterCondition(BaseModel):
    """A named predicate and its argument.

    ``field`` names either a column (compared for equality) or a handler
    registered by the read path::

        # rows owned by user 7
        FilterCondition(field="owner", value=7)
    """
    model_config = ConfigDict(frozen=True)

    field: str
    value: Any = None


class FilterGroup(BaseModel):
    """Conditions combined with AND or OR logic.

    Groups can be nested::

        # owner = 7 OR shared with 7
        FilterGroup(
            logic="or",
            conditions=(
                FilterCondition(field="owner", value=7),
                FilterCondition(field="shared_with", value={"user_id": 7}),
            ),
        )
    """
    model_config = ConfigDict(frozen=True)

    logic: Literal["and", "or"] = "and"
    conditions: tuple[FilterCondition | FilterGroup, ...]


class SortField(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    dir: SortDir = SortDir.asc
