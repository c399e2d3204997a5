"""Compile filter and sort schemas into SQLAlchemy clauses.

Field names are looked up in an ``allowed_fields`` mapping. A value there is
either a column expression (compared for equality) or a handler called with
the condition value that returns a clause, so read paths can register
predicates such as ``owner`` or ``shared_with`` under plain names.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import Select, and_, asc, desc, or_

from gantt.schemas.query import FilterCondition, FilterGroup, SortDir, SortField


def apply_filters(
    statement: Select,
    conditions: Iterable[FilterCondition | FilterGroup],
    allowed_fields: Mapping[str, Any],
) -> Select:
    """AND every resolvable condition onto *statement*.

    Conditions naming an unregistered field are skipped, so callers must
    register every field that narrows visibility.
    """
    for cond in conditions:
        clause = _resolve(cond, allowed_fields)
        if clause is not None:
            statement = statement.where(clause)
    return statement


def _resolve(cond: FilterCondition | FilterGroup, allowed_fields: Mapping[str, Any]):
    if isinstance(cond, FilterGroup):
        clauses = [
            clause
            for clause in (_resolve(child, allowed_fields) for child in cond.conditions)
            if clause is not None
        ]
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return or_(*clauses) if cond.logic == "or" else and_(*clauses)

    target = allowed_fields.get(cond.field)
    if target is None:
        return None
    if callable(target):
        return target(cond.value)
    return target == cond.value


def apply_sorting(
    statement: Select,
    sort_fields: Iterable[SortField],
    allowed_fields: Mapping[str, Any],
) -> Select:
    """Append ORDER BY terms in the given order, NULLs last either way.

    Fields missing from *allowed_fields* are skipped, so one sort list can
    serve models with different columns. No tie-break is added here; a total
    order is the caller's job.
    """
    for sf in sort_fields:
        col = allowed_fields.get(sf.field)
        if col is None:
            continue
        order = desc(col) if sf.dir == SortDir.desc else asc(col)
        statement = statement.order_by(order.nulls_last())
    return statement
