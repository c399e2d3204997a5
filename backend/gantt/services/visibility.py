"""Read path for share-scoped lists of categories, projects and tasks.

Compiles a :class:`QuerySpec` into SQL for one of the shareable models. A grant
on a category covers its projects and their tasks, a grant on a project covers
its tasks, and a grant on a task covers the task and its direct subtasks.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar

from pydantic import ValidationError
from sqlalchemy import Select, case, false, or_
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from gantt.db.query import apply_filters, apply_sorting
from gantt.models.category import Category
from gantt.models.gantt_expanded import ItemType
from gantt.models.project import Project
from gantt.models.share import ShareLink, UserShare
from gantt.models.task import Task
from gantt.schemas.share import MATCH_NOTHING, Caller, QuerySpec, ShareGrant, ShareQueryParams
from gantt.services.share_query import resolve

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)

SHAREABLE_MODELS = (Category, Project, Task)
SORTABLE_COLUMNS = ("id", "name", "display_order", "due_date", "base_priority")

# Maps an item type to the ids it covers: a subquery or a literal list.
IdsFor = Callable[[ItemType], Any]


def _covered_by(model: type[SQLModel], ids_for: IdsFor):
    if model is Task:
        return or_(
            Task.id.in_(ids_for(ItemType.task)),
            Task.parent_id.in_(ids_for(ItemType.task)),
            Task.project_id.in_(ids_for(ItemType.project)),
            Task.project_id.in_(
                select(Project.id).where(Project.category_id.in_(ids_for(ItemType.category)))
            ),
        )
    if model is Project:
        return or_(
            Project.id.in_(ids_for(ItemType.project)),
            Project.category_id.in_(ids_for(ItemType.category)),
        )
    if model is Category:
        return Category.id.in_(ids_for(ItemType.category))
    return false()


def _shared_with(model: type[SQLModel], value: dict[str, Any]):
    criteria = [UserShare.target_user_id == value["user_id"]]
    if value.get("owner_id") is not None:
        criteria.append(UserShare.owner_id == value["owner_id"])

    def ids_for(item_type: ItemType) -> Select:
        return select(UserShare.item_id).where(*criteria, UserShare.item_type == item_type.value)

    return _covered_by(model, ids_for)


def _reachable_from(model: type[SQLModel], value: dict[str, Any]):
    target_type = ItemType(value["item_type"])
    target_id = value["item_id"]

    def ids_for(item_type: ItemType) -> list[int]:
        return [target_id] if item_type == target_type else []

    return _covered_by(model, ids_for)


def visibility_fields(model: type[SQLModel]) -> dict[str, Any]:
    """Filter handlers understood by the read path for *model*.

    Every visibility field is registered for every shareable model; a skipped
    visibility condition would widen the result instead of narrowing it.
    """
    if model not in SHAREABLE_MODELS:
        raise ValueError(f"{model.__name__} is not shareable")
    fields: dict[str, Any] = {
        "owner": model.user_id,
        "shared_with": lambda value: _shared_with(model, value),
        "reachable_from": lambda value: _reachable_from(model, value),
        MATCH_NOTHING: lambda value: false(),
    }
    if model is Task:
        fields["completed"] = Task.completed
    return fields


def sort_columns(model: type[SQLModel], viewer_id: Optional[int]) -> dict[str, Any]:
    columns = {name: getattr(model, name) for name in SORTABLE_COLUMNS if hasattr(model, name)}
    if viewer_id is not None:
        # Ascending puts rows owned by someone else first.
        columns["is_own"] = case((model.user_id == viewer_id, 1), else_=0)
    return columns


def apply_query_spec(statement: Select, model: type[SQLModel], spec: QuerySpec) -> Select:
    statement = apply_filters(statement, spec.conditions, visibility_fields(model))
    return apply_sorting(statement, spec.sort, sort_columns(model, spec.viewer_id))


async def get_share_grant(session: AsyncSession, token: str) -> Optional[ShareGrant]:
    """Look up the grant behind a share link token, active or not."""
    result = await session.exec(select(ShareLink).where(ShareLink.token == token))
    link = result.one_or_none()
    if link is None:
        return None
    try:
        return ShareGrant.model_validate(link)
    except ValidationError:
        logger.debug("Share link %s targets an unsupported item type %s", link.id, link.item_type)
        return None


async def list_visible(
    session: AsyncSession,
    model: type[ModelT],
    caller: Caller,
    params: ShareQueryParams,
    *,
    now: Optional[datetime] = None,
) -> Sequence[ModelT]:
    now = now or datetime.now(timezone.utc)
    token = params.share_token or caller.share_token
    grant = await get_share_grant(session, token) if token else None
    spec = resolve(caller, params, grant=grant, now=now)
    if spec.matches_nothing:
        return []
    result = await session.exec(apply_query_spec(select(model), model, spec))
    return result.all()
