from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gantt.models.gantt_expanded import ItemType
from gantt.models.share import SharePermission
from gantt.schemas.query import FilterCondition, FilterGroup, SortField

MATCH_NOTHING = "match_nothing"


class ShareScope(str, Enum):
    own = "own"
    shared_with_me = "sharedWithMe"
    all = "all"
    by_token = "byToken"


class ShareSort(str, Enum):
    display_order = "display_order"
    name = "name"
    due_date = "due_date"
    priority = "priority"
    shared_first = "shared_first"


class ShareQueryParams(BaseModel):
    """Read parameters shared by the client and every list endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    share_token: Optional[str] = Field(default=None, alias="shareToken")
    filter_scope: ShareScope = Field(default=ShareScope.all, alias="filterScope")
    filter_collaborator: Optional[str] = Field(default=None, alias="filterCollaborator")
    sort: ShareSort = ShareSort.display_order
    include_completed: bool = Field(default=False, alias="includeCompleted")

    @field_validator("share_token", "filter_collaborator", mode="before")
    @classmethod
    def blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value


@dataclass(frozen=True)
class Caller:
    """Who is reading: an authenticated user, an anonymous token holder, or nobody."""

    user_id: Optional[int] = None
    share_token: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


class ShareGrant(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    token: Optional[str] = None
    owner_id: int
    item_type: ItemType
    item_id: int
    permission: SharePermission = SharePermission.view
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        if self.revoked_at is not None:
            return False
        if self.expires_at is None:
            return True
        return _as_utc(self.expires_at) > _as_utc(now)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QuerySpec(BaseModel):
    """Which rows a read may return and in what order."""

    model_config = ConfigDict(frozen=True)

    scope: ShareScope
    viewer_id: Optional[int] = None
    conditions: tuple[FilterCondition | FilterGroup, ...] = ()
    sort: tuple[SortField, ...] = ()

    @property
    def matches_nothing(self) -> bool:
        return any(
            isinstance(cond, FilterCondition) and cond.field == MATCH_NOTHING
            for cond in self.conditions
        )
