from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class ItemType(str, Enum):
    category = "category"
    project = "project"
    task = "task"


class GanttExpanded(SQLModel, table=True):
    """Per-user expand/collapse state of timeline rows."""

    __tablename__ = "gantt_expanded"
    __table_args__ = (
        UniqueConstraint("user_id", "item_type", "item_id", name="uq_gantt_expanded_user_item"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    item_type: str = Field(nullable=False)
    item_id: int = Field(nullable=False)
    expanded: bool = Field(default=True, nullable=False)
