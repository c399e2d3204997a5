from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

DEFAULT_BASE_PRIORITY = 5


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    project_id: int = Field(foreign_key="projects.id", index=True, nullable=False)
    parent_id: Optional[int] = Field(default=None, foreign_key="tasks.id", index=True)
    name: str = Field(nullable=False)
    start_date: date = Field(nullable=False)
    end_date: date = Field(nullable=False)
    due_date: Optional[date] = Field(default=None)
    progress: int = Field(default=0, nullable=False)
    completed: bool = Field(default=False, nullable=False, index=True)
    completed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    base_priority: int = Field(default=DEFAULT_BASE_PRIORITY, nullable=False)
    display_order: float = Field(default=0, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
