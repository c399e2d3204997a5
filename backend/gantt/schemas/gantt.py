from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    name: str
    display_order: int
    created_at: datetime


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    category_id: int
    name: str
    display_order: int
    created_at: datetime


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    project_id: int
    parent_id: Optional[int] = None
    name: str
    start_date: date
    end_date: date
    due_date: Optional[date] = None
    progress: int
    completed: bool
    completed_at: Optional[datetime] = None
    base_priority: int
    display_order: float
    urgency: float = 0
