"""Import all models for metadata creation."""

from gantt.models.category import Category
from gantt.models.gantt_expanded import GanttExpanded
from gantt.models.project import Project
from gantt.models.share import ShareLink, UserShare
from gantt.models.task import Task
from gantt.models.user import User

__all__ = [
    "User",
    "Category",
    "Project",
    "Task",
    "GanttExpanded",
    "UserShare",
    "ShareLink",
]
