from datetime import date, datetime, timezone
from typing import Optional

from gantt.models.task import DEFAULT_BASE_PRIORITY

OVERDUE_BOOST = 15
DUE_SOON_BOOST = 10


def compute_urgency(
    *,
    base_priority: Optional[int],
    completed: bool,
    due_date: Optional[date],
    today: Optional[date] = None,
) -> float:
    """Urgency score for a task; higher is more urgent.

    Completed tasks score 0. Open tasks start from their base priority and gain
    a boost that grows as the due date approaches, capped once overdue.
    """
    base = DEFAULT_BASE_PRIORITY if base_priority is None else base_priority
    if completed:
        return 0
    if due_date is None:
        return base

    today = today or datetime.now(timezone.utc).date()
    days_left = (due_date - today).days
    if days_left <= 0:
        return base + OVERDUE_BOOST
    return base + DUE_SOON_BOOST / (days_left + 1)
