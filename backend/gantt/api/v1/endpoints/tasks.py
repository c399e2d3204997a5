from typing import List

from fastapi import APIRouter

from gantt.api.deps import CallerDep, SessionDep, ShareParamsDep
from gantt.models.task import Task
from gantt.schemas.gantt import TaskRead
from gantt.services import visibility as visibility_service
from gantt.services.priority import compute_urgency

router = APIRouter()


def _task_read(task: Task) -> TaskRead:
    payload = TaskRead.model_validate(task)
    payload.urgency = compute_urgency(
        base_priority=task.base_priority,
        completed=task.completed,
        due_date=task.due_date,
    )
    return payload


@router.get("/", response_model=List[TaskRead])
async def list_tasks(
    session: SessionDep,
    caller: CallerDep,
    params: ShareParamsDep,
) -> List[TaskRead]:
    tasks = await visibility_service.list_visible(session, Task, caller, params)
    return [_task_read(task) for task in tasks]
