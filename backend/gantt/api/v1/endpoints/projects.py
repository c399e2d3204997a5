from typing import List

from fastapi import APIRouter

from gantt.api.deps import CallerDep, SessionDep, ShareParamsDep
from gantt.models.project import Project
from gantt.schemas.gantt import ProjectRead
from gantt.services import visibility as visibility_service

router = APIRouter()


@router.get("/", response_model=List[ProjectRead])
async def list_projects(
    session: SessionDep,
    caller: CallerDep,
    params: ShareParamsDep,
) -> List[ProjectRead]:
    projects = await visibility_service.list_visible(session, Project, caller, params)
    return [ProjectRead.model_validate(project) for project in projects]
