from typing import List

from fastapi import APIRouter

from gantt.api.deps import CallerDep, SessionDep, ShareParamsDep
from gantt.models.category import Category
from gantt.schemas.gantt import CategoryRead
from gantt.services import visibility as visibility_service

router = APIRouter()


@router.get("/", response_model=List[CategoryRead])
async def list_categories(
    session: SessionDep,
    caller: CallerDep,
    params: ShareParamsDep,
) -> List[CategoryRead]:
    categories = await visibility_service.list_visible(session, Category, caller, params)
    return [CategoryRead.model_validate(category) for category in categories]
