from fastapi import APIRouter

from gantt.api.v1.endpoints import categories, projects, tasks, version

api_router = APIRouter()
api_router.include_router(version.router, tags=["version"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
