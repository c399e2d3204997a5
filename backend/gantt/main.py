import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gantt.api.v1.api import api_router
from gantt.core.config import settings
from gantt.core.security import require_secret_key
from gantt.core.version import __version__
from gantt.db.init_db import init_store
from gantt.db.session import create_session_factory, create_store_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    require_secret_key()
    # Schema maintenance finishes before the first request is accepted.
    report = await init_store(settings.database_url)
    if not report.ok:
        logger.warning("Serving with an incompletely migrated store")
    engine = create_store_engine(settings.database_url)
    app.state.session_factory = create_session_factory(engine)
    try:
        yield
    finally:
        await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    docs_url=f"{settings.API_V1_STR}/docs",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Update with frontend URL(s) in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)
