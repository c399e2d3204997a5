from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from gantt.core.config import settings
from gantt.db import base  # noqa: F401  # ensure models are imported for metadata


def is_sqlite_url(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def ensure_store_directory(url: str) -> None:
    """Create the parent directory of a file-backed SQLite store."""
    if not is_sqlite_url(url):
        return
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_store_engine(url: str | None = None, *, exclusive: bool = False) -> AsyncEngine:
    """Build an engine for *url* (defaults to the configured store).

    ``exclusive`` makes every SQLite transaction take the writer lock up
    front (``BEGIN IMMEDIATE``) so that two maintenance runs against the same
    file serialize instead of interleaving.
    """
    url = url or settings.database_url
    if not is_sqlite_url(url):
        return create_async_engine(url, echo=False, future=True, pool_pre_ping=True)

    engine = create_async_engine(
        url,
        echo=False,
        future=True,
        connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT},
    )
    begin_statement = "BEGIN IMMEDIATE" if exclusive else "BEGIN"

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record) -> None:
        # The driver's implicit BEGIN breaks savepoints and transactional DDL.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql(begin_statement)

    return engine


@asynccontextmanager
async def open_store(url: str | None = None, *, exclusive: bool = False) -> AsyncIterator[AsyncEngine]:
    """Yield an engine for the store and dispose it on every exit path."""
    engine = create_store_engine(url, exclusive=exclusive)
    try:
        yield engine
    finally:
        await engine.dispose()


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.session_factory() as session:
        yield session
