"""Async HTTP client for the Gantt read API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from gantt.core.config import settings
from gantt.schemas.gantt import CategoryRead, ProjectRead, TaskRead
from gantt.schemas.share import ShareQueryParams

logger = logging.getLogger(__name__)


def query_params(params: ShareQueryParams) -> dict[str, str]:
    """Encode read parameters the way the list endpoints expect them."""
    encoded: dict[str, str] = {}
    for key, value in params.model_dump(by_alias=True, exclude_none=True, mode="json").items():
        encoded[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return encoded


class GanttApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        share_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if share_token:
            headers["X-Share-Token"] = share_token
        root = (base_url or settings.SERVER_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{root}{settings.API_V1_STR}",
            headers=headers,
            timeout=timeout or settings.CONNECTIVITY_PING_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self) -> "GanttApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_version(self) -> str:
        response = await self._client.get("/version")
        response.raise_for_status()
        return response.json()["version"]

    async def ping(self) -> bool:
        """Reachability ping: any 2xx from the version endpoint means up."""
        try:
            response = await self._client.get("/version")
        except httpx.HTTPError as exc:
            logger.debug("Server ping failed: %s", exc)
            return False
        return response.is_success

    async def _list(self, path: str, params: Optional[ShareQueryParams]) -> list[dict[str, Any]]:
        response = await self._client.get(path, params=query_params(params or ShareQueryParams()))
        response.raise_for_status()
        return response.json()

    async def list_categories(self, params: Optional[ShareQueryParams] = None) -> list[CategoryRead]:
        return [CategoryRead.model_validate(item) for item in await self._list("/categories/", params)]

    async def list_projects(self, params: Optional[ShareQueryParams] = None) -> list[ProjectRead]:
        return [ProjectRead.model_validate(item) for item in await self._list("/projects/", params)]

    async def list_tasks(self, params: Optional[ShareQueryParams] = None) -> list[TaskRead]:
        return [TaskRead.model_validate(item) for item in await self._list("/tasks/", params)]
