"""Version endpoint. Clients also poll it to check server reachability."""

from fastapi import APIRouter

from gantt.core.version import __version__

router = APIRouter()


@router.get("/version")
def get_version() -> dict[str, str]:
    """Get application version."""
    return {"version": __version__}
