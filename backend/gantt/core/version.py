"""Version utilities for reading application version."""

from pathlib import Path


def get_version() -> str:
    """Read version from the VERSION file at the repository root."""
    # Installed/container layout: /app/gantt/core/version.py -> /app/VERSION
    version_file = Path(__file__).parent.parent.parent / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()

    # Source checkout: backend/gantt/core/version.py -> ../../../../VERSION
    version_file = Path(__file__).parent.parent.parent.parent / "VERSION"
    try:
        return version_file.read_text().strip()
    except FileNotFoundError:
        return "0.0.0"


__version__ = get_version()
