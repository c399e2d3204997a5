"""
Shared test utilities and factories.

Re-exports all factory functions for convenient imports:
    from gantt.testing import create_user, create_task, get_auth_headers
"""

from gantt.testing.factories import (
    create_category,
    create_project,
    create_share_link,
    create_task,
    create_user,
    create_user_share,
    get_auth_headers,
    get_auth_token,
    utcnow,
)

__all__ = [
    "create_category",
    "create_project",
    "create_share_link",
    "create_task",
    "create_user",
    "create_user_share",
    "get_auth_headers",
    "get_auth_token",
    "utcnow",
]
