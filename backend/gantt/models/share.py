from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


class SharePermission(str, Enum):
    view = "view"
    edit = "edit"


class UserShare(SQLModel, table=True):
    """A resource shared by its owner with one named collaborator."""

    __tablename__ = "user_shares"
    __table_args__ = (
        UniqueConstraint("owner_id", "target_user_id", "item_type", "item_id", name="uq_user_shares_grant"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True, nullable=False)
    target_user_id: int = Field(foreign_key="users.id", index=True, nullable=False)
    item_type: str = Field(nullable=False)
    item_id: int = Field(nullable=False)
    permission: str = Field(default=SharePermission.view.value, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class ShareLink(SQLModel, table=True):
    """An opaque token granting anonymous access to a resource tree."""

    __tablename__ = "share_links"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True, nullable=False)
    token: str = Field(index=True, unique=True, nullable=False)
    item_type: str = Field(nullable=False)
    item_id: int = Field(nullable=False)
    permission: str = Field(default=SharePermission.view.value, nullable=False)
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    revoked_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
