from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from gantt.core.security import decode_access_token
from gantt.db.session import get_session
from gantt.models.user import User
from gantt.schemas.share import Caller, ShareQueryParams, ShareScope, ShareSort

SessionDep = Annotated[AsyncSession, Depends(get_session)]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_caller(
    session: SessionDep,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    share_token: Annotated[Optional[str], Header(alias="X-Share-Token")] = None,
) -> Caller:
    """Resolve the caller to a user id, or to an anonymous share-token holder."""
    share_token = share_token.strip() if share_token and share_token.strip() else None
    if credentials is None:
        return Caller(share_token=share_token)

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Could not validate credentials")

    result = await session.exec(select(User).where(User.id == user_id))
    user = result.one_or_none()
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Could not validate credentials")
    return Caller(user_id=user.id, share_token=share_token)


def get_share_query_params(
    share_token: Annotated[Optional[str], Query(alias="shareToken")] = None,
    filter_scope: Annotated[ShareScope, Query(alias="filterScope")] = ShareScope.all,
    filter_collaborator: Annotated[Optional[str], Query(alias="filterCollaborator")] = None,
    sort: ShareSort = ShareSort.display_order,
    include_completed: Annotated[bool, Query(alias="includeCompleted")] = False,
) -> ShareQueryParams:
    return ShareQueryParams(
        share_token=share_token,
        filter_scope=filter_scope,
        filter_collaborator=filter_collaborator,
        sort=sort,
        include_completed=include_completed,
    )


CallerDep = Annotated[Caller, Depends(get_caller)]
ShareParamsDep = Annotated[ShareQueryParams, Depends(get_share_query_params)]
