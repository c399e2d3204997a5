"""Share-scoped visibility resolution.

``resolve`` turns a caller, the read parameters and an already loaded share
grant into a :class:`QuerySpec`. It performs no I/O and never reads the
clock, so equal inputs always produce equal specs. Unresolvable requests
(anonymous callers without a token, unknown or revoked tokens, malformed
collaborator filters) produce a spec that matches nothing instead of raising,
so a read never reveals whether a shared resource exists.
"""

from datetime import datetime
from typing import Optional

from gantt.schemas.query import FilterCondition, FilterGroup, SortDir, SortField
from gantt.schemas.share import (
    MATCH_NOTHING,
    Caller,
    QuerySpec,
    ShareGrant,
    ShareQueryParams,
    ShareScope,
    ShareSort,
)

COLLABORATOR_PREFIX = "user:"

SORT_KEYS: dict[ShareSort, tuple[SortField, ...]] = {
    ShareSort.display_order: (SortField(field="display_order"), SortField(field="name")),
    ShareSort.name: (SortField(field="name"),),
    ShareSort.due_date: (SortField(field="due_date"),),
    ShareSort.priority: (
        SortField(field="base_priority", dir=SortDir.desc),
        SortField(field="due_date"),
    ),
    ShareSort.shared_first: (
        SortField(field="is_own"),
        SortField(field="display_order"),
        SortField(field="name"),
    ),
}

# Row identity closes every ordering so repeated reads are stable.
TIE_BREAK = SortField(field="id")


def match_nothing() -> FilterCondition:
    return FilterCondition(field=MATCH_NOTHING, value=True)


def parse_collaborator(raw: Optional[str]) -> Optional[int]:
    """Parse ``"user:<id>"`` (or a bare id) into a user id."""
    if raw is None:
        return None
    value = raw.strip()
    if value.startswith(COLLABORATOR_PREFIX):
        value = value[len(COLLABORATOR_PREFIX):]
    try:
        user_id = int(value)
    except ValueError:
        return None
    return user_id if user_id > 0 else None


def _grant_is_usable(token: str, grant: Optional[ShareGrant], now: Optional[datetime]) -> bool:
    if grant is None:
        return False
    if grant.token is not None and grant.token != token:
        return False
    if grant.expires_at is not None and now is None:
        # Expiry cannot be judged without a clock value; fail closed.
        return False
    return grant.is_active(now) if now is not None else grant.revoked_at is None


def _token_conditions(
    token: str,
    grant: Optional[ShareGrant],
    now: Optional[datetime],
) -> tuple[FilterCondition, ...]:
    if not _grant_is_usable(token, grant, now):
        return (match_nothing(),)
    return (
        FilterCondition(
            field="reachable_from",
            value={"item_type": grant.item_type.value, "item_id": grant.item_id},
        ),
    )


def _user_conditions(
    user_id: int,
    scope: ShareScope,
    collaborator: Optional[str],
) -> tuple[FilterCondition | FilterGroup, ...]:
    own = FilterCondition(field="owner", value=user_id)
    shared = FilterCondition(field="shared_with", value={"user_id": user_id})

    if scope == ShareScope.own:
        return (own,)
    if scope == ShareScope.shared_with_me:
        if collaborator is None:
            return (shared,)
        collaborator_id = parse_collaborator(collaborator)
        if collaborator_id is None:
            return (match_nothing(),)
        return (
            FilterCondition(
                field="shared_with",
                value={"user_id": user_id, "owner_id": collaborator_id},
            ),
        )
    return (FilterGroup(logic="or", conditions=(own, shared)),)


def resolve(
    caller: Caller,
    params: ShareQueryParams,
    *,
    grant: Optional[ShareGrant] = None,
    now: Optional[datetime] = None,
) -> QuerySpec:
    """Compute the visibility predicate and ordering for one read.

    A share token (from the parameters or the caller) selects the ``byToken``
    scope and ignores both ``filterScope`` and the caller's identity. ``grant``
    is the share grant the token was looked up to, or ``None`` when the lookup
    found nothing. ``now`` is required to honour grant expiry.

    Anonymous callers without a token get an empty result for every scope,
    ``all`` included, and so does an explicit ``byToken`` scope with no token.
    """
    order = (*SORT_KEYS[params.sort], TIE_BREAK)
    completed_filter: tuple[FilterCondition, ...] = ()
    if not params.include_completed:
        completed_filter = (FilterCondition(field="completed", value=False),)

    token = params.share_token or caller.share_token
    if token is not None:
        return QuerySpec(
            scope=ShareScope.by_token,
            conditions=(*_token_conditions(token, grant, now), *completed_filter),
            sort=order,
        )

    if caller.user_id is None or params.filter_scope == ShareScope.by_token:
        # byToken without a token has nothing to resolve against.
        return QuerySpec(scope=params.filter_scope, conditions=(match_nothing(),), sort=order)

    return QuerySpec(
        scope=params.filter_scope,
        viewer_id=caller.user_id,
        conditions=(
            *_user_conditions(caller.user_id, params.filter_scope, params.filter_collaborator),
            *completed_filter,
        ),
        sort=order,
    )
