"""
Social graph domain — user-facing routes.

All routes prefixed /api/v1/users (same prefix as the users router, which is
included after this one).

Routes:
  POST   /{user_id}/follow                        Follow or request to follow (50/hour)
  DELETE /{user_id}/follow                        Unfollow
  POST   /{user_id}/block                         Block (cascades follows, requests, close friends)
  DELETE /{user_id}/block                         Unblock
  GET    /follow-requests/incoming                Pending requests to me
  GET    /follow-requests/outgoing                My pending requests
  DELETE /follow-requests/{target_id}             Cancel my pending request
  POST   /follow-requests/{requester_id}/accept   Accept a request to follow me
  POST   /follow-requests/{requester_id}/reject   Reject a request to follow me
  POST   /close-friends                           Bulk add close friends  {ids}
  DELETE /close-friends                           Bulk remove close friends  {ids}
  POST   /close-friends/{user_id}                 Add one close friend
  DELETE /close-friends/{user_id}                 Remove one close friend
  GET    /me/followers                            Who follows me
  GET    /me/following                            Who I follow
  GET    /me/blocked                              My block list
  GET    /me/close-friends                        My close friends
  GET    /me/close-friends/candidates             My following, flagged is_close_friend
  GET    /{user_id}/followers                     Another user's followers (visibility-gated)
  GET    /{user_id}/following                     Another user's following (visibility-gated)

Every listing is cursor-paginated: ``cursor`` is the ``next_cursor`` of the
previous page, ``limit`` is clamped to [1, 100].

Note: /me/... routes must be registered before /{user_id}/... routes of the same
shape so Starlette's literal-path matching takes precedence.
"""
from fastapi import APIRouter, Body, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.pagination import CursorPage
from app.rate_limit import FOLLOW_RATE_LIMIT, limiter
from app.social_graph import controller as ctrl
from app.social_graph.schemas import (
    BlockResponse,
    CancelRequestResponse,
    CloseFriendCandidateItem,
    CloseFriendResponse,
    CloseFriendsAddResponse,
    CloseFriendsRemoveResponse,
    CloseFriendsRequest,
    FollowListItem,
    FollowRequestDecision,
    FollowRequestItem,
    FollowResponse,
    SocialRelationItem,
    UnblockResponse,
)
from shared.models.user import CurrentUser

router = APIRouter(prefix="/users", tags=["social-graph"])


def _cursor() -> int | None:
    return Query(None, ge=1, description="next_cursor from the previous page")


def _limit() -> int | None:
    # Out-of-range values are clamped by the pagination layer, not rejected.
    return Query(None, description="Items per page (clamped to 1..100, default 20)")


# ── Follow ─────────────────────────────────────────────────────────────────────

@router.post(
    "/{user_id}/follow",
    response_model=FollowResponse,
    status_code=status.HTTP_200_OK,
    summary="Follow a user",
    description=(
        "Public accounts are followed immediately; private accounts receive a follow "
        "request. Following someone you already follow is a no-op. "
        "Rate-limited to 50 follow actions per hour."
    ),
)
@limiter.limit(FOLLOW_RATE_LIMIT)
async def follow_user(
    request: Request,
    user_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowResponse:
    return await ctrl.follow_user(session, current_user.id, user_id)


@router.delete(
    "/{user_id}/follow",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unfollow a user",
)
async def unfollow_user(
    user_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> None:
    await ctrl.unfollow_user(session, current_user.id, user_id)


# ── Block ──────────────────────────────────────────────────────────────────────

@router.post(
    "/{user_id}/block",
    response_model=BlockResponse,
    status_code=status.HTTP_200_OK,
    summary="Block a user",
    description=(
        "Removes follow edges, follow requests and close-friend entries in both "
        "directions. Blocking an already-blocked user returns `created=false`."
    ),
)
async def block_user(
    user_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> BlockResponse:
    return await ctrl.block_user(session, current_user.id, user_id)


@router.delete(
    "/{user_id}/block",
    response_model=UnblockResponse,
    summary="Unblock a user",
    description="Previously removed follows and close-friend entries are not restored.",
)
async def unblock_user(
    user_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> UnblockResponse:
    return await ctrl.unblock_user(session, current_user.id, user_id)


# ── Follow requests ────────────────────────────────────────────────────────────

@router.get(
    "/follow-requests/incoming",
    response_model=CursorPage[FollowRequestItem],
    summary="List pending requests to follow me",
)
async def incoming_requests(
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[FollowRequestItem]:
    return await ctrl.list_incoming_requests(session, current_user.id, cursor, limit)


@router.get(
    "/follow-requests/outgoing",
    response_model=CursorPage[FollowRequestItem],
    summary="List my pending follow requests",
)
async def outgoing_requests(
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[FollowRequestItem]:
    return await ctrl.list_outgoing_requests(session, current_user.id, cursor, limit)


@router.delete(
    "/follow-requests/{target_id}",
    response_model=CancelRequestResponse,
    summary="Cancel my pending follow request",
    description="Always succeeds; `removed` tells whether a pending request existed.",
)
async def cancel_request(
    target_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CancelRequestResponse:
    return await ctrl.cancel_request(session, current_user.id, target_id)


@router.post(
    "/follow-requests/{requester_id}/accept",
    response_model=FollowRequestDecision,
    summary="Accept a pending follow request",
)
async def accept_request(
    requester_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowRequestDecision:
    return await ctrl.accept_request(session, current_user.id, requester_id)


@router.post(
    "/follow-requests/{requester_id}/reject",
    response_model=FollowRequestDecision,
    summary="Reject a pending follow request",
)
async def reject_request(
    requester_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FollowRequestDecision:
    return await ctrl.reject_request(session, current_user.id, requester_id)


# ── Close friends ──────────────────────────────────────────────────────────────

@router.post(
    "/close-friends",
    response_model=CloseFriendsAddResponse,
    summary="Add close friends in bulk",
    description=(
        "Duplicates and your own id are ignored. Users you have a block with "
        "(either direction) are skipped. `created` counts new entries only."
    ),
)
async def add_close_friends(
    body: CloseFriendsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CloseFriendsAddResponse:
    return await ctrl.add_close_friends(session, current_user.id, body.ids)


@router.delete(
    "/close-friends",
    response_model=CloseFriendsRemoveResponse,
    summary="Remove close friends in bulk",
)
async def remove_close_friends(
    body: CloseFriendsRequest = Body(...),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CloseFriendsRemoveResponse:
    return await ctrl.remove_close_friends(session, current_user.id, body.ids)


@router.post(
    "/close-friends/{user_id}",
    response_model=CloseFriendResponse,
    summary="Add one close friend",
)
async def add_close_friend(
    user_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CloseFriendResponse:
    return await ctrl.add_close_friend(session, current_user.id, user_id)


@router.delete(
    "/close-friends/{user_id}",
    response_model=CloseFriendsRemoveResponse,
    summary="Remove one close friend",
)
async def remove_close_friend(
    user_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CloseFriendsRemoveResponse:
    return await ctrl.remove_close_friend(session, current_user.id, user_id)


# ── My lists (must be registered before /{user_id}/... to avoid mis-routing) ──

@router.get(
    "/me/followers",
    response_model=CursorPage[FollowListItem],
    summary="List users who follow me",
)
async def my_followers(
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[FollowListItem]:
    return await ctrl.list_followers(session, current_user.id, current_user.id, cursor, limit)


@router.get(
    "/me/following",
    response_model=CursorPage[FollowListItem],
    summary="List users I follow",
)
async def my_following(
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[FollowListItem]:
    return await ctrl.list_following(session, current_user.id, current_user.id, cursor, limit)


@router.get(
    "/me/blocked",
    response_model=CursorPage[SocialRelationItem],
    summary="List users I have blocked",
)
async def my_blocked(
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[SocialRelationItem]:
    return await ctrl.list_blocked(session, current_user.id, cursor, limit)


@router.get(
    "/me/close-friends",
    response_model=CursorPage[SocialRelationItem],
    summary="List my close friends",
)
async def my_close_friends(
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[SocialRelationItem]:
    return await ctrl.list_close_friends(session, current_user.id, cursor, limit)


@router.get(
    "/me/close-friends/candidates",
    response_model=CursorPage[CloseFriendCandidateItem],
    summary="List people I follow, flagged with is_close_friend",
)
async def my_close_friend_candidates(
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[CloseFriendCandidateItem]:
    return await ctrl.list_close_friend_candidates(session, current_user.id, cursor, limit)


# ── Another user's lists ───────────────────────────────────────────────────────

@router.get(
    "/{user_id}/followers",
    response_model=CursorPage[FollowListItem],
    summary="View another user's followers list",
    description=(
        "Returns 403 for a private account you do not follow, and an empty page "
        "if the user has blocked you."
    ),
)
async def user_followers(
    user_id: int = Path(..., ge=1),
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[FollowListItem]:
    return await ctrl.view_user_followers(session, user_id, current_user.id, cursor, limit)


@router.get(
    "/{user_id}/following",
    response_model=CursorPage[FollowListItem],
    summary="View another user's following list",
    description=(
        "Returns 403 for a private account you do not follow, and an empty page "
        "if the user has blocked you."
    ),
)
async def user_following(
    user_id: int = Path(..., ge=1),
    cursor: int | None = _cursor(),
    limit: int | None = _limit(),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> CursorPage[FollowListItem]:
    return await ctrl.view_user_following(session, user_id, current_user.id, cursor, limit)
