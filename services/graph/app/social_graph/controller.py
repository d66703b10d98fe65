"""
Social graph domain — request orchestration.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.pagination import CursorPage, Page
from app.social_graph import service as svc
from app.social_graph.constants import VisibilityReason
from app.social_graph.schemas import (
    BlockResponse,
    CancelRequestResponse,
    CloseFriendCandidateItem,
    CloseFriendResponse,
    CloseFriendsAddResponse,
    CloseFriendsRemoveResponse,
    FollowCounts,
    FollowListItem,
    FollowRequestDecision,
    FollowRequestItem,
    FollowResponse,
    GraphCounters,
    RecountResponse,
    SocialRelationItem,
    SocialUserRef,
    UnblockResponse,
    UserRemovalResponse,
)
from app.social_graph.visibility import gate_relationship_list
from app.users.schemas import ViewerFollowRequest, ViewerRelation
from app.users.service import get_user

ListFn = Callable[..., Awaitable[Page]]


def _user_ref(user) -> SocialUserRef:
    return SocialUserRef.model_validate(user)


def viewer_relation(relations: svc.ViewerRelations, user_id: int) -> ViewerRelation:
    request = relations.requests.get(user_id)
    return ViewerRelation(
        is_following=user_id in relations.following,
        is_followed_by=user_id in relations.followed_by,
        follow_request=(
            ViewerFollowRequest(id=request[0], status=request[1]) if request else None
        ),
    )


# ── Follow ─────────────────────────────────────────────────────────────────────

async def follow_user(session: AsyncSession, actor_id: int, target_id: int) -> FollowResponse:
    outcome = await svc.follow(session, actor_id, target_id)
    return FollowResponse(outcome=outcome)


async def unfollow_user(session: AsyncSession, actor_id: int, target_id: int) -> None:
    await svc.unfollow(session, actor_id, target_id)


# ── Follow requests ────────────────────────────────────────────────────────────

async def cancel_request(
    session: AsyncSession, requester_id: int, target_id: int
) -> CancelRequestResponse:
    removed = await svc.cancel_request(session, requester_id, target_id)
    return CancelRequestResponse(removed=removed)


async def accept_request(
    session: AsyncSession, target_id: int, requester_id: int
) -> FollowRequestDecision:
    return FollowRequestDecision(status=await svc.accept_request(session, target_id, requester_id))


async def reject_request(
    session: AsyncSession, target_id: int, requester_id: int
) -> FollowRequestDecision:
    return FollowRequestDecision(status=await svc.reject_request(session, target_id, requester_id))


async def _request_page(
    session: AsyncSession, list_fn: ListFn, user_id: int, cursor: int | None, limit: int | None
) -> CursorPage[FollowRequestItem]:
    page = await list_fn(session, user_id, cursor=cursor, limit=limit)
    items = [
        FollowRequestItem(id=r.id, user=_user_ref(u), status=r.status, created_at=r.created_at)
        for r, u in page.rows
    ]
    return CursorPage[FollowRequestItem](
        items=items, next_cursor=page.next_cursor, has_more=page.has_more
    )


async def list_incoming_requests(
    session: AsyncSession, user_id: int, cursor: int | None, limit: int | None
) -> CursorPage[FollowRequestItem]:
    return await _request_page(session, svc.list_incoming_requests, user_id, cursor, limit)


async def list_outgoing_requests(
    session: AsyncSession, user_id: int, cursor: int | None, limit: int | None
) -> CursorPage[FollowRequestItem]:
    return await _request_page(session, svc.list_outgoing_requests, user_id, cursor, limit)


# ── Block ──────────────────────────────────────────────────────────────────────

async def block_user(session: AsyncSession, actor_id: int, target_id: int) -> BlockResponse:
    edge, created = await svc.block(session, actor_id, target_id)
    target = await get_user(session, target_id)
    return BlockResponse(
        id=edge.id, user=_user_ref(target), created=created, created_at=edge.created_at
    )


async def unblock_user(session: AsyncSession, actor_id: int, target_id: int) -> UnblockResponse:
    return UnblockResponse(removed=await svc.unblock(session, actor_id, target_id))


# ── Close friends ──────────────────────────────────────────────────────────────

async def add_close_friends(
    session: AsyncSession, owner_id: int, ids: list[int]
) -> CloseFriendsAddResponse:
    result = await svc.add_close_friends(session, owner_id, ids)
    return CloseFriendsAddResponse(
        created=result.created,
        requested=result.requested,
        items=[_user_ref(u) for u in result.items],
    )


async def remove_close_friends(
    session: AsyncSession, owner_id: int, ids: list[int]
) -> CloseFriendsRemoveResponse:
    return CloseFriendsRemoveResponse(removed=await svc.remove_close_friends(session, owner_id, ids))


async def add_close_friend(
    session: AsyncSession, owner_id: int, friend_id: int
) -> CloseFriendResponse:
    friend, created = await svc.add_close_friend(session, owner_id, friend_id)
    return CloseFriendResponse(user=_user_ref(friend), created=created)


async def remove_close_friend(
    session: AsyncSession, owner_id: int, friend_id: int
) -> CloseFriendsRemoveResponse:
    return CloseFriendsRemoveResponse(
        removed=await svc.remove_close_friends(session, owner_id, [friend_id])
    )


async def list_close_friend_candidates(
    session: AsyncSession, user_id: int, cursor: int | None, limit: int | None
) -> CursorPage[CloseFriendCandidateItem]:
    page = await svc.list_close_friend_candidates(session, user_id, cursor=cursor, limit=limit)
    items = [
        CloseFriendCandidateItem(id=f.id, user=_user_ref(u), is_close_friend=bool(is_cf))
        for f, u, is_cf in page.rows
    ]
    return CursorPage[CloseFriendCandidateItem](
        items=items, next_cursor=page.next_cursor, has_more=page.has_more
    )


# ── Relation lists ─────────────────────────────────────────────────────────────

async def _relation_page(
    session: AsyncSession, list_fn: ListFn, user_id: int, cursor: int | None, limit: int | None
) -> CursorPage[SocialRelationItem]:
    page = await list_fn(session, user_id, cursor=cursor, limit=limit)
    items = [
        SocialRelationItem(id=edge.id, user=_user_ref(u), created_at=edge.created_at)
        for edge, u in page.rows
    ]
    return CursorPage[SocialRelationItem](
        items=items, next_cursor=page.next_cursor, has_more=page.has_more
    )


async def list_blocked(
    session: AsyncSession, user_id: int, cursor: int | None, limit: int | None
) -> CursorPage[SocialRelationItem]:
    return await _relation_page(session, svc.list_blocked, user_id, cursor, limit)


async def list_close_friends(
    session: AsyncSession, user_id: int, cursor: int | None, limit: int | None
) -> CursorPage[SocialRelationItem]:
    return await _relation_page(session, svc.list_close_friends, user_id, cursor, limit)


# ── Follow lists ───────────────────────────────────────────────────────────────

async def _follow_page(
    session: AsyncSession,
    list_fn: ListFn,
    user_id: int,
    viewer_id: int,
    cursor: int | None,
    limit: int | None,
) -> CursorPage[FollowListItem]:
    page = await list_fn(session, user_id, cursor=cursor, limit=limit)
    relations = await svc.viewer_relations(session, viewer_id, [u.id for _, u in page.rows])
    items = [
        FollowListItem(
            id=f.id,
            user=_user_ref(u),
            counts=FollowCounts(followers=u.followers_count, following=u.following_count),
            created_at=f.created_at,
            viewer=viewer_relation(relations, u.id),
            is_me=u.id == viewer_id,
        )
        for f, u in page.rows
    ]
    return CursorPage[FollowListItem](
        items=items, next_cursor=page.next_cursor, has_more=page.has_more
    )


async def list_followers(
    session: AsyncSession, user_id: int, viewer_id: int, cursor: int | None, limit: int | None
) -> CursorPage[FollowListItem]:
    return await _follow_page(session, svc.list_followers, user_id, viewer_id, cursor, limit)


async def list_following(
    session: AsyncSession, user_id: int, viewer_id: int, cursor: int | None, limit: int | None
) -> CursorPage[FollowListItem]:
    return await _follow_page(session, svc.list_following, user_id, viewer_id, cursor, limit)


async def view_user_followers(
    session: AsyncSession, user_id: int, viewer_id: int, cursor: int | None, limit: int | None
) -> CursorPage[FollowListItem]:
    """Another user's followers — empty page if they blocked the viewer, 403 if private."""
    visibility = await gate_relationship_list(session, viewer_id, user_id)
    if visibility.reason is VisibilityReason.BLOCKED:
        return CursorPage[FollowListItem](items=[])
    return await list_followers(session, user_id, viewer_id, cursor, limit)


async def view_user_following(
    session: AsyncSession, user_id: int, viewer_id: int, cursor: int | None, limit: int | None
) -> CursorPage[FollowListItem]:
    """Another user's following — empty page if they blocked the viewer, 403 if private."""
    visibility = await gate_relationship_list(session, viewer_id, user_id)
    if visibility.reason is VisibilityReason.BLOCKED:
        return CursorPage[FollowListItem](items=[])
    return await list_following(session, user_id, viewer_id, cursor, limit)


# ── Admin ──────────────────────────────────────────────────────────────────────

async def admin_recount(session: AsyncSession, user_id: int) -> RecountResponse:
    before, after = await svc.reconcile_counters(session, user_id)
    return RecountResponse(
        user_id=user_id,
        before=GraphCounters(**before),
        after=GraphCounters(**after),
        drifted=before != after,
    )


async def admin_delete_user(session: AsyncSession, user_id: int) -> UserRemovalResponse:
    removed = await svc.delete_user(session, user_id)
    return UserRemovalResponse(user_id=user_id, removed=removed)
