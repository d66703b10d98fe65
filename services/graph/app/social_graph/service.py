"""
Social graph domain — pure business logic (zero FastAPI imports).

State rules:
  follow:         cannot follow self; no follow while a block exists in either
                  direction; private target ⇒ follow request instead of edge
  unfollow:       cannot unfollow self; must currently follow
  follow request: PENDING → ACCEPTED | REJECTED (terminal); cancel deletes a
                  PENDING request; a new follow() resets a terminal request
  block:          cannot block self; removes follows, requests and close-friend
                  entries in both directions
  close friends:  only existing users with no block in either direction

Every write goes through app.social_graph.edges so each edge change and its
counter change land in the same transaction.

Actions that check block state before writing an edge first lock both user
rows (edges.lock_users), so a block and a follow on the same pair serialise.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    CannotBlockSelf,
    CannotCloseFriendSelf,
    CannotFollowSelf,
    CannotUnfollowSelf,
    CloseFriendUsersNotFound,
    ConflictError,
    EmptyCloseFriendsInput,
    FollowRequestNotFound,
    FollowingBlockedUser,
    NotFollowing,
    UserHiddenByBlock,
    UserNotFound,
)
from app.pagination import Page, fetch_page
from app.social_graph import edges
from app.social_graph.constants import FollowOutcome, FollowRequestStatus
from app.social_graph.edges import BLOCK, CLOSE_FRIEND, FOLLOW, FOLLOW_REQUEST, EdgeKind
from app.social_graph.models import Block, CloseFriend, Follow, FollowRequest
from app.users.models import User
from app.users.service import get_user

logger = logging.getLogger(__name__)


# ── Internal helpers ───────────────────────────────────────────────────────────

async def _block_state(session: AsyncSession, actor_id: int, target_id: int) -> tuple[bool, bool]:
    """Return (target blocked actor, actor blocked target) in one round trip."""
    row = (
        await session.execute(
            sa.select(
                sa.exists().where(BLOCK.pair(target_id, actor_id)).label("blocked_by_target"),
                sa.exists().where(BLOCK.pair(actor_id, target_id)).label("blocking_target"),
            )
        )
    ).one()
    return bool(row.blocked_by_target), bool(row.blocking_target)


def _blocked_either_way(owner_id: int) -> sa.ColumnElement[bool]:
    """Correlated predicate on User: a block exists between owner_id and User.id."""
    return sa.or_(
        sa.exists().where(Block.blocker_id == owner_id, Block.blocked_id == User.id),
        sa.exists().where(Block.blocker_id == User.id, Block.blocked_id == owner_id),
    )


def _unique_ids(ids: Iterable[int], exclude: int) -> list[int]:
    """Dedupe preserving order, dropping ``exclude``."""
    return list(dict.fromkeys(i for i in ids if i != exclude))


# ── Follow ─────────────────────────────────────────────────────────────────────

async def follow(session: AsyncSession, actor_id: int, target_id: int) -> FollowOutcome:
    if actor_id == target_id:
        raise CannotFollowSelf()
    await edges.lock_users(session, actor_id, target_id)
    target = await get_user(session, target_id)

    blocked_by_target, blocking_target = await _block_state(session, actor_id, target_id)
    if blocked_by_target:
        raise UserHiddenByBlock()
    if blocking_target:
        raise FollowingBlockedUser()

    if await edges.edge_exists(session, FOLLOW, actor_id, target_id):
        return FollowOutcome.ALREADY_FOLLOWING

    if target.is_private:
        request_id = await edges.upsert_pending_request(session, actor_id, target_id)
        logger.info("Follow request %s: %s -> %s pending", request_id, actor_id, target_id)
        return FollowOutcome.REQUEST_CREATED

    result = await edges.insert_edge(session, FOLLOW, actor_id, target_id)
    if not result.created:
        return FollowOutcome.ALREADY_FOLLOWING
    # A leftover request for a now-public account has nothing left to decide.
    await edges.delete_requests(session, actor_id, target_id)
    return FollowOutcome.FOLLOWED


async def unfollow(session: AsyncSession, actor_id: int, target_id: int) -> None:
    if actor_id == target_id:
        raise CannotUnfollowSelf()
    if not await edges.delete_edge(session, FOLLOW, actor_id, target_id):
        raise NotFollowing()


# ── Follow requests ────────────────────────────────────────────────────────────

async def cancel_request(session: AsyncSession, requester_id: int, target_id: int) -> bool:
    """Delete the requester's PENDING request; True if one existed."""
    removed = await edges.delete_requests(
        session, requester_id, target_id, status=FollowRequestStatus.PENDING
    )
    return removed > 0


async def accept_request(
    session: AsyncSession, target_id: int, requester_id: int
) -> FollowRequestStatus:
    await edges.lock_users(session, target_id, requester_id)
    request_id = await edges.transition_request(
        session, requester_id, target_id, to_status=FollowRequestStatus.ACCEPTED
    )
    if request_id is None:
        raise FollowRequestNotFound()
    result = await edges.insert_edge(session, FOLLOW, requester_id, target_id)
    logger.info(
        "Follow request %s accepted: %s -> %s (edge %s)",
        request_id, requester_id, target_id, result.outcome.value,
    )
    return FollowRequestStatus.ACCEPTED


async def reject_request(
    session: AsyncSession, target_id: int, requester_id: int
) -> FollowRequestStatus:
    request_id = await edges.transition_request(
        session, requester_id, target_id, to_status=FollowRequestStatus.REJECTED
    )
    if request_id is None:
        raise FollowRequestNotFound()
    return FollowRequestStatus.REJECTED


# ── Block ──────────────────────────────────────────────────────────────────────

async def block(session: AsyncSession, actor_id: int, target_id: int) -> tuple[Block, bool]:
    """Block target; returns (edge, created).  Re-blocking is a no-op."""
    if actor_id == target_id:
        raise CannotBlockSelf()
    await edges.lock_users(session, actor_id, target_id)
    await get_user(session, target_id)

    result = await edges.insert_edge(session, BLOCK, actor_id, target_id)
    if result.created:
        for source_id, other_id in ((actor_id, target_id), (target_id, actor_id)):
            await edges.delete_edge(session, FOLLOW, source_id, other_id)
            await edges.delete_requests(session, source_id, other_id)
            await edges.delete_edge(session, CLOSE_FRIEND, source_id, other_id)
        logger.info("User %s blocked %s", actor_id, target_id)

    edge = await edges.get_edge(session, BLOCK, actor_id, target_id)
    if edge is None:
        # A concurrent unblock removed the row between insert and read.
        raise ConflictError()
    return edge, result.created


async def unblock(session: AsyncSession, actor_id: int, target_id: int) -> bool:
    """Remove the block; False when there was none.  Nothing is restored."""
    return await edges.delete_edge(session, BLOCK, actor_id, target_id)


# ── Close friends ──────────────────────────────────────────────────────────────

@dataclass
class CloseFriendsAddResult:
    created: int
    requested: int
    items: list[User] = field(default_factory=list)


async def _eligible_close_friends(
    session: AsyncSession, owner_id: int, friend_ids: Sequence[int]
) -> list[User]:
    """Existing users among ``friend_ids`` with no block in either direction."""
    result = await session.execute(
        sa.select(User)
        .where(User.id.in_(friend_ids), sa.not_(_blocked_either_way(owner_id)))
        .order_by(User.id)
    )
    return list(result.scalars().all())


async def add_close_friends(
    session: AsyncSession, owner_id: int, friend_ids: Iterable[int]
) -> CloseFriendsAddResult:
    unique_ids = _unique_ids(friend_ids, owner_id)
    if not unique_ids:
        raise EmptyCloseFriendsInput()
    await edges.lock_users(session, owner_id, *unique_ids)
    eligible = await _eligible_close_friends(session, owner_id, unique_ids)
    if not eligible:
        raise CloseFriendUsersNotFound()
    created = await edges.insert_edges(session, CLOSE_FRIEND, owner_id, [u.id for u in eligible])
    return CloseFriendsAddResult(created=len(created), requested=len(unique_ids), items=eligible)


async def add_close_friend(
    session: AsyncSession, owner_id: int, friend_id: int
) -> tuple[User, bool]:
    if owner_id == friend_id:
        raise CannotCloseFriendSelf()
    await edges.lock_users(session, owner_id, friend_id)
    eligible = await _eligible_close_friends(session, owner_id, [friend_id])
    if not eligible:
        raise UserNotFound()
    result = await edges.insert_edge(session, CLOSE_FRIEND, owner_id, friend_id)
    return eligible[0], result.created


async def remove_close_friends(
    session: AsyncSession, owner_id: int, friend_ids: Iterable[int]
) -> int:
    """Remove entries; returns how many existed.  Empty input removes nothing."""
    unique_ids = _unique_ids(friend_ids, owner_id)
    if not unique_ids:
        return 0
    removed = await edges.delete_edges(session, CLOSE_FRIEND, owner_id, unique_ids)
    return len(removed)


# ── Listings ───────────────────────────────────────────────────────────────────

async def _list_edges(
    session: AsyncSession,
    kind: EdgeKind,
    *,
    anchor: str,
    other: str,
    anchor_id: int,
    cursor: int | None,
    limit: int | None,
    where: Sequence[sa.ColumnElement[bool]] = (),
    extra_columns: Sequence[sa.ColumnElement] = (),
) -> Page:
    """Page of (edge, other-endpoint User, *extra_columns) rows for ``anchor_id``."""
    model = kind.model
    stmt = (
        sa.select(model, User, *extra_columns)
        .join(User, User.id == getattr(model, other))
        .where(getattr(model, anchor) == anchor_id, *where)
    )
    return await fetch_page(session, stmt, model.id, cursor=cursor, limit=limit)


async def list_followers(
    session: AsyncSession, user_id: int, *, cursor: int | None, limit: int | None
) -> Page:
    return await _list_edges(
        session, FOLLOW, anchor="following_id", other="follower_id",
        anchor_id=user_id, cursor=cursor, limit=limit,
    )


async def list_following(
    session: AsyncSession, user_id: int, *, cursor: int | None, limit: int | None
) -> Page:
    return await _list_edges(
        session, FOLLOW, anchor="follower_id", other="following_id",
        anchor_id=user_id, cursor=cursor, limit=limit,
    )


async def list_blocked(
    session: AsyncSession, user_id: int, *, cursor: int | None, limit: int | None
) -> Page:
    return await _list_edges(
        session, BLOCK, anchor="blocker_id", other="blocked_id",
        anchor_id=user_id, cursor=cursor, limit=limit,
    )


async def list_close_friends(
    session: AsyncSession, user_id: int, *, cursor: int | None, limit: int | None
) -> Page:
    return await _list_edges(
        session, CLOSE_FRIEND, anchor="owner_id", other="friend_id",
        anchor_id=user_id, cursor=cursor, limit=limit,
    )


async def list_close_friend_candidates(
    session: AsyncSession, user_id: int, *, cursor: int | None, limit: int | None
) -> Page:
    """The owner's following, each row flagged with ``is_close_friend``."""
    is_close_friend = (
        sa.exists()
        .where(CloseFriend.owner_id == user_id, CloseFriend.friend_id == User.id)
        .label("is_close_friend")
    )
    return await _list_edges(
        session, FOLLOW, anchor="follower_id", other="following_id",
        anchor_id=user_id, cursor=cursor, limit=limit,
        extra_columns=[is_close_friend],
    )


async def list_incoming_requests(
    session: AsyncSession, user_id: int, *, cursor: int | None, limit: int | None
) -> Page:
    return await _list_edges(
        session, FOLLOW_REQUEST, anchor="target_id", other="requester_id",
        anchor_id=user_id, cursor=cursor, limit=limit,
        where=[FollowRequest.status == FollowRequestStatus.PENDING],
    )


async def list_outgoing_requests(
    session: AsyncSession, user_id: int, *, cursor: int | None, limit: int | None
) -> Page:
    return await _list_edges(
        session, FOLLOW_REQUEST, anchor="requester_id", other="target_id",
        anchor_id=user_id, cursor=cursor, limit=limit,
        where=[FollowRequest.status == FollowRequestStatus.PENDING],
    )


# ── Viewer relations (batched) ─────────────────────────────────────────────────

@dataclass
class ViewerRelations:
    """The viewer's edges towards a set of users, loaded in three queries."""

    following: set[int] = field(default_factory=set)
    followed_by: set[int] = field(default_factory=set)
    requests: dict[int, tuple[int, FollowRequestStatus]] = field(default_factory=dict)


async def viewer_relations(
    session: AsyncSession, viewer_id: int, user_ids: Sequence[int]
) -> ViewerRelations:
    relations = ViewerRelations()
    if not user_ids:
        return relations

    result = await session.execute(
        sa.select(Follow.following_id).where(
            Follow.follower_id == viewer_id, Follow.following_id.in_(user_ids)
        )
    )
    relations.following = set(result.scalars().all())

    result = await session.execute(
        sa.select(Follow.follower_id).where(
            Follow.following_id == viewer_id, Follow.follower_id.in_(user_ids)
        )
    )
    relations.followed_by = set(result.scalars().all())

    result = await session.execute(
        sa.select(FollowRequest.target_id, FollowRequest.id, FollowRequest.status).where(
            FollowRequest.requester_id == viewer_id, FollowRequest.target_id.in_(user_ids)
        )
    )
    relations.requests = {target: (req_id, req_status) for target, req_id, req_status in result.all()}
    return relations


# ── User removal ───────────────────────────────────────────────────────────────

async def delete_user(session: AsyncSession, user_id: int) -> dict[str, int]:
    """Remove a user and every edge touching them; returns edges removed per relation.

    Foreign keys RESTRICT user deletion, so this is the path that deletes a
    user row while keeping everyone else's counters equal to their edge sets.
    """
    await edges.lock_users(session, user_id)
    await get_user(session, user_id)
    removed = await edges.detach_user(session, user_id)
    users = User.__table__
    await session.execute(sa.delete(users).where(users.c.id == user_id))
    logger.info("Deleted user %s from the graph: %s", user_id, removed)
    return removed


# ── Counter reconciliation ─────────────────────────────────────────────────────

async def reconcile_counters(session: AsyncSession, user_id: int) -> tuple[dict[str, int], dict[str, int]]:
    """Recompute a user's counters from the edge sets; returns (before, after)."""
    user = await get_user(session, user_id)
    before = {kind_counter: getattr(user, kind_counter) for kind_counter in _counter_columns()}
    after = await edges.recount(session, user_id)
    drifted = {k: (before[k], after[k]) for k in after if before[k] != after[k]}
    if drifted:
        logger.warning("Reconciled drifted counters for user %s: %s", user_id, drifted)
    return before, after


def _counter_columns() -> list[str]:
    columns: list[str] = []
    for kind in edges.COUNTED_KINDS:
        columns.extend(c for c in (kind.source_counter, kind.target_counter) if c)
    return columns
