"""
Social graph domain — edge store and counter ledger.

One primitive serves every relation type.  An ``EdgeKind`` names the table, the
two endpoint columns and the user counters that mirror the edge set; the
functions below write edges and counters together so callers never touch a
counter directly.

Expected contention is a value, not an exception: inserts go through
``INSERT … ON CONFLICT DO NOTHING RETURNING`` and report
``InsertOutcome.CREATED`` or ``InsertOutcome.ALREADY_EXISTS``.  The loser of
two concurrent identical inserts blocks on the winner's row lock and then sees
ALREADY_EXISTS, so counters are incremented exactly once.

Nothing here commits.  All statements run inside the caller's session
transaction (one per request, see app.database.get_db).
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.social_graph.constants import FollowRequestStatus
from app.social_graph.models import Block, CloseFriend, Follow, FollowRequest
from app.users.models import User

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InsertOutcome(str, enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class InsertResult:
    outcome: InsertOutcome
    edge_id: int | None = None

    @property
    def created(self) -> bool:
        return self.outcome is InsertOutcome.CREATED


@dataclass(frozen=True)
class EdgeKind:
    """A directed relation and the counters that track it.

    ``source_counter`` lives on the source user (e.g. following_count on the
    follower), ``target_counter`` on the target user.  Either may be None.
    """

    name: str
    model: type
    source: str
    target: str
    source_counter: str | None = None
    target_counter: str | None = None

    @property
    def table(self) -> sa.Table:
        return self.model.__table__

    @property
    def source_col(self) -> sa.Column:
        return self.table.c[self.source]

    @property
    def target_col(self) -> sa.Column:
        return self.table.c[self.target]

    def pair(self, source_id: int, target_id: int) -> sa.ColumnElement[bool]:
        return sa.and_(self.source_col == source_id, self.target_col == target_id)


FOLLOW = EdgeKind(
    "follow", Follow, "follower_id", "following_id",
    source_counter="following_count", target_counter="followers_count",
)
BLOCK = EdgeKind("block", Block, "blocker_id", "blocked_id", source_counter="blocked_count")
CLOSE_FRIEND = EdgeKind(
    "close_friend", CloseFriend, "owner_id", "friend_id", source_counter="close_friends_count"
)
# Requests carry no counter; they share the store primitives only.
FOLLOW_REQUEST = EdgeKind("follow_request", FollowRequest, "requester_id", "target_id")

COUNTED_KINDS: tuple[EdgeKind, ...] = (FOLLOW, BLOCK, CLOSE_FRIEND)


# ── Dialect-specific upsert builder ───────────────────────────────────────────

def _insert(session: AsyncSession, table: sa.Table):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Unsupported database dialect for graph upserts: {dialect}")


# ── Counter ledger ────────────────────────────────────────────────────────────

async def bump_counter(session: AsyncSession, user_id: int, column: str, delta: int) -> bool:
    """Atomically add ``delta`` to ``users.<column>``.

    Decrements are conditioned on the counter holding at least ``-delta`` so a
    counter can never go negative.  A miss means the ledger has drifted from
    the edge set; it is logged as an error (and left for reconcile) instead of
    being clamped.
    """
    if delta == 0:
        return True
    users = User.__table__
    col = users.c[column]
    stmt = sa.update(users).where(users.c.id == user_id)
    if delta < 0:
        stmt = stmt.where(col >= -delta)
    stmt = stmt.values({column: col + delta})
    result = await session.execute(stmt)
    if result.rowcount == 0:
        logger.error(
            "Counter drift: cannot apply %+d to users.%s for user %s", delta, column, user_id
        )
        return False
    return True


async def _apply_counters(
    session: AsyncSession, kind: EdgeKind, source_id: int, target_id: int, sign: int
) -> None:
    if kind.source_counter:
        await bump_counter(session, source_id, kind.source_counter, sign)
    if kind.target_counter:
        await bump_counter(session, target_id, kind.target_counter, sign)


# ── Edge store ────────────────────────────────────────────────────────────────

async def edge_exists(session: AsyncSession, kind: EdgeKind, source_id: int, target_id: int) -> bool:
    result = await session.execute(sa.select(sa.exists().where(kind.pair(source_id, target_id))))
    return result.scalar_one()


async def get_edge(session: AsyncSession, kind: EdgeKind, source_id: int, target_id: int):
    result = await session.execute(
        sa.select(kind.model).where(
            getattr(kind.model, kind.source) == source_id,
            getattr(kind.model, kind.target) == target_id,
        )
    )
    return result.scalar_one_or_none()


async def insert_edge(
    session: AsyncSession, kind: EdgeKind, source_id: int, target_id: int
) -> InsertResult:
    """Insert one edge and, if it is new, move its counters by +1."""
    stmt = (
        _insert(session, kind.table)
        .values({kind.source: source_id, kind.target: target_id, "created_at": _now()})
        .on_conflict_do_nothing(index_elements=[kind.source, kind.target])
        .returning(kind.table.c.id)
    )
    edge_id = (await session.execute(stmt)).scalar_one_or_none()
    if edge_id is None:
        return InsertResult(InsertOutcome.ALREADY_EXISTS)
    await _apply_counters(session, kind, source_id, target_id, +1)
    return InsertResult(InsertOutcome.CREATED, edge_id)


async def insert_edges(
    session: AsyncSession, kind: EdgeKind, source_id: int, target_ids: Sequence[int]
) -> list[int]:
    """Bulk insert skipping duplicates; returns the target ids actually inserted.

    The source counter moves by exactly the number of rows inserted.
    """
    if not target_ids:
        return []
    now = _now()
    stmt = (
        _insert(session, kind.table)
        .values([{kind.source: source_id, kind.target: t, "created_at": now} for t in target_ids])
        .on_conflict_do_nothing(index_elements=[kind.source, kind.target])
        .returning(kind.target_col)
    )
    created = list((await session.execute(stmt)).scalars().all())
    if created and kind.source_counter:
        await bump_counter(session, source_id, kind.source_counter, len(created))
    if kind.target_counter:
        for target_id in created:
            await bump_counter(session, target_id, kind.target_counter, +1)
    return created


async def delete_edge(session: AsyncSession, kind: EdgeKind, source_id: int, target_id: int) -> bool:
    """Delete one edge; counters move by -1 only if a row was removed."""
    removed = await delete_edges(session, kind, source_id, [target_id])
    return bool(removed)


async def delete_edges(
    session: AsyncSession, kind: EdgeKind, source_id: int, target_ids: Iterable[int]
) -> list[int]:
    """Delete edges from ``source_id`` to each target; returns the targets removed."""
    targets = list(target_ids)
    if not targets:
        return []
    stmt = (
        sa.delete(kind.table)
        .where(kind.source_col == source_id, kind.target_col.in_(targets))
        .returning(kind.target_col)
    )
    removed = list((await session.execute(stmt)).scalars().all())
    if removed and kind.source_counter:
        await bump_counter(session, source_id, kind.source_counter, -len(removed))
    if kind.target_counter:
        for target_id in removed:
            await bump_counter(session, target_id, kind.target_counter, -1)
    return removed


# ── Follow-request store ──────────────────────────────────────────────────────

async def upsert_pending_request(session: AsyncSession, requester_id: int, target_id: int) -> int:
    """Create the request or reset a terminal one to PENDING; returns its id."""
    now = _now()
    table = FOLLOW_REQUEST.table
    stmt = (
        _insert(session, table)
        .values(
            requester_id=requester_id,
            target_id=target_id,
            status=FollowRequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_update(
            index_elements=["requester_id", "target_id"],
            set_={"status": FollowRequestStatus.PENDING, "updated_at": now},
        )
        .returning(table.c.id)
    )
    return (await session.execute(stmt)).scalar_one()


async def transition_request(
    session: AsyncSession,
    requester_id: int,
    target_id: int,
    *,
    to_status: FollowRequestStatus,
) -> int | None:
    """Move a PENDING request to ``to_status``; None if no PENDING request matched.

    The status check is part of the UPDATE, so two concurrent transitions of the
    same request cannot both succeed.
    """
    table = FOLLOW_REQUEST.table
    stmt = (
        sa.update(table)
        .where(
            FOLLOW_REQUEST.pair(requester_id, target_id),
            table.c.status == FollowRequestStatus.PENDING,
        )
        .values(status=to_status, updated_at=_now())
        .returning(table.c.id)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def delete_requests(
    session: AsyncSession,
    requester_id: int,
    target_id: int,
    *,
    status: FollowRequestStatus | None = None,
) -> int:
    table = FOLLOW_REQUEST.table
    stmt = sa.delete(table).where(FOLLOW_REQUEST.pair(requester_id, target_id))
    if status is not None:
        stmt = stmt.where(table.c.status == status)
    result = await session.execute(stmt.returning(table.c.id))
    return len(result.scalars().all())


# ── Reconciliation ────────────────────────────────────────────────────────────

async def live_counts(session: AsyncSession, user_id: int) -> dict[str, int]:
    """Count every edge set a user's counters mirror."""
    counts: dict[str, int] = {}
    for kind in COUNTED_KINDS:
        if kind.source_counter:
            counts[kind.source_counter] = sa.select(sa.func.count()).select_from(kind.table).where(
                kind.source_col == user_id
            ).scalar_subquery()
        if kind.target_counter:
            counts[kind.target_counter] = sa.select(sa.func.count()).select_from(kind.table).where(
                kind.target_col == user_id
            ).scalar_subquery()
    row = (await session.execute(sa.select(*(v.label(k) for k, v in counts.items())))).one()
    return dict(row._mapping)


async def recount(session: AsyncSession, user_id: int) -> dict[str, int]:
    """Overwrite a user's graph counters with the live edge-set cardinalities."""
    counts = await live_counts(session, user_id)
    users = User.__table__
    await session.execute(sa.update(users).where(users.c.id == user_id).values(**counts))
    return counts


# ── Row locks ─────────────────────────────────────────────────────────────────

def lock_users_stmt(user_ids: Iterable[int]) -> sa.Select:
    """``SELECT … FOR UPDATE`` on the given user rows, always in id order.

    Every action that checks block state and then writes edges between two
    users holds both rows, so a concurrent block and follow on the same pair
    run one after the other.  The fixed order keeps two such actions from
    deadlocking.  SQLite renders no FOR UPDATE; its writers are serialised.
    """
    users = User.__table__
    return (
        sa.select(users.c.id)
        .where(users.c.id.in_(sorted(set(user_ids))))
        .order_by(users.c.id)
        .with_for_update()
    )


async def lock_users(session: AsyncSession, *user_ids: int) -> list[int]:
    """Lock the existing rows among ``user_ids``; returns the ids locked."""
    result = await session.execute(lock_users_stmt(user_ids))
    return list(result.scalars().all())


# ── User removal ──────────────────────────────────────────────────────────────

async def detach_user(session: AsyncSession, user_id: int) -> dict[str, int]:
    """Delete every edge and request touching ``user_id``.

    Each removed edge decrements the counters of the user on the other end, so
    the row can then be deleted without leaving drift behind.  Returns the
    number of edges removed per relation.
    """
    removed: dict[str, int] = {}
    for kind in COUNTED_KINDS:
        outgoing = await session.execute(sa.select(kind.target_col).where(kind.source_col == user_id))
        gone = await delete_edges(session, kind, user_id, outgoing.scalars().all())

        stmt = sa.delete(kind.table).where(kind.target_col == user_id).returning(kind.source_col)
        sources = list((await session.execute(stmt)).scalars().all())
        if kind.source_counter:
            for source_id in sources:
                await bump_counter(session, source_id, kind.source_counter, -1)
        if sources and kind.target_counter:
            await bump_counter(session, user_id, kind.target_counter, -len(sources))
        removed[kind.name] = len(gone) + len(sources)

    table = FOLLOW_REQUEST.table
    result = await session.execute(
        sa.delete(table)
        .where(sa.or_(table.c.requester_id == user_id, table.c.target_id == user_id))
        .returning(table.c.id)
    )
    removed[FOLLOW_REQUEST.name] = len(result.scalars().all())
    return removed
