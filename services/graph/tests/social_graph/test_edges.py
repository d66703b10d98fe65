import logging

import pytest
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from app.social_graph import edges
from app.social_graph.edges import BLOCK, CLOSE_FRIEND, FOLLOW, InsertOutcome
from app.users.models import User


@pytest.mark.asyncio
async def test_insert_edge_moves_both_counters_once(db_session, user_factory, get_counters) -> None:
    alice = await user_factory("alice")
    bob = await user_factory("bob")

    first = await edges.insert_edge(db_session, FOLLOW, alice.id, bob.id)
    second = await edges.insert_edge(db_session, FOLLOW, alice.id, bob.id)

    assert first.outcome is InsertOutcome.CREATED
    assert first.edge_id is not None
    assert second.outcome is InsertOutcome.ALREADY_EXISTS
    assert (await get_counters(db_session, alice.id))["following_count"] == 1
    assert (await get_counters(db_session, bob.id))["followers_count"] == 1


@pytest.mark.asyncio
async def test_delete_missing_edge_is_noop(db_session, user_factory, get_counters) -> None:
    alice = await user_factory()
    bob = await user_factory()

    assert await edges.delete_edge(db_session, BLOCK, alice.id, bob.id) is False
    assert (await get_counters(db_session, alice.id))["blocked_count"] == 0


@pytest.mark.asyncio
async def test_insert_edges_counts_only_new_rows(db_session, user_factory, get_counters) -> None:
    owner = await user_factory()
    friends = [await user_factory() for _ in range(3)]
    ids = [f.id for f in friends]

    await edges.insert_edge(db_session, CLOSE_FRIEND, owner.id, ids[0])
    created = await edges.insert_edges(db_session, CLOSE_FRIEND, owner.id, ids)

    assert sorted(created) == sorted(ids[1:])
    assert (await get_counters(db_session, owner.id))["close_friends_count"] == 3


@pytest.mark.asyncio
async def test_delete_edges_returns_removed_targets(db_session, user_factory, get_counters) -> None:
    owner = await user_factory()
    a = await user_factory()
    b = await user_factory()
    await edges.insert_edges(db_session, CLOSE_FRIEND, owner.id, [a.id])

    removed = await edges.delete_edges(db_session, CLOSE_FRIEND, owner.id, [a.id, b.id])

    assert removed == [a.id]
    assert (await get_counters(db_session, owner.id))["close_friends_count"] == 0


@pytest.mark.asyncio
async def test_decrement_below_zero_is_refused_and_logged(
    db_session, user_factory, get_counters, caplog
) -> None:
    alice = await user_factory()
    bob = await user_factory()
    await edges.insert_edge(db_session, FOLLOW, alice.id, bob.id)
    # Simulate drift: the ledger lost the increment.
    await db_session.execute(
        sa.update(User.__table__).where(User.__table__.c.id == bob.id).values(followers_count=0)
    )

    with caplog.at_level(logging.ERROR, logger="app.social_graph.edges"):
        removed = await edges.delete_edge(db_session, FOLLOW, alice.id, bob.id)

    assert removed is True
    assert (await get_counters(db_session, bob.id))["followers_count"] == 0
    assert (await get_counters(db_session, alice.id))["following_count"] == 0
    assert "Counter drift" in caplog.text


@pytest.mark.asyncio
async def test_recount_restores_live_cardinalities(db_session, user_factory, get_counters) -> None:
    alice = await user_factory()
    bob = await user_factory()
    carol = await user_factory()
    await edges.insert_edge(db_session, FOLLOW, alice.id, bob.id)
    await edges.insert_edge(db_session, FOLLOW, carol.id, alice.id)
    await edges.insert_edge(db_session, BLOCK, alice.id, carol.id)
    await db_session.execute(
        sa.update(User.__table__)
        .where(User.__table__.c.id == alice.id)
        .values(followers_count=7, following_count=0, blocked_count=3, close_friends_count=2)
    )

    counts = await edges.recount(db_session, alice.id)

    expected = {
        "followers_count": 1,
        "following_count": 1,
        "blocked_count": 1,
        "close_friends_count": 0,
    }
    assert counts == expected
    assert await get_counters(db_session, alice.id) == expected


def test_lock_users_stmt_locks_rows_in_id_order() -> None:
    stmt = edges.lock_users_stmt([9, 3, 9])
    sql = str(stmt.compile(dialect=postgresql.dialect()))

    assert "FOR UPDATE" in sql
    assert "ORDER BY users.id" in sql
    assert stmt.whereclause.right.value == [3, 9]


@pytest.mark.asyncio
async def test_detach_user_decrements_the_other_side(db_session, user_factory, get_counters) -> None:
    alice = await user_factory()
    bob = await user_factory()
    carol = await user_factory()
    await edges.insert_edge(db_session, FOLLOW, alice.id, bob.id)
    await edges.insert_edge(db_session, FOLLOW, bob.id, alice.id)
    await edges.insert_edge(db_session, CLOSE_FRIEND, carol.id, alice.id)
    await edges.insert_edge(db_session, BLOCK, carol.id, bob.id)

    removed = await edges.detach_user(db_session, alice.id)

    assert removed == {"follow": 2, "block": 0, "close_friend": 1, "follow_request": 0}
    assert await get_counters(db_session, bob.id) == {
        "followers_count": 0,
        "following_count": 0,
        "blocked_count": 0,
        "close_friends_count": 0,
    }
    assert (await get_counters(db_session, carol.id))["close_friends_count"] == 0
    # Edges not touching the detached user are left alone.
    assert (await get_counters(db_session, carol.id))["blocked_count"] == 1
