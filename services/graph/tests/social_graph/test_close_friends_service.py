import pytest
import sqlalchemy as sa

from app.exceptions import (
    CannotCloseFriendSelf,
    CloseFriendUsersNotFound,
    EmptyCloseFriendsInput,
    UserNotFound,
)
from app.social_graph import service as svc
from app.social_graph.models import CloseFriend


async def _friend_ids(session, owner_id: int) -> set[int]:
    result = await session.execute(
        sa.select(CloseFriend.friend_id).where(CloseFriend.owner_id == owner_id)
    )
    return set(result.scalars().all())


@pytest.mark.asyncio
async def test_bulk_add_dedupes_and_skips_existing(db_session, user_factory, get_counters) -> None:
    owner = await user_factory()
    u1 = await user_factory()
    u2 = await user_factory()
    u3 = await user_factory()
    await svc.add_close_friends(db_session, owner.id, [u1.id])

    result = await svc.add_close_friends(
        db_session, owner.id, [u1.id, u2.id, u2.id, u3.id, owner.id]
    )

    assert result.requested == 3
    assert result.created == 2
    assert {u.id for u in result.items} == {u1.id, u2.id, u3.id}
    assert await _friend_ids(db_session, owner.id) == {u1.id, u2.id, u3.id}
    assert (await get_counters(db_session, owner.id))["close_friends_count"] == 3


@pytest.mark.asyncio
async def test_bulk_add_rejects_empty_input(db_session, user_factory) -> None:
    owner = await user_factory()
    with pytest.raises(EmptyCloseFriendsInput):
        await svc.add_close_friends(db_session, owner.id, [])
    with pytest.raises(EmptyCloseFriendsInput):
        await svc.add_close_friends(db_session, owner.id, [owner.id, owner.id])


@pytest.mark.asyncio
async def test_bulk_add_with_no_existing_users(db_session, user_factory) -> None:
    owner = await user_factory()
    with pytest.raises(CloseFriendUsersNotFound):
        await svc.add_close_friends(db_session, owner.id, [777_001, 777_002])


@pytest.mark.asyncio
async def test_bulk_add_skips_blocked_users(db_session, user_factory, get_counters) -> None:
    owner = await user_factory()
    blocked = await user_factory()
    blocker = await user_factory()
    ok = await user_factory()
    await svc.block(db_session, owner.id, blocked.id)
    await svc.block(db_session, blocker.id, owner.id)

    result = await svc.add_close_friends(db_session, owner.id, [blocked.id, blocker.id, ok.id])

    assert result.created == 1
    assert [u.id for u in result.items] == [ok.id]
    assert (await get_counters(db_session, owner.id))["close_friends_count"] == 1


@pytest.mark.asyncio
async def test_bulk_remove(db_session, user_factory, get_counters) -> None:
    owner = await user_factory()
    u1 = await user_factory()
    u2 = await user_factory()
    await svc.add_close_friends(db_session, owner.id, [u1.id, u2.id])

    assert await svc.remove_close_friends(db_session, owner.id, []) == 0
    assert await svc.remove_close_friends(db_session, owner.id, [u1.id, 888_888]) == 1
    assert await _friend_ids(db_session, owner.id) == {u2.id}
    assert (await get_counters(db_session, owner.id))["close_friends_count"] == 1


@pytest.mark.asyncio
async def test_single_add_and_remove(db_session, user_factory, get_counters) -> None:
    owner = await user_factory()
    friend = await user_factory()

    user, created = await svc.add_close_friend(db_session, owner.id, friend.id)
    _, created_again = await svc.add_close_friend(db_session, owner.id, friend.id)

    assert user.id == friend.id
    assert created is True
    assert created_again is False
    assert (await get_counters(db_session, owner.id))["close_friends_count"] == 1

    assert await svc.remove_close_friends(db_session, owner.id, [friend.id]) == 1
    assert (await get_counters(db_session, owner.id))["close_friends_count"] == 0


@pytest.mark.asyncio
async def test_single_add_validation(db_session, user_factory) -> None:
    owner = await user_factory()
    other = await user_factory()
    await svc.block(db_session, other.id, owner.id)

    with pytest.raises(CannotCloseFriendSelf):
        await svc.add_close_friend(db_session, owner.id, owner.id)
    with pytest.raises(UserNotFound):
        await svc.add_close_friend(db_session, owner.id, 555_555)
    with pytest.raises(UserNotFound):
        await svc.add_close_friend(db_session, owner.id, other.id)


@pytest.mark.asyncio
async def test_candidates_flag_close_friends(db_session, user_factory) -> None:
    owner = await user_factory()
    a = await user_factory()
    b = await user_factory()
    await svc.follow(db_session, owner.id, a.id)
    await svc.follow(db_session, owner.id, b.id)
    await svc.add_close_friend(db_session, owner.id, b.id)

    page = await svc.list_close_friend_candidates(db_session, owner.id, cursor=None, limit=None)

    flags = {user.id: bool(is_cf) for _, user, is_cf in page.rows}
    assert flags == {a.id: False, b.id: True}
