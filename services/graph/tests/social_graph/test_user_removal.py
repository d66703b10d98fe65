import pytest
import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from app.exceptions import UserNotFound
from app.social_graph import edges
from app.social_graph import service as svc
from app.social_graph.models import Follow, FollowRequest
from app.users.models import User


@pytest.mark.asyncio
async def test_delete_user_keeps_other_counters_consistent(
    db_session, user_factory, get_counters
) -> None:
    alice = await user_factory()
    bob = await user_factory()
    carol = await user_factory(is_private=True)
    dave = await user_factory()

    await svc.follow(db_session, alice.id, bob.id)
    await svc.follow(db_session, dave.id, alice.id)
    await svc.follow(db_session, alice.id, carol.id)
    await svc.add_close_friends(db_session, dave.id, [alice.id])
    await svc.block(db_session, bob.id, dave.id)

    removed = await svc.delete_user(db_session, alice.id)

    assert removed == {"follow": 2, "block": 0, "close_friend": 1, "follow_request": 1}
    for user in (bob, dave):
        assert await get_counters(db_session, user.id) == await edges.live_counts(
            db_session, user.id
        )
    assert (await get_counters(db_session, bob.id))["followers_count"] == 0
    assert (await get_counters(db_session, dave.id))["following_count"] == 0
    assert (await get_counters(db_session, dave.id))["close_friends_count"] == 0
    assert (await get_counters(db_session, bob.id))["blocked_count"] == 1

    remaining = await db_session.execute(
        sa.select(sa.func.count()).select_from(User).where(User.id == alice.id)
    )
    assert remaining.scalar_one() == 0
    requests = await db_session.execute(sa.select(sa.func.count()).select_from(FollowRequest))
    assert requests.scalar_one() == 0


@pytest.mark.asyncio
async def test_delete_missing_user(db_session) -> None:
    with pytest.raises(UserNotFound):
        await svc.delete_user(db_session, 999_999)


@pytest.mark.asyncio
async def test_raw_user_delete_with_edges_is_refused(db_session, user_factory) -> None:
    alice = await user_factory()
    bob = await user_factory()
    await svc.follow(db_session, alice.id, bob.id)

    with pytest.raises(IntegrityError):
        await db_session.execute(sa.delete(User.__table__).where(User.__table__.c.id == alice.id))

    await db_session.rollback()


@pytest.mark.asyncio
async def test_delete_user_route(async_client, seed_user, auth_headers, session_factory) -> None:
    admin = await seed_user()
    alice = await seed_user()
    bob = await seed_user()
    await async_client.post(f"/api/v1/users/{bob}/follow", headers=auth_headers(alice))

    forbidden = await async_client.delete(
        f"/api/v1/admin/graph/users/{alice}", headers=auth_headers(alice)
    )
    assert forbidden.status_code == 403

    response = await async_client.delete(
        f"/api/v1/admin/graph/users/{alice}", headers=auth_headers(admin, ["admin"])
    )
    assert response.status_code == 200
    assert response.json() == {
        "user_id": alice,
        "removed": {"follow": 1, "block": 0, "close_friend": 0, "follow_request": 0},
    }

    async with session_factory() as session:
        follows = await session.execute(sa.select(sa.func.count()).select_from(Follow))
        assert follows.scalar_one() == 0
        bob_row = (
            await session.execute(
                sa.select(User.__table__.c.followers_count).where(User.__table__.c.id == bob)
            )
        ).scalar_one()
        assert bob_row == 0

    missing = await async_client.delete(
        f"/api/v1/admin/graph/users/{alice}", headers=auth_headers(admin, ["admin"])
    )
    assert missing.status_code == 404
