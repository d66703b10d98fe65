import pytest
import sqlalchemy as sa

from app.users.models import User


@pytest.mark.asyncio
async def test_recount_requires_admin(async_client, seed_user, auth_headers) -> None:
    alice = await seed_user()
    response = await async_client.post(
        f"/api/v1/admin/graph/users/{alice}/recount", headers=auth_headers(alice)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_recount_repairs_drift(
    async_client, seed_user, auth_headers, session_factory
) -> None:
    admin = await seed_user()
    alice = await seed_user()
    bob = await seed_user()
    await async_client.post(f"/api/v1/users/{bob}/follow", headers=auth_headers(alice))
    async with session_factory() as session:
        await session.execute(
            sa.update(User.__table__).where(User.__table__.c.id == bob).values(followers_count=5)
        )
        await session.commit()

    response = await async_client.post(
        f"/api/v1/admin/graph/users/{bob}/recount", headers=auth_headers(admin, ["admin"])
    )

    assert response.status_code == 200
    data = response.json()
    assert data["drifted"] is True
    assert data["before"]["followers_count"] == 5
    assert data["after"]["followers_count"] == 1

    again = await async_client.post(
        f"/api/v1/admin/graph/users/{bob}/recount", headers=auth_headers(admin, ["super_admin"])
    )
    assert again.json()["drifted"] is False


@pytest.mark.asyncio
async def test_recount_missing_user(async_client, seed_user, auth_headers) -> None:
    admin = await seed_user()
    response = await async_client.post(
        "/api/v1/admin/graph/users/999999/recount", headers=auth_headers(admin, ["admin"])
    )
    assert response.status_code == 404
