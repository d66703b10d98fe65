import pytest

from app.pagination import clamp_limit
from app.social_graph import edges
from app.social_graph import service as svc
from app.social_graph.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.social_graph.edges import FOLLOW


def test_clamp_limit() -> None:
    assert clamp_limit(None) == DEFAULT_PAGE_SIZE
    assert clamp_limit(0) == 1
    assert clamp_limit(-5) == 1
    assert clamp_limit(7) == 7
    assert clamp_limit(10_000) == MAX_PAGE_SIZE


async def _followers_of(db_session, user_factory, target_id: int, n: int) -> list[int]:
    ids = []
    for _ in range(n):
        follower = await user_factory()
        result = await edges.insert_edge(db_session, FOLLOW, follower.id, target_id)
        ids.append(result.edge_id)
    return ids


@pytest.mark.asyncio
async def test_traversal_visits_every_edge_once_newest_first(db_session, user_factory) -> None:
    target = await user_factory()
    edge_ids = await _followers_of(db_session, user_factory, target.id, 7)

    seen: list[int] = []
    cursor = None
    while True:
        page = await svc.list_followers(db_session, target.id, cursor=cursor, limit=3)
        seen.extend(f.id for f, _ in page.rows)
        if not page.has_more:
            assert page.next_cursor is None
            break
        assert page.next_cursor == page.rows[-1][0].id
        cursor = page.next_cursor

    assert seen == sorted(edge_ids, reverse=True)


@pytest.mark.asyncio
async def test_exactly_full_last_page_reports_no_more(db_session, user_factory) -> None:
    target = await user_factory()
    await _followers_of(db_session, user_factory, target.id, 4)

    first = await svc.list_followers(db_session, target.id, cursor=None, limit=2)
    second = await svc.list_followers(db_session, target.id, cursor=first.next_cursor, limit=2)

    assert first.has_more is True
    assert len(second.rows) == 2
    assert second.has_more is False
    assert second.next_cursor is None


@pytest.mark.asyncio
async def test_inserts_during_traversal_do_not_shift_pages(db_session, user_factory) -> None:
    target = await user_factory()
    original = await _followers_of(db_session, user_factory, target.id, 6)

    first = await svc.list_followers(db_session, target.id, cursor=None, limit=3)
    # New followers arrive between page fetches.
    await _followers_of(db_session, user_factory, target.id, 2)
    second = await svc.list_followers(db_session, target.id, cursor=first.next_cursor, limit=3)

    seen = [f.id for f, _ in first.rows] + [f.id for f, _ in second.rows]
    assert seen == sorted(original, reverse=True)
    assert second.has_more is False


@pytest.mark.asyncio
async def test_empty_listing(db_session, user_factory) -> None:
    target = await user_factory()
    page = await svc.list_blocked(db_session, target.id, cursor=None, limit=None)
    assert page.rows == []
    assert page.has_more is False
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_request_listings_only_show_pending(db_session, user_factory) -> None:
    owner = await user_factory(is_private=True)
    a = await user_factory()
    b = await user_factory()
    await svc.follow(db_session, a.id, owner.id)
    await svc.follow(db_session, b.id, owner.id)
    await svc.reject_request(db_session, owner.id, a.id)

    incoming = await svc.list_incoming_requests(db_session, owner.id, cursor=None, limit=None)
    outgoing = await svc.list_outgoing_requests(db_session, b.id, cursor=None, limit=None)

    assert [u.id for _, u in incoming.rows] == [b.id]
    assert [u.id for _, u in outgoing.rows] == [owner.id]
