#!/usr/bin/env python3
"""
Seed the graph dev database with demo users and relationships.
Run from repo root: python scripts/seed-data.py [--users 50]
Uses GRAPH_DATABASE_URL from env or .env.  Apply migrations first.

Edges are created through the service layer so every counter is consistent
with the edges it summarises.
"""
import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

# Repo root on path for shared and service imports
repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root / "shared"))
sys.path.insert(0, str(repo_root / "services" / "graph"))

import sqlalchemy as sa  # noqa: E402
from sqlalchemy.dialects import postgresql  # noqa: E402

from app.config import get_settings  # noqa: E402
from app.social_graph import service as svc  # noqa: E402
from app.users.models import User  # noqa: E402
from shared.database.postgres import get_async_session_factory, session_scope  # noqa: E402
from shared.logging_config import configure_logging  # noqa: E402

logger = logging.getLogger("seed")


async def seed_graph(database_url: str, user_count: int, seed: int) -> None:
    rng = random.Random(seed)
    factory = get_async_session_factory(database_url)

    async with session_scope(factory) as session:
        rows = [
            {
                "username": f"user_{i}",
                "full_name": f"Test User{i}",
                "bio": f"Demo bio for user {i}" if i % 3 == 0 else None,
                "is_private": i % 5 == 0,
            }
            for i in range(1, user_count + 1)
        ]
        await session.execute(
            postgresql.insert(User).values(rows).on_conflict_do_nothing(index_elements=["username"])
        )
        result = await session.execute(
            sa.select(User.id).where(User.username.in_([r["username"] for r in rows]))
        )
        user_ids = sorted(result.scalars().all())

    outcomes: dict[str, int] = {}
    async with session_scope(factory) as session:
        for actor in user_ids:
            for target in rng.sample(user_ids, k=min(8, len(user_ids))):
                if target == actor:
                    continue
                outcome = await svc.follow(session, actor, target)
                outcomes[outcome.value] = outcomes.get(outcome.value, 0) + 1

        for owner in user_ids[:10]:
            friends = [f for f in rng.sample(user_ids, k=min(5, len(user_ids))) if f != owner]
            if friends:
                await svc.add_close_friends(session, owner, friends)

    await factory.kw["bind"].dispose()
    logger.info("Graph: seeded %d users, follow outcomes %s", len(user_ids), outcomes)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--users", type=int, default=50)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)
    asyncio.run(seed_graph(settings.graph_database_url, args.users, args.seed))
    logger.info("Seed done.")


if __name__ == "__main__":
    main()
