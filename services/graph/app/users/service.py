"""
Users domain — pure business logic (zero FastAPI imports).
"""
from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import UserNotFound
from app.users.models import User

logger = logging.getLogger(__name__)


async def get_user(session: AsyncSession, user_id: int) -> User:
    """Load a user by PK; raise 404 if not found.

    Counters are written with table-level UPDATEs, so the identity map is
    refreshed on every load.
    """
    result = await session.execute(
        sa.select(User)
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound()
    return user


async def toggle_privacy(session: AsyncSession, user_id: int) -> bool:
    """Flip ``is_private`` in one statement; returns the new value.

    Turning privacy off does not auto-accept pending requests; they stay
    PENDING until the owner acts on them.
    """
    users = User.__table__
    result = await session.execute(
        sa.update(users)
        .where(users.c.id == user_id)
        .values(is_private=sa.not_(users.c.is_private))
        .returning(users.c.is_private)
    )
    is_private = result.scalar_one_or_none()
    if is_private is None:
        raise UserNotFound()
    logger.info("User %s set is_private=%s", user_id, is_private)
    return is_private
