"""
Social graph domain — visibility gate.

Decides whether a viewer may see a target's relationship lists and
non-authored content.  Evaluation order:

  1. viewer is the target                      → SELF      (visible)
  2. target has blocked the viewer             → BLOCKED   (hidden)
  3. target is public                          → PUBLIC    (visible)
  4. viewer actively follows the private target → FOLLOWER  (visible)
  5. otherwise                                 → PRIVATE   (hidden)

Callers choose how a hidden result surfaces.  Edge listings return an empty
page for BLOCKED (never confirming the block) but raise PrivateAccount for
PRIVATE; the profile view raises 404 for BLOCKED and degrades gracefully for
PRIVATE.  The two policies are intentionally different.
"""
from __future__ import annotations

from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PrivateAccount
from app.social_graph.constants import VisibilityReason
from app.social_graph.edges import BLOCK, FOLLOW
from app.users.models import User
from app.users.service import get_user


@dataclass(frozen=True)
class Visibility:
    visible: bool
    reason: VisibilityReason


async def can_view(session: AsyncSession, viewer_id: int, target: User) -> Visibility:
    if viewer_id == target.id:
        return Visibility(True, VisibilityReason.SELF)

    row = (
        await session.execute(
            sa.select(
                sa.exists().where(BLOCK.pair(target.id, viewer_id)).label("blocked"),
                sa.exists().where(FOLLOW.pair(viewer_id, target.id)).label("follows"),
            )
        )
    ).one()
    if row.blocked:
        return Visibility(False, VisibilityReason.BLOCKED)
    if not target.is_private:
        return Visibility(True, VisibilityReason.PUBLIC)
    if row.follows:
        return Visibility(True, VisibilityReason.FOLLOWER)
    return Visibility(False, VisibilityReason.PRIVATE)


async def gate_relationship_list(
    session: AsyncSession, viewer_id: int, target_id: int
) -> Visibility:
    """Visibility for followers/following listings of another user.

    Raises UserNotFound for a missing target and PrivateAccount for a private
    target the viewer does not follow.  A BLOCKED result is returned so the
    caller can answer with an empty page.
    """
    target = await get_user(session, target_id)
    visibility = await can_view(session, viewer_id, target)
    if visibility.reason is VisibilityReason.PRIVATE:
        raise PrivateAccount()
    return visibility
