"""
Users domain — request orchestration (thin glue between router and service).
"""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import UserHiddenByBlock
from app.social_graph import service as social_svc
from app.social_graph.constants import VisibilityReason
from app.social_graph.controller import viewer_relation
from app.social_graph.visibility import can_view
from app.users.schemas import (
    MyProfileResponse,
    PrivacyResponse,
    ProfileCounts,
    PublicProfileResponse,
)
from app.users.service import get_user, toggle_privacy


async def get_me(session: AsyncSession, user_id: int) -> MyProfileResponse:
    user = await get_user(session, user_id)
    return MyProfileResponse.model_validate(user)


async def get_profile(
    session: AsyncSession,
    user_id: int,
    *,
    viewer_id: int,
) -> PublicProfileResponse:
    user = await get_user(session, user_id)
    visibility = await can_view(session, viewer_id, user)
    # Same 404 as a missing user so the block is never confirmed.
    if visibility.reason is VisibilityReason.BLOCKED:
        raise UserHiddenByBlock()

    relations = await social_svc.viewer_relations(session, viewer_id, [user.id])
    return PublicProfileResponse(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
        bio=user.bio,
        is_private=user.is_private,
        counts=ProfileCounts(
            followers=user.followers_count,
            following=user.following_count,
            posts=user.post_count,
        ),
        viewer=viewer_relation(relations, user.id),
        can_view_content=visibility.visible,
        visibility=visibility.reason,
        is_me=user.id == viewer_id,
    )


async def toggle_my_privacy(session: AsyncSession, user_id: int) -> PrivacyResponse:
    return PrivacyResponse(is_private=await toggle_privacy(session, user_id))
