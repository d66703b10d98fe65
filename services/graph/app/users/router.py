"""
Users domain — router.

Routes:
  GET    /api/v1/users/me           Get own profile with every graph counter
  PATCH  /api/v1/users/me/privacy   Toggle own account between public and private
  GET    /api/v1/users/{user_id}    Get any user's public profile + viewer relation

All routes require a valid Bearer token.  This router is included after the
social graph router so /users/{user_id} never shadows its literal paths.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.users import controller as ctrl
from app.users.schemas import MyProfileResponse, PrivacyResponse, PublicProfileResponse
from shared.models.user import CurrentUser

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=MyProfileResponse, summary="Get own profile")
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> MyProfileResponse:
    return await ctrl.get_me(session, current_user.id)


@router.patch(
    "/me/privacy",
    response_model=PrivacyResponse,
    summary="Toggle account privacy",
    description=(
        "Private accounts turn follows into follow requests. "
        "Pending requests are not auto-accepted when switching back to public."
    ),
)
async def toggle_privacy(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> PrivacyResponse:
    return await ctrl.toggle_my_privacy(session, current_user.id)


@router.get(
    "/{user_id}",
    response_model=PublicProfileResponse,
    summary="Get any user's public profile",
    description=(
        "Returns 404 if the user has blocked you. A private profile you do not follow "
        "is returned with `can_view_content=false`."
    ),
)
async def get_user(
    user_id: int = Path(..., ge=1),
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> PublicProfileResponse:
    return await ctrl.get_profile(session, user_id, viewer_id=current_user.id)
