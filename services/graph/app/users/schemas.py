"""
Users domain — Pydantic V2 response schemas.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.social_graph.constants import FollowRequestStatus, VisibilityReason


class ProfileCounts(BaseModel):
    followers: int
    following: int
    posts: int


class ViewerFollowRequest(BaseModel):
    id: int
    status: FollowRequestStatus


class ViewerRelation(BaseModel):
    """How the authenticated viewer relates to the profile owner."""

    is_following: bool
    is_followed_by: bool
    follow_request: ViewerFollowRequest | None = None


class MyProfileResponse(BaseModel):
    """GET /users/me — full record including every graph counter."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str
    avatar_url: str | None
    bio: str | None
    is_private: bool
    followers_count: int
    following_count: int
    blocked_count: int
    close_friends_count: int
    post_count: int
    created_at: datetime


class PublicProfileResponse(BaseModel):
    """GET /users/{user_id}.

    A private profile the viewer does not follow is still returned, with
    ``can_view_content`` false so clients can render a locked state.
    """

    id: int
    username: str
    full_name: str
    avatar_url: str | None
    bio: str | None
    is_private: bool
    counts: ProfileCounts
    viewer: ViewerRelation
    can_view_content: bool
    visibility: VisibilityReason
    is_me: bool


class PrivacyResponse(BaseModel):
    is_private: bool
