"""
Social graph domain — Pydantic V2 request/response schemas.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.social_graph.constants import (
    MAX_CLOSE_FRIENDS_BATCH,
    FollowOutcome,
    FollowRequestStatus,
)
from app.users.schemas import ViewerRelation


class _Base(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ── Embedded user reference (used inside list items) ───────────────────────────

class SocialUserRef(BaseModel):
    """Minimal user profile embedded in every list item."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    full_name: str
    avatar_url: str | None


class FollowCounts(BaseModel):
    followers: int
    following: int


# ── Follow ─────────────────────────────────────────────────────────────────────

class FollowResponse(BaseModel):
    outcome: FollowOutcome


class FollowListItem(BaseModel):
    id: int                 # follow edge id (pagination cursor)
    user: SocialUserRef     # the other party
    counts: FollowCounts
    created_at: datetime
    viewer: ViewerRelation  # the authenticated user's relation to ``user``
    is_me: bool


# ── Follow requests ───────────────────────────────────────────────────────────

class FollowRequestItem(BaseModel):
    id: int
    user: SocialUserRef     # requester (incoming) or target (outgoing)
    status: FollowRequestStatus
    created_at: datetime


class FollowRequestDecision(BaseModel):
    status: FollowRequestStatus


class CancelRequestResponse(BaseModel):
    status: Literal["canceled"] = "canceled"
    removed: bool


# ── Block ─────────────────────────────────────────────────────────────────────

class BlockResponse(BaseModel):
    id: int
    user: SocialUserRef
    created: bool
    created_at: datetime


class UnblockResponse(BaseModel):
    removed: bool


class SocialRelationItem(BaseModel):
    """Generic item for blocked and close-friend lists."""

    id: int
    user: SocialUserRef
    created_at: datetime


# ── Close friends ─────────────────────────────────────────────────────────────

class CloseFriendsRequest(_Base):
    ids: list[int] = Field(default_factory=list, max_length=MAX_CLOSE_FRIENDS_BATCH)


class CloseFriendsAddResponse(BaseModel):
    created: int
    requested: int
    items: list[SocialUserRef]


class CloseFriendsRemoveResponse(BaseModel):
    removed: int


class CloseFriendResponse(BaseModel):
    user: SocialUserRef
    created: bool


class CloseFriendCandidateItem(BaseModel):
    id: int                 # follow edge id (pagination cursor)
    user: SocialUserRef
    is_close_friend: bool


# ── Admin ─────────────────────────────────────────────────────────────────────

class GraphCounters(BaseModel):
    followers_count: int
    following_count: int
    blocked_count: int
    close_friends_count: int


class RecountResponse(BaseModel):
    user_id: int
    before: GraphCounters
    after: GraphCounters
    drifted: bool


class UserRemovalResponse(BaseModel):
    user_id: int
    removed: dict[str, int] = Field(description="Edges removed per relation.")
