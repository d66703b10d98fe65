"""
Social graph domain — enums and limits.
"""
from __future__ import annotations

import enum

# Cursor pagination bounds for every edge listing
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100

# Upper bound on ids accepted by one bulk close-friends call
MAX_CLOSE_FRIENDS_BATCH: int = 500


class FollowRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FollowOutcome(str, enum.Enum):
    """Result of follow(): an edge, a request, or nothing to do."""

    FOLLOWED = "followed"
    REQUEST_CREATED = "request_created"
    ALREADY_FOLLOWING = "already_following"


class VisibilityReason(str, enum.Enum):
    SELF = "self"
    PUBLIC = "public"
    FOLLOWER = "follower"
    BLOCKED = "blocked"
    PRIVATE = "private"
