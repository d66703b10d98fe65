"""
Social graph domain — SQLAlchemy ORM models.

Tables:
  follows          — unidirectional follow edges (follower → following)
  follow_requests  — requests to follow a private account (requester → target)
  blocks           — block edges (blocker blocks blocked)
  close_friends    — close-friend edges (owner → friend)

Every table has a UNIQUE constraint on its ordered pair and a no-self CHECK.
Ids are monotonically increasing and double as pagination cursors.
"""
from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base, BigId
from app.social_graph.constants import FollowRequestStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _user_fk() -> sa.ForeignKey:
    # Users are removed through social_graph.service.delete_user, which
    # detaches edges with their counter decrements first.
    return sa.ForeignKey("users.id", ondelete="RESTRICT")


class Follow(Base):
    __tablename__ = "follows"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    follower_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    following_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )

    follower = relationship("User", foreign_keys=[follower_id], lazy="raise")
    following = relationship("User", foreign_keys=[following_id], lazy="raise")

    __table_args__ = (
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        sa.CheckConstraint("follower_id != following_id", name="ck_follows_no_self"),
        sa.Index("idx_follows_follower_id", "follower_id", "id"),
        sa.Index("idx_follows_following_id", "following_id", "id"),
        {"sqlite_autoincrement": True},
    )


class FollowRequest(Base):
    __tablename__ = "follow_requests"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    requester_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    target_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    # ACCEPTED / REJECTED are terminal audit markers; a fresh follow() resets to PENDING.
    status: Mapped[FollowRequestStatus] = mapped_column(
        sa.Enum(
            FollowRequestStatus,
            name="followrequeststatus",
            values_callable=lambda e: [x.value for x in e],
        ),
        nullable=False,
        default=FollowRequestStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now, onupdate=_now
    )

    requester = relationship("User", foreign_keys=[requester_id], lazy="raise")
    target = relationship("User", foreign_keys=[target_id], lazy="raise")

    __table_args__ = (
        sa.UniqueConstraint("requester_id", "target_id", name="uq_follow_requests_pair"),
        sa.CheckConstraint("requester_id != target_id", name="ck_follow_requests_no_self"),
        sa.Index("idx_follow_requests_target_status", "target_id", "status", "id"),
        sa.Index("idx_follow_requests_requester_status", "requester_id", "status", "id"),
        {"sqlite_autoincrement": True},
    )


class Block(Base):
    __tablename__ = "blocks"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    blocker_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    blocked_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )

    blocker = relationship("User", foreign_keys=[blocker_id], lazy="raise")
    blocked = relationship("User", foreign_keys=[blocked_id], lazy="raise")

    __table_args__ = (
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_blocks_pair"),
        sa.CheckConstraint("blocker_id != blocked_id", name="ck_blocks_no_self"),
        sa.Index("idx_blocks_blocker_id", "blocker_id", "id"),
        sa.Index("idx_blocks_blocked_id", "blocked_id"),
        {"sqlite_autoincrement": True},
    )


class CloseFriend(Base):
    __tablename__ = "close_friends"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    friend_id: Mapped[int] = mapped_column(BigId, _user_fk(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )

    owner = relationship("User", foreign_keys=[owner_id], lazy="raise")
    friend = relationship("User", foreign_keys=[friend_id], lazy="raise")

    __table_args__ = (
        sa.UniqueConstraint("owner_id", "friend_id", name="uq_close_friends_pair"),
        sa.CheckConstraint("owner_id != friend_id", name="ck_close_friends_no_self"),
        sa.Index("idx_close_friends_owner_id", "owner_id", "id"),
        sa.Index("idx_close_friends_friend_id", "friend_id"),
        {"sqlite_autoincrement": True},
    )
