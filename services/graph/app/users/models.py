"""
Users — SQLAlchemy ORM model for the user record.

The row is owned by the identity subsystem.  The graph service reads
``is_private`` and writes exactly these columns:

  followers_count / following_count   ← follows
  blocked_count                       ← blocks (blocker side)
  close_friends_count                 ← close_friends (owner side)
  is_private                          ← privacy toggle

Counters are denormalised and must equal the cardinality of their edge sets;
they are only ever changed by app.social_graph.edges inside the transaction
that creates or removes the justifying edge.
"""
from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base, BigId


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        sa.CheckConstraint("followers_count >= 0", name="ck_users_followers_count_non_negative"),
        sa.CheckConstraint("following_count >= 0", name="ck_users_following_count_non_negative"),
        sa.CheckConstraint("blocked_count >= 0", name="ck_users_blocked_count_non_negative"),
        sa.CheckConstraint(
            "close_friends_count >= 0", name="ck_users_close_friends_count_non_negative"
        ),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)

    # ── Profile fields (identity-owned, read-only here) ──────────────────────
    username: Mapped[str] = mapped_column(sa.String(50), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(sa.String(150), nullable=False, default="")
    avatar_url: Mapped[str | None] = mapped_column(sa.String(500), nullable=True)
    bio: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)

    # ── Privacy ──────────────────────────────────────────────────────────────
    # Private accounts turn follow() into a follow request.
    is_private: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=False, server_default=sa.false()
    )

    # ── Denormalised counters ────────────────────────────────────────────────
    followers_count: Mapped[int] = mapped_column(
        sa.Integer(), nullable=False, default=0, server_default=sa.text("0")
    )
    following_count: Mapped[int] = mapped_column(
        sa.Integer(), nullable=False, default=0, server_default=sa.text("0")
    )
    blocked_count: Mapped[int] = mapped_column(
        sa.Integer(), nullable=False, default=0, server_default=sa.text("0")
    )
    close_friends_count: Mapped[int] = mapped_column(
        sa.Integer(), nullable=False, default=0, server_default=sa.text("0")
    )
    # Maintained by the content service; exposed on profiles only.
    post_count: Mapped[int] = mapped_column(
        sa.Integer(), nullable=False, default=0, server_default=sa.text("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_now
    )
