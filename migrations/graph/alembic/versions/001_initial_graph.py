"""Initial social graph schema: users, follows, follow_requests, blocks, close_friends

Revision ID: 001
Revises:
Create Date: 2026-10-19

Tables created:
  - users            Identity-owned profile row plus the graph's denormalised counters
  - follows          Unidirectional follow edges (follower → following)
  - follow_requests  Requests to follow a private account (requester → target)
  - blocks           Block edges (blocker blocks blocked)
  - close_friends    Close-friend edges (owner → friend)

Every edge table carries a UNIQUE pair constraint, a no-self CHECK and
ON DELETE RESTRICT foreign keys to users.  Counters carry CHECK (>= 0).

PostgreSQL ENUM types created:
  - followrequeststatus   pending / accepted / rejected
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


_REQUEST_STATUS = postgresql.ENUM(
    "pending", "accepted", "rejected", name="followrequeststatus", create_type=False
)


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default=sa.text("0"))


def _user_fk(column: str, table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column], ["users.id"], name=f"fk_{table}_{column}", ondelete="RESTRICT"
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


def _edge_table(name: str, source: str, target: str, *extra: sa.Column) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column(source, sa.BigInteger(), nullable=False),
        sa.Column(target, sa.BigInteger(), nullable=False),
        *extra,
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=f"pk_{name}"),
        _user_fk(source, name),
        _user_fk(target, name),
        sa.UniqueConstraint(source, target, name=f"uq_{name}_pair"),
        sa.CheckConstraint(f"{source} != {target}", name=f"ck_{name}_no_self"),
    )


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    # ── 1. ENUM types ─────────────────────────────────────────────────────────
    op.execute(
        """
        DO $$ BEGIN
            CREATE TYPE followrequeststatus AS ENUM ('pending', 'accepted', 'rejected');
        EXCEPTION WHEN duplicate_object THEN NULL;
        END $$;
        """
    )

    # ── 2. users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("full_name", sa.String(150), nullable=False, server_default=""),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        _counter("followers_count"),
        _counter("following_count"),
        _counter("blocked_count"),
        _counter("close_friends_count"),
        _counter("post_count"),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.CheckConstraint("followers_count >= 0", name="ck_users_followers_count_non_negative"),
        sa.CheckConstraint("following_count >= 0", name="ck_users_following_count_non_negative"),
        sa.CheckConstraint("blocked_count >= 0", name="ck_users_blocked_count_non_negative"),
        sa.CheckConstraint(
            "close_friends_count >= 0", name="ck_users_close_friends_count_non_negative"
        ),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # ── 3. follows ────────────────────────────────────────────────────────────
    _edge_table("follows", "follower_id", "following_id")
    op.create_index("idx_follows_follower_id", "follows", ["follower_id", "id"])
    op.create_index("idx_follows_following_id", "follows", ["following_id", "id"])

    # ── 4. follow_requests ────────────────────────────────────────────────────
    _edge_table(
        "follow_requests",
        "requester_id",
        "target_id",
        sa.Column("status", _REQUEST_STATUS, nullable=False, server_default="pending"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )
    op.create_index(
        "idx_follow_requests_target_status", "follow_requests", ["target_id", "status", "id"]
    )
    op.create_index(
        "idx_follow_requests_requester_status",
        "follow_requests",
        ["requester_id", "status", "id"],
    )

    # ── 5. blocks ─────────────────────────────────────────────────────────────
    _edge_table("blocks", "blocker_id", "blocked_id")
    op.create_index("idx_blocks_blocker_id", "blocks", ["blocker_id", "id"])
    op.create_index("idx_blocks_blocked_id", "blocks", ["blocked_id"])

    # ── 6. close_friends ──────────────────────────────────────────────────────
    _edge_table("close_friends", "owner_id", "friend_id")
    op.create_index("idx_close_friends_owner_id", "close_friends", ["owner_id", "id"])
    op.create_index("idx_close_friends_friend_id", "close_friends", ["friend_id"])


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    op.drop_table("close_friends")
    op.drop_table("blocks")
    op.drop_table("follow_requests")
    op.drop_table("follows")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS followrequeststatus")
