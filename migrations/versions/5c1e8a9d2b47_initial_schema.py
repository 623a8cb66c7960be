"""initial schema

Revision ID: 5c1e8a9d2b47
Revises:
Create Date: 2026-10-19 09:12:41.508113

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e8a9d2b47"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create profiles, loops, posts, replies and both vote ledgers."""
    op.create_table(
        "user_profile",
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("aura_total", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("username"),
    )
    op.create_table(
        "loop",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description_md", sa.Text(), nullable=True),
        sa.Column("members_count", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "loop_member",
        sa.Column("loop_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["loop_id"], ["loop.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["user_profile.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("loop_id", "user_id"),
    )
    op.create_table(
        "post",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("loop_id", sa.Text(), nullable=False),
        sa.Column("poster_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["loop_id"], ["loop.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["poster_id"], ["user_profile.user_id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_loop_created", "post", ["loop_id", "created_at"])
    op.create_index("ix_post_score", "post", ["score"])
    op.create_table(
        "reply",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("post_id", sa.Text(), nullable=False),
        sa.Column("replier_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("parent_id", sa.Text(), nullable=True),
        sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["replier_id"], ["user_profile.user_id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reply_post_created", "reply", ["post_id", "created_at"])
    op.create_table(
        "post_vote",
        sa.Column("post_id", sa.Text(), nullable=False),
        sa.Column("voter_id", sa.Text(), nullable=False),
        sa.Column("value", sa.SmallInteger(), nullable=False),
        sa.CheckConstraint("value IN (1, -1)", name="ck_post_vote_value"),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "voter_id"),
    )
    op.create_index("ix_post_vote_post_id", "post_vote", ["post_id"])
    op.create_table(
        "reply_vote",
        sa.Column("reply_id", sa.Text(), nullable=False),
        sa.Column("voter_id", sa.Text(), nullable=False),
        sa.Column("value", sa.SmallInteger(), nullable=False),
        sa.CheckConstraint("value IN (1, -1)", name="ck_reply_vote_value"),
        sa.ForeignKeyConstraint(["reply_id"], ["reply.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("reply_id", "voter_id"),
    )
    op.create_index("ix_reply_vote_reply_id", "reply_vote", ["reply_id"])


def downgrade() -> None:
    """Drop every table in reverse dependency order."""
    op.drop_index("ix_reply_vote_reply_id", table_name="reply_vote")
    op.drop_table("reply_vote")
    op.drop_index("ix_post_vote_post_id", table_name="post_vote")
    op.drop_table("post_vote")
    op.drop_index("ix_reply_post_created", table_name="reply")
    op.drop_table("reply")
    op.drop_index("ix_post_score", table_name="post")
    op.drop_index("ix_post_loop_created", table_name="post")
    op.drop_table("post")
    op.drop_table("loop_member")
    op.drop_table("loop")
    op.drop_table("user_profile")
