# src/loop_stage/models/vote.py
"""Models capturing the vote ledger for posts and replies."""

from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Index, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from loop_stage.db.session import Base


class PostVote(Base):
    """Per-user vote on a post.

    A neutral vote is the absence of a row; stored values are 1 or -1 only.
    """

    __tablename__ = "post_vote"
    __table_args__ = (
        CheckConstraint("value IN (1, -1)", name="ck_post_vote_value"),
        Index("ix_post_vote_post_id", "post_id"),
    )

    post_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voter_id: Mapped[str] = mapped_column(Text, primary_key=True)

    # Composite primary key prevents duplicate votes from the same user.

    # 1 = upvote, -1 = downvote.
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)


class ReplyVote(Base):
    """Per-user vote on a reply."""

    __tablename__ = "reply_vote"
    __table_args__ = (
        CheckConstraint("value IN (1, -1)", name="ck_reply_vote_value"),
        Index("ix_reply_vote_reply_id", "reply_id"),
    )

    reply_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("reply.id", ondelete="CASCADE"),
        primary_key=True,
    )
    voter_id: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)


class SubjectKind(str, Enum):
    """Kinds of content that can be voted on."""

    POST = "post"
    REPLY = "reply"
