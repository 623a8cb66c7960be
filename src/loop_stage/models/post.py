# src/loop_stage/models/post.py
"""SQLAlchemy models for posts, replies and their vote aggregates."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from loop_stage.db.ids import new_id
from loop_stage.db.session import Base
from loop_stage.db.time import utcnow


class Post(Base):
    """Primary content entity produced by users inside a loop.

    ``upvotes``/``downvotes`` are denormalized counters over the post's vote
    ledger; ``score`` is the trending rank derived from them and the post age.
    """

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_loop_created", "loop_id", "created_at"),
        Index("ix_post_score", "score"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    loop_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("loop.id", ondelete="CASCADE"),
        nullable=False,
    )
    poster_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("user_profile.user_id"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)


class Reply(Base):
    """Threaded comment on a post.

    Replies are not ranked, so they carry counters but no score.
    """

    __tablename__ = "reply"
    __table_args__ = (Index("ix_reply_post_created", "post_id", "created_at"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    post_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
    )
    replier_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("user_profile.user_id"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Another reply on the same post; NULL for top-level replies.
    # Not a foreign key: parents may be deleted and readers demote orphans to roots.
    parent_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
