"""SQLAlchemy models for loops (communities) and their membership."""
from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from loop_stage.db.ids import new_id
from loop_stage.db.session import Base


class Loop(Base):
    """Loop metadata used for grouping posts and members."""

    __tablename__ = "loop"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    description_md: Mapped[str | None] = mapped_column(Text, nullable=True)
    members_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class LoopMember(Base):
    """Join table mapping users into loops."""

    __tablename__ = "loop_member"

    loop_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("loop.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("user_profile.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    # No extra columns; presence implies membership.
