# src/loop_stage/models/user.py
"""SQLAlchemy models for user profiles and reputation."""

from __future__ import annotations

from sqlalchemy import JSON, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from loop_stage.db.session import Base


class User(Base):
    """Profile keyed by the identity provider's stable user id.

    ``aura_total`` is the running reputation total driven by net votes on the
    user's posts. Each vote moves it with an atomic increment; reconciliation
    overwrites it with the total re-derived from the vote records.
    """

    __tablename__ = "user_profile"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    username: Mapped[str | None] = mapped_column(Text, unique=True, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    interests: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    aura_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def shown_name(self) -> str | None:
        """Return the name shown next to content, preferring the display name."""
        return self.display_name or self.username
