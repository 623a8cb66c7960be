"""CRUD-style helpers for managing user profiles."""
from __future__ import annotations

from sqlalchemy.orm import Session

from loop_stage.models.user import User
from loop_stage.schemas.user import ProfileUpdate

__all__ = [
    "get_user",
    "upsert_profile",
]


def get_user(db: Session, user_id: str) -> User | None:
    """Return a single user by primary key."""
    return db.get(User, user_id, populate_existing=True)


def upsert_profile(db: Session, user_id: str, update_data: ProfileUpdate) -> User:
    """Create the caller's profile on first use, then apply partial updates.

    ``aura_total`` is never written here; only votes and reconciliation move it.
    """
    db_user = db.get(User, user_id)
    if db_user is None:
        db_user = User(user_id=user_id, aura_total=0)
    update_dict = update_data.model_dump(exclude_unset=True)
    for key, value in update_dict.items():
        setattr(db_user, key, value)

    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user
