"""User profile endpoints, including each user's aura."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError

from loop_stage.core.settings import settings
from loop_stage.models import Loop, Post, User
from loop_stage.repositories.post_repo import PostRepository
from loop_stage.schemas.loop import LoopResponse
from loop_stage.schemas.post import PostResponse
from loop_stage.schemas.user import ProfileUpdate, UserResponse
from loop_stage.services.post_service import joined_loops, user_posts
from loop_stage.services.user_service import get_user, upsert_profile
from loop_stage.services.votes import VoteService

from ..dependencies import CurrentUserDep, CurrentUserIdDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/me", response_model=UserResponse)
async def update_my_profile(
    profile: ProfileUpdate,
    user_id: CurrentUserIdDep,
    db: SessionDep,
) -> User:
    """Create or update the caller's profile."""
    try:
        return upsert_profile(db, user_id, profile)
    except IntegrityError as err:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken",
        ) from err


@router.get("/me", response_model=UserResponse)
async def get_my_profile(current_user: CurrentUserDep) -> User:
    """Return the caller's profile."""
    return current_user


@router.get("/me/loops", response_model=list[LoopResponse])
async def get_my_loops(current_user: CurrentUserDep, db: SessionDep) -> list[Loop]:
    """List the loops the caller has joined."""
    return joined_loops(repo=PostRepository(db), user_id=current_user.user_id)


@router.get("/{user_id}", response_model=UserResponse)
async def get_profile(user_id: str, db: SessionDep) -> User:
    """Return a user's public profile and aura."""
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/{user_id}/posts", response_model=list[PostResponse])
async def get_user_posts(
    user_id: str,
    db: SessionDep,
    limit: int = Query(settings.feed_default_limit, ge=1, le=settings.feed_max_limit),
) -> list[Post]:
    """List a user's posts across every loop, newest first."""
    if get_user(db, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user_posts(repo=PostRepository(db), user_id=user_id, limit=limit)


@router.post("/{user_id}/reconcile-aura", response_model=UserResponse)
async def reconcile_aura(
    user_id: str,
    _current_user: CurrentUserDep,
    db: SessionDep,
) -> User:
    """Re-derive a user's aura from the votes cast on their posts."""
    if get_user(db, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    VoteService(db).reconcile_author_aura(user_id)
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
