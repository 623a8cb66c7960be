# src/loop_stage/api/v1/endpoints/feed.py
"""Feed endpoints for the Loop Stage API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from loop_stage.core.settings import settings
from loop_stage.models import Post
from loop_stage.repositories.post_repo import PostRepository
from loop_stage.schemas.post import PostResponse
from loop_stage.services.post_service import LoopNotFound, home_feed, trending_feed

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("/home", response_model=list[PostResponse])
async def get_home_feed(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(settings.feed_default_limit, ge=1, le=settings.feed_max_limit),
) -> list[Post]:
    """Newest posts from the loops the caller has joined."""
    return home_feed(repo=PostRepository(db), user_id=current_user.user_id, limit=limit)


@router.get("/trending", response_model=list[PostResponse])
async def get_trending_feed(
    db: SessionDep,
    loop_id: str | None = None,
    limit: int = Query(settings.feed_default_limit, ge=1, le=settings.feed_max_limit),
) -> list[Post]:
    """Posts ranked by trending score, optionally within one loop."""
    try:
        return trending_feed(repo=PostRepository(db), limit=limit, loop_id=loop_id)
    except LoopNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loop not found",
        ) from err
