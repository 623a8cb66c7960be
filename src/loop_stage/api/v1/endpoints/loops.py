# src/loop_stage/api/v1/endpoints/loops.py
"""Loop-related endpoints for the Loop Stage API."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException, Query, status

from loop_stage.core.settings import settings
from loop_stage.models import Loop, Post
from loop_stage.repositories.post_repo import PostRepository
from loop_stage.schemas.loop import LoopCreate, LoopResponse
from loop_stage.schemas.post import PostResponse
from loop_stage.services.post_service import (
    LoopNameTaken,
    LoopNotFound,
    create_loop,
    join_loop,
    leave_loop,
)

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/loops", tags=["loops"])


def _get_loop_or_404(repo: PostRepository, loop_id: str) -> Loop:
    loop = repo.get_loop(loop_id)
    if loop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loop not found",
        )
    return loop


@router.get("/", response_model=list[LoopResponse])
async def list_loops(db: SessionDep) -> list[Loop]:
    """List all loops."""
    return PostRepository(db).list_loops()


@router.get("/{loop_id}", response_model=LoopResponse)
async def get_loop(loop_id: str, db: SessionDep) -> Loop:
    """Get a specific loop by ID."""
    return _get_loop_or_404(PostRepository(db), loop_id)


@router.post("/", response_model=LoopResponse, status_code=status.HTTP_201_CREATED)
async def create_new_loop(
    loop_data: LoopCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Loop:
    """Create a new loop; the creator joins it."""
    repo = PostRepository(db)
    try:
        loop = create_loop(
            repo=repo,
            name=loop_data.name,
            description_md=loop_data.description_md,
            creator_id=current_user.user_id,
        )
    except LoopNameTaken as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Loop name already exists",
        ) from err
    db.commit()
    db.refresh(loop)
    return loop


@router.post("/{loop_id}/join")
async def join(
    loop_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict[str, str]:
    """Join a loop."""
    try:
        joined = join_loop(repo=PostRepository(db), loop_id=loop_id, user_id=current_user.user_id)
    except LoopNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loop not found",
        ) from err
    if not joined:
        return {"status": "already_member"}
    db.commit()
    return {"status": "joined"}


@router.post("/{loop_id}/leave")
async def leave(
    loop_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict[str, str]:
    """Leave a loop."""
    try:
        left = leave_loop(repo=PostRepository(db), loop_id=loop_id, user_id=current_user.user_id)
    except LoopNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loop not found",
        ) from err
    if not left:
        return {"status": "not_member"}
    db.commit()
    return {"status": "left"}


@router.get("/{loop_id}/posts", response_model=list[PostResponse])
async def list_loop_posts(
    loop_id: str,
    db: SessionDep,
    sort: Literal["recent", "trending"] = "recent",
    limit: int = Query(settings.feed_default_limit, ge=1, le=settings.feed_max_limit),
) -> list[Post]:
    """List posts in a loop, newest first or by trending score."""
    repo = PostRepository(db)
    _get_loop_or_404(repo, loop_id)
    if sort == "trending":
        return repo.list_by_score(limit, loop_id=loop_id)
    return repo.list_recent([loop_id], limit)
