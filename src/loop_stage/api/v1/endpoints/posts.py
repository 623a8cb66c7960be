# src/loop_stage/api/v1/endpoints/posts.py
"""Post, reply and thread endpoints for the Loop Stage API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from loop_stage.models import Post, Reply
from loop_stage.repositories.post_repo import PostRepository
from loop_stage.schemas.post import PostCreate, PostResponse, ReplyCreate, ReplyResponse
from loop_stage.schemas.thread import ThreadItemOut, ThreadOut
from loop_stage.services.post_service import (
    InvalidParent,
    LoopNotFound,
    NotLoopMember,
    create_post,
    create_reply,
)
from loop_stage.services.thread import PostNotFound, ThreadAssembler

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/loops/{loop_id}/posts", tags=["posts"])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_loop_post(
    loop_id: str,
    post_data: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Post:
    """Create a new post in a loop the caller has joined."""
    try:
        post = create_post(
            repo=PostRepository(db),
            loop_id=loop_id,
            poster_id=current_user.user_id,
            content=post_data.content,
        )
    except LoopNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loop not found",
        ) from err
    except NotLoopMember as err:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Join the loop before posting",
        ) from err
    db.commit()
    db.refresh(post)
    return post


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(loop_id: str, post_id: str, db: SessionDep) -> Post:
    """Get a specific post by ID."""
    post = PostRepository(db).get_post(loop_id, post_id)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return post


@router.post(
    "/{post_id}/replies",
    response_model=ReplyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_post_reply(
    loop_id: str,
    post_id: str,
    reply_data: ReplyCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Reply:
    """Reply to a post, or to another reply on it."""
    try:
        reply = create_reply(
            repo=PostRepository(db),
            loop_id=loop_id,
            post_id=post_id,
            replier_id=current_user.user_id,
            content=reply_data.content,
            parent_id=reply_data.parent_id,
        )
    except PostNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        ) from err
    except InvalidParent as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Parent reply does not belong to this post",
        ) from err
    db.commit()
    db.refresh(reply)
    return reply


@router.get("/{post_id}/thread", response_model=ThreadOut)
async def get_thread(
    loop_id: str,
    post_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ThreadOut:
    """Return the post followed by its replies in depth-first order."""
    try:
        thread = ThreadAssembler(db).assemble(
            loop_id=loop_id,
            post_id=post_id,
            caller_id=current_user.user_id,
        )
    except PostNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        ) from err
    return ThreadOut(
        loop_id=thread.loop_id,
        post_id=thread.post_id,
        items=[
            ThreadItemOut(
                type=item.type,
                depth=item.depth,
                data=item.data,
                date=item.date,
                caller_vote=item.caller_vote,
            )
            for item in thread.items
        ],
    )
