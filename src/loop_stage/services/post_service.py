"""Service-level helpers for loops, posts, replies and feeds."""
from __future__ import annotations

import logging
from datetime import datetime

from loop_stage.db.time import utcnow
from loop_stage.models import Loop, Post, Reply
from loop_stage.repositories.post_repo import PostRepository
from loop_stage.services.thread import PostNotFound

# Configure logger for this module
logger = logging.getLogger(__name__)

__all__ = [
    "InvalidParent",
    "LoopNameTaken",
    "LoopNotFound",
    "NotLoopMember",
    "create_loop",
    "create_post",
    "create_reply",
    "home_feed",
    "join_loop",
    "joined_loops",
    "leave_loop",
    "trending_feed",
    "user_posts",
]


class LoopNotFound(LookupError):
    """Raised when a loop identifier does not resolve."""


class LoopNameTaken(ValueError):
    """Raised when creating a loop whose name already exists."""


class NotLoopMember(PermissionError):
    """Raised when a user writes into a loop they have not joined."""


class InvalidParent(ValueError):
    """Raised when a reply names a parent that is not a reply on the same post."""


def _require_loop(repo: PostRepository, loop_id: str) -> Loop:
    loop = repo.get_loop(loop_id)
    if loop is None:
        raise LoopNotFound(f"loop {loop_id} not found")
    return loop


def create_loop(
    *,
    repo: PostRepository,
    name: str,
    description_md: str | None,
    creator_id: str,
) -> Loop:
    """Create a loop and make its creator the first member.

    Raises:
        LoopNameTaken: If another loop already uses ``name``.
    """
    if repo.get_loop_by_name(name) is not None:
        raise LoopNameTaken(f"loop name {name!r} already exists")
    loop = repo.create_loop(name=name, description_md=description_md)
    repo.add_member(loop.id, creator_id)
    logger.info("Loop %s (%s) created by %s", loop.id, name, creator_id)
    return loop


def join_loop(*, repo: PostRepository, loop_id: str, user_id: str) -> bool:
    """Join a loop; returns False when the user was already a member."""
    _require_loop(repo, loop_id)
    return repo.add_member(loop_id, user_id)


def leave_loop(*, repo: PostRepository, loop_id: str, user_id: str) -> bool:
    """Leave a loop; returns False when the user was not a member.

    Posts already made in the loop stay where they are.
    """
    _require_loop(repo, loop_id)
    left = repo.remove_member(loop_id, user_id)
    if left:
        logger.info("User %s left loop %s", user_id, loop_id)
    return left


def joined_loops(*, repo: PostRepository, user_id: str) -> list[Loop]:
    """Return the loops a user belongs to."""
    return repo.list_member_loops(user_id)


def user_posts(*, repo: PostRepository, user_id: str, limit: int) -> list[Post]:
    """Return a user's own posts across every loop, newest first."""
    return repo.list_by_poster(user_id, limit)


def create_post(
    *,
    repo: PostRepository,
    loop_id: str,
    poster_id: str,
    content: str,
    now: datetime | None = None,
) -> Post:
    """Create a post with zeroed vote aggregates.

    Raises:
        LoopNotFound: If the loop does not exist.
        NotLoopMember: If the poster has not joined the loop.
    """
    _require_loop(repo, loop_id)
    if not repo.is_member(loop_id, poster_id):
        raise NotLoopMember(f"user {poster_id} is not a member of loop {loop_id}")
    post = repo.create_post(
        loop_id=loop_id,
        poster_id=poster_id,
        content=content,
        created_at=now or utcnow(),
    )
    logger.info("Post %s created in loop %s by %s", post.id, loop_id, poster_id)
    return post


def create_reply(
    *,
    repo: PostRepository,
    loop_id: str,
    post_id: str,
    replier_id: str,
    content: str,
    parent_id: str | None = None,
    now: datetime | None = None,
) -> Reply:
    """Create a reply, optionally nested under another reply of the same post.

    Raises:
        PostNotFound: If the post does not exist in the loop.
        InvalidParent: If ``parent_id`` is not a reply on this post.
    """
    post = repo.get_post(loop_id, post_id)
    if post is None:
        raise PostNotFound(loop_id, post_id)
    if parent_id is not None and repo.get_reply(post.id, parent_id) is None:
        raise InvalidParent(f"reply {parent_id} is not part of post {post_id}")
    return repo.create_reply(
        post_id=post.id,
        replier_id=replier_id,
        content=content,
        parent_id=parent_id,
        created_at=now or utcnow(),
    )


def home_feed(*, repo: PostRepository, user_id: str, limit: int) -> list[Post]:
    """Return the newest posts across every loop the user has joined."""
    return repo.list_recent(repo.member_loop_ids(user_id), limit)


def trending_feed(
    *,
    repo: PostRepository,
    limit: int,
    loop_id: str | None = None,
) -> list[Post]:
    """Return posts ranked by their stored trending score.

    Raises:
        LoopNotFound: If ``loop_id`` is given and does not exist.
    """
    if loop_id is not None:
        _require_loop(repo, loop_id)
    return repo.list_by_score(limit, loop_id=loop_id)
