"""Thread assembly: turn a post and its flat replies into a display sequence.

Replies are stored flat with an optional ``parent_id``. Assembly rebuilds the
reply forest, walks it depth first and annotates every entry with the
caller's current vote. A reply whose parent is missing, belongs to another
post, is itself, or would close a cycle is shown as a top-level reply; it
never fails the assembly.

Assembly is read-only and safe to rerun from scratch (pull-to-refresh or
after a mutating action). Nothing is cached between calls.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final

from sqlalchemy.orm import Session

from loop_stage.db.time import as_utc
from loop_stage.models import Post, Reply, SubjectKind
from loop_stage.repositories.post_repo import PostRepository
from loop_stage.repositories.vote_repo import VoteRepository

# Configure logger for this module
logger = logging.getLogger(__name__)

ITEM_POST: Final = "post"
ITEM_REPLY: Final = "reply"

__all__ = [
    "AssembledThread",
    "AuthorLookupFailed",
    "PostNotFound",
    "ReplyForest",
    "ReplyNode",
    "ThreadAssembler",
    "ThreadItem",
    "build_reply_forest",
    "flatten_forest",
]


class PostNotFound(LookupError):
    """Raised when the requested post does not exist in the loop."""

    def __init__(self, loop_id: str, post_id: str) -> None:
        super().__init__(f"post {post_id} not found in loop {loop_id}")
        self.loop_id = loop_id
        self.post_id = post_id


class AuthorLookupFailed(LookupError):
    """Raised when an author's display name cannot be resolved."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"no display name for user {user_id}")
        self.user_id = user_id


@dataclass
class ReplyNode:
    """A reply and its children in creation order."""

    reply: Reply
    children: list[ReplyNode] = field(default_factory=list)


@dataclass
class ReplyForest:
    """Top-level replies plus an id index over every node."""

    roots: list[ReplyNode]
    index: dict[str, ReplyNode]


@dataclass
class ThreadItem:
    """One display row: the post or a reply with its indentation depth."""

    type: str
    depth: int
    data: dict[str, Any]
    date: str
    caller_vote: int


@dataclass
class AssembledThread:
    """Ordered thread rows with an id index for constant-time updates."""

    loop_id: str
    post_id: str
    caller_id: str
    items: list[ThreadItem]
    index: dict[str, ThreadItem]

    def apply_vote_delta(self, subject_id: str, up_delta: int, down_delta: int) -> ThreadItem:
        """Adjust the counters shown for one post or reply.

        Raises:
            KeyError: If ``subject_id`` is not part of this thread.
        """
        item = self.index[subject_id]
        item.data["upvotes"] += up_delta
        item.data["downvotes"] += down_delta
        return item


def _creation_key(reply: Reply) -> tuple[datetime, str]:
    return as_utc(reply.created_at), reply.id


def _closes_cycle(reply_id: str, parents: dict[str, str | None]) -> bool:
    seen: set[str] = set()
    current = parents.get(reply_id)
    while current is not None:
        if current == reply_id:
            return True
        if current in seen:
            # Loops back into a cycle that does not include reply_id.
            return False
        seen.add(current)
        current = parents.get(current)
    return False


def build_reply_forest(replies: Iterable[Reply]) -> ReplyForest:
    """Attach each reply under its parent and return the resulting forest.

    Replies are ordered by creation time (then id), which fixes the order of
    roots and of every sibling group. When parent links form a cycle, the
    earliest-created reply of the cycle becomes a root.
    """
    ordered = sorted(replies, key=_creation_key)
    index = {reply.id: ReplyNode(reply) for reply in ordered}

    parents: dict[str, str | None] = {}
    for reply in ordered:
        parent_id = reply.parent_id
        if parent_id is not None and (parent_id == reply.id or parent_id not in index):
            logger.debug(
                "Reply %s names unknown parent %s; showing it at top level",
                reply.id,
                parent_id,
            )
            parent_id = None
        parents[reply.id] = parent_id

    for reply in ordered:
        if _closes_cycle(reply.id, parents):
            logger.debug("Reply %s closes a parent cycle; showing it at top level", reply.id)
            parents[reply.id] = None

    roots: list[ReplyNode] = []
    for reply in ordered:
        node = index[reply.id]
        parent_id = parents[reply.id]
        if parent_id is None:
            roots.append(node)
        else:
            index[parent_id].children.append(node)
    return ReplyForest(roots=roots, index=index)


def flatten_forest(roots: list[ReplyNode]) -> list[tuple[ReplyNode, int]]:
    """Walk the forest depth first, parents before children.

    Returns:
        ``(node, depth)`` pairs with roots at depth 0.
    """
    flat: list[tuple[ReplyNode, int]] = []
    stack = [(node, 0) for node in reversed(roots)]
    while stack:
        node, depth = stack.pop()
        flat.append((node, depth))
        stack.extend((child, depth + 1) for child in reversed(node.children))
    return flat


def _date_label(value: datetime) -> str:
    return as_utc(value).date().isoformat()


class _AuthorNames:
    """Display names resolved at most once per author within one assembly."""

    def __init__(self, repo: PostRepository) -> None:
        self.repo = repo
        self._names: dict[str, str] = {}

    def lookup(self, user_id: str) -> str:
        user = self.repo.get_user(user_id)
        if user is None or not user.shown_name:
            raise AuthorLookupFailed(user_id)
        return user.shown_name

    def resolve(self, user_id: str) -> str:
        if user_id in self._names:
            return self._names[user_id]
        try:
            name = self.lookup(user_id)
        except AuthorLookupFailed:
            logger.info("Falling back to raw id for author %s", user_id)
            name = user_id
        self._names[user_id] = name
        return name


class ThreadAssembler:
    """Build the display sequence for a post detail view."""

    def __init__(self, db: Session) -> None:
        self.posts = PostRepository(db)
        self.votes = VoteRepository(db)

    def assemble(self, *, loop_id: str, post_id: str, caller_id: str) -> AssembledThread:
        """Load a post and its replies and return the ordered thread.

        Args:
            loop_id: Loop containing the post.
            post_id: Post to assemble.
            caller_id: User whose votes annotate each row.

        Raises:
            PostNotFound: If the post does not exist in the loop.
        """
        post = self.posts.get_post(loop_id, post_id)
        if post is None:
            raise PostNotFound(loop_id, post_id)

        replies = self.posts.list_replies(post.id)
        forest = build_reply_forest(replies)

        post_votes = self.votes.caller_votes(SubjectKind.POST, [post.id], caller_id)
        reply_votes = self.votes.caller_votes(
            SubjectKind.REPLY,
            [reply.id for reply in replies],
            caller_id,
        )
        names = _AuthorNames(self.posts)

        post_item = ThreadItem(
            type=ITEM_POST,
            depth=0,
            data=self._post_data(post, names),
            date=_date_label(post.created_at),
            caller_vote=post_votes.get(post.id, 0),
        )
        items = [post_item]
        index = {post.id: post_item}
        for node, depth in flatten_forest(forest.roots):
            reply = node.reply
            item = ThreadItem(
                type=ITEM_REPLY,
                depth=depth,
                data=self._reply_data(reply, names),
                date=_date_label(reply.created_at),
                caller_vote=reply_votes.get(reply.id, 0),
            )
            items.append(item)
            index[reply.id] = item

        return AssembledThread(
            loop_id=loop_id,
            post_id=post.id,
            caller_id=caller_id,
            items=items,
            index=index,
        )

    def _loop_name(self, loop_id: str) -> str:
        loop = self.posts.get_loop(loop_id)
        if loop is None or not loop.name:
            return loop_id
        return loop.name

    def _post_data(self, post: Post, names: _AuthorNames) -> dict[str, Any]:
        return {
            "id": post.id,
            "loop_id": post.loop_id,
            "loop_name": self._loop_name(post.loop_id),
            "poster_id": post.poster_id,
            "poster_name": names.resolve(post.poster_id),
            "content": post.content,
            "created_at": as_utc(post.created_at),
            "upvotes": post.upvotes,
            "downvotes": post.downvotes,
            "score": post.score,
        }

    @staticmethod
    def _reply_data(reply: Reply, names: _AuthorNames) -> dict[str, Any]:
        return {
            "id": reply.id,
            "post_id": reply.post_id,
            "parent_id": reply.parent_id,
            "replier_id": reply.replier_id,
            "username": names.resolve(reply.replier_id),
            "content": reply.content,
            "created_at": as_utc(reply.created_at),
            "upvotes": reply.upvotes,
            "downvotes": reply.downvotes,
        }
