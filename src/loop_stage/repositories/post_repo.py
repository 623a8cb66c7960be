"""Data access helpers for working with loops, posts and replies."""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from loop_stage.models import Loop, LoopMember, Post, Reply, User

__all__ = ["PostRepository"]


class PostRepository:
    """Thin wrapper around database access for content entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_loop(self, loop_id: str) -> Loop | None:
        """Return a loop by identifier."""
        return self.session.get(Loop, loop_id, populate_existing=True)

    def get_loop_by_name(self, name: str) -> Loop | None:
        """Return a loop by its unique name."""
        result = self.session.execute(select(Loop).where(Loop.name == name))
        return result.scalars().first()

    def list_loops(self) -> list[Loop]:
        """Return all loops sorted by name."""
        result = self.session.execute(
            select(Loop).order_by(Loop.name).execution_options(populate_existing=True)
        )
        return list(result.scalars())

    def create_loop(self, *, name: str, description_md: str | None) -> Loop:
        """Insert a new loop with no members."""
        loop = Loop(name=name, description_md=description_md, members_count=0)
        self.session.add(loop)
        self.session.flush()
        return loop

    def get_user(self, user_id: str) -> User | None:
        """Return a user profile by identifier."""
        return self.session.get(User, user_id, populate_existing=True)

    def get_post(self, loop_id: str, post_id: str) -> Post | None:
        """Return a post when it belongs to ``loop_id``."""
        result = self.session.execute(
            select(Post).where(Post.id == post_id, Post.loop_id == loop_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def get_reply(self, post_id: str, reply_id: str) -> Reply | None:
        """Return a reply when it belongs to ``post_id``."""
        result = self.session.execute(
            select(Reply).where(Reply.id == reply_id, Reply.post_id == post_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def list_replies(self, post_id: str) -> list[Reply]:
        """Return every reply on a post, oldest first."""
        result = self.session.execute(
            select(Reply)
            .where(Reply.post_id == post_id)
            .order_by(Reply.created_at.asc(), Reply.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    def list_recent(self, loop_ids: Iterable[str], limit: int) -> list[Post]:
        """Return posts from the given loops sorted newest first."""
        ids = list(loop_ids)
        if not ids:
            return []
        result = self.session.execute(
            select(Post)
            .where(Post.loop_id.in_(ids))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    def list_by_score(self, limit: int, loop_id: str | None = None) -> list[Post]:
        """Return posts by stored trending score, newest first on ties."""
        stmt = select(Post)
        if loop_id is not None:
            stmt = stmt.where(Post.loop_id == loop_id)
        stmt = stmt.order_by(Post.score.desc(), Post.created_at.desc(), Post.id.desc()).limit(limit)
        stmt = stmt.execution_options(populate_existing=True)
        return list(self.session.execute(stmt).scalars())

    def member_loop_ids(self, user_id: str) -> list[str]:
        """Return the identifiers of every loop the user has joined."""
        result = self.session.execute(
            select(LoopMember.loop_id).where(LoopMember.user_id == user_id)
        )
        return list(result.scalars())

    def is_member(self, loop_id: str, user_id: str) -> bool:
        """Return whether the user has joined the loop."""
        return self.session.get(LoopMember, (loop_id, user_id)) is not None

    def add_member(self, loop_id: str, user_id: str) -> bool:
        """Add a membership row; returns False when it already existed."""
        if self.is_member(loop_id, user_id):
            return False
        self.session.add(LoopMember(loop_id=loop_id, user_id=user_id))
        self.session.execute(
            update(Loop)
            .where(Loop.id == loop_id)
            .values(members_count=Loop.members_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.flush()
        return True

    def remove_member(self, loop_id: str, user_id: str) -> bool:
        """Delete a membership row; returns False when there was none."""
        membership = self.session.get(LoopMember, (loop_id, user_id))
        if membership is None:
            return False
        self.session.delete(membership)
        self.session.execute(
            update(Loop)
            .where(Loop.id == loop_id, Loop.members_count > 0)
            .values(members_count=Loop.members_count - 1)
            .execution_options(synchronize_session=False)
        )
        self.session.flush()
        return True

    def list_member_loops(self, user_id: str) -> list[Loop]:
        """Return every loop the user has joined, sorted by name."""
        result = self.session.execute(
            select(Loop)
            .join(LoopMember, LoopMember.loop_id == Loop.id)
            .where(LoopMember.user_id == user_id)
            .order_by(Loop.name)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    def list_by_poster(self, poster_id: str, limit: int) -> list[Post]:
        """Return a user's own posts across all loops, newest first."""
        result = self.session.execute(
            select(Post)
            .where(Post.poster_id == poster_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    def create_post(
        self,
        *,
        loop_id: str,
        poster_id: str,
        content: str,
        created_at: datetime,
    ) -> Post:
        """Insert a new post with zeroed aggregates and return it."""
        post = Post(
            loop_id=loop_id,
            poster_id=poster_id,
            content=content,
            created_at=created_at,
            upvotes=0,
            downvotes=0,
            score=0.0,
        )
        self.session.add(post)
        self.session.flush()
        return post

    def create_reply(
        self,
        *,
        post_id: str,
        replier_id: str,
        content: str,
        parent_id: str | None,
        created_at: datetime,
    ) -> Reply:
        """Insert a new reply with zeroed counters and return it."""
        reply = Reply(
            post_id=post_id,
            replier_id=replier_id,
            content=content,
            parent_id=parent_id,
            created_at=created_at,
            upvotes=0,
            downvotes=0,
        )
        self.session.add(reply)
        self.session.flush()
        return reply
