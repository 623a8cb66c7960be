"""SQLAlchemy models for the Loop Stage application."""

from .loop import Loop, LoopMember
from .post import Post, Reply
from .user import User
from .vote import PostVote, ReplyVote, SubjectKind

__all__ = [
    "Loop", "LoopMember",
    "Post", "Reply",
    "User",
    "PostVote", "ReplyVote", "SubjectKind",
]
