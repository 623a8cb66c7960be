"""Data access layer."""

from .post_repo import PostRepository
from .vote_repo import VoteRepository

__all__ = ["PostRepository", "VoteRepository"]
