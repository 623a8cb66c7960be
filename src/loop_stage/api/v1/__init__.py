# src/loop_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    feed_router,
    loops_router,
    posts_router,
    users_router,
    votes_router,
)

__all__ = [
    "feed_router",
    "loops_router",
    "posts_router",
    "users_router",
    "votes_router",
]
