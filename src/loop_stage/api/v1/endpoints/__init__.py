# src/loop_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .feed import router as feed_router
from .loops import router as loops_router
from .posts import router as posts_router
from .users import router as users_router
from .votes import router as votes_router

__all__ = [
    "feed_router",
    "loops_router",
    "posts_router",
    "users_router",
    "votes_router",
]
