# src/loop_stage/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .loop import LoopCreate, LoopResponse
from .post import PostCreate, PostResponse, ReplyCreate, ReplyResponse
from .thread import ThreadItemOut, ThreadOut
from .user import ProfileUpdate, UserResponse
from .vote import MyVote, ReconcileRequest, ReconcileResponse, VoteCreate, VoteResult

__all__ = [
    "LoopCreate", "LoopResponse",
    "PostCreate", "PostResponse", "ReplyCreate", "ReplyResponse",
    "ThreadItemOut", "ThreadOut",
    "ProfileUpdate", "UserResponse",
    "MyVote", "ReconcileRequest", "ReconcileResponse", "VoteCreate", "VoteResult",
]
