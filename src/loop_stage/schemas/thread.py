"""Schemas for the assembled thread view."""

from typing import Any, Literal

from pydantic import BaseModel


class ThreadItemOut(BaseModel):
    """One row of a thread: the post or a reply at some depth."""

    type: Literal["post", "reply"]
    depth: int
    data: dict[str, Any]
    date: str
    caller_vote: int


class ThreadOut(BaseModel):
    """Ordered thread rows for a post detail view."""

    loop_id: str
    post_id: str
    items: list[ThreadItemOut]
