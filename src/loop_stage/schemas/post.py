"""Post and reply Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    content: str = Field(..., min_length=1, max_length=5000)


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: str
    loop_id: str
    poster_id: str
    content: str
    created_at: datetime
    upvotes: int
    downvotes: int
    score: float

    model_config = ConfigDict(from_attributes=True)


class ReplyCreate(BaseModel):
    """Schema for creating a reply; ``parent_id`` nests it under another reply."""

    content: str = Field(..., min_length=1, max_length=5000)
    parent_id: str | None = Field(None, description="Reply being answered, if any")


class ReplyResponse(BaseModel):
    """Schema for reply information returned by the API."""

    id: str
    post_id: str
    replier_id: str
    parent_id: str | None
    content: str
    created_at: datetime
    upvotes: int
    downvotes: int

    model_config = ConfigDict(from_attributes=True)
