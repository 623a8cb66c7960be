# src/loop_stage/schemas/loop.py
"""Loop-related Pydantic schemas."""


from pydantic import BaseModel, ConfigDict, Field


class LoopCreate(BaseModel):
    """Schema for creating a new loop."""

    name: str = Field(..., min_length=1, max_length=80)
    description_md: str | None = None


class LoopResponse(BaseModel):
    """Schema for loop information returned by the API."""

    id: str
    name: str
    description_md: str | None
    members_count: int

    model_config = ConfigDict(from_attributes=True)
