"""Vote-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from loop_stage.models.vote import SubjectKind


class VoteCreate(BaseModel):
    """Schema for casting, changing or retracting a vote."""

    loop_id: str = Field(..., min_length=1)
    subject_kind: SubjectKind = Field(..., description="post or reply")
    subject_id: str = Field(..., min_length=1)
    value: Literal[-1, 0, 1] = Field(
        ...,
        description="1 for upvote, -1 for downvote, 0 to retract",
    )


class VoteFailure(BaseModel):
    """A best-effort aggregate step that did not apply."""

    step: str
    reason: str


class VoteResult(BaseModel):
    """Outcome of a vote, including per-step status."""

    subject_kind: SubjectKind
    subject_id: str
    previous_value: int
    value: int
    changed: bool
    upvotes: int | None
    downvotes: int | None
    score: float | None
    counters_applied: bool
    score_applied: bool
    aura_applied: bool
    aura_delta: int
    partial: bool
    failures: list[VoteFailure] = Field(default_factory=list)


class MyVote(BaseModel):
    """The caller's current stance on a subject."""

    subject_kind: SubjectKind
    subject_id: str
    value: int


class ReconcileRequest(BaseModel):
    """Schema asking for a subject's counters to be recounted from its ledger."""

    loop_id: str = Field(..., min_length=1)
    subject_kind: SubjectKind
    subject_id: str = Field(..., min_length=1)


class ReconcileResponse(BaseModel):
    """Counters after reconciliation."""

    subject_kind: SubjectKind
    subject_id: str
    upvotes: int
    downvotes: int
    score: float | None
