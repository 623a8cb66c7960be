# src/loop_stage/api/v1/endpoints/votes.py
"""Vote-related endpoints for the Loop Stage API."""

import logging

from fastapi import APIRouter, HTTPException, status

from loop_stage.models import SubjectKind
from loop_stage.repositories.vote_repo import VoteRepository
from loop_stage.schemas.vote import (
    MyVote,
    ReconcileRequest,
    ReconcileResponse,
    VoteCreate,
    VoteFailure,
    VoteResult,
)
from loop_stage.services.votes import (
    SubjectNotFound,
    VoteLedgerError,
    VoteOutcome,
    VoteService,
)

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/votes", tags=["votes"])
logger = logging.getLogger(__name__)


def _to_vote_result(outcome: VoteOutcome) -> VoteResult:
    return VoteResult(
        subject_kind=outcome.subject_kind,
        subject_id=outcome.subject_id,
        previous_value=outcome.previous_value,
        value=outcome.value,
        changed=outcome.changed,
        upvotes=outcome.upvotes,
        downvotes=outcome.downvotes,
        score=outcome.score,
        counters_applied=outcome.counters_applied,
        score_applied=outcome.score_applied,
        aura_applied=outcome.aura_applied,
        aura_delta=outcome.aura_delta,
        partial=outcome.partial,
        failures=[
            VoteFailure(step=failure.step, reason=failure.reason) for failure in outcome.failures
        ],
    )


@router.post("/", response_model=VoteResult)
async def cast_vote(
    vote_data: VoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> VoteResult:
    """Cast, change or retract the caller's vote on a post or reply.

    A repeated vote with the same value is a no-op. When the ledger write
    succeeds but an aggregate step does not, the response is still 200 with
    ``partial`` set; the vote itself stands.
    """
    service = VoteService(db)
    try:
        outcome = service.cast_vote(
            loop_id=vote_data.loop_id,
            subject_kind=vote_data.subject_kind,
            subject_id=vote_data.subject_id,
            voter_id=current_user.user_id,
            value=vote_data.value,
        )
    except SubjectNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{err.subject_kind.value.capitalize()} not found",
        ) from err
    except VoteLedgerError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vote could not be recorded",
        ) from err
    return _to_vote_result(outcome)


@router.get("/{subject_kind}/{subject_id}/my-vote", response_model=MyVote)
async def get_my_vote(
    subject_kind: SubjectKind,
    subject_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MyVote:
    """Get the caller's current vote on a post or reply (0 when neutral)."""
    value = VoteRepository(db).get_value(subject_kind, subject_id, current_user.user_id)
    return MyVote(subject_kind=subject_kind, subject_id=subject_id, value=value)


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_votes(
    payload: ReconcileRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ReconcileResponse:
    """Recount a subject's counters from its ledger and refresh its score."""
    service = VoteService(db)
    try:
        result = service.reconcile_subject(
            loop_id=payload.loop_id,
            subject_kind=payload.subject_kind,
            subject_id=payload.subject_id,
        )
    except SubjectNotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{err.subject_kind.value.capitalize()} not found",
        ) from err
    logger.info(
        "Reconcile of %s %s requested by %s",
        payload.subject_kind.value,
        payload.subject_id,
        current_user.user_id,
    )
    return ReconcileResponse(
        subject_kind=result.subject_kind,
        subject_id=result.subject_id,
        upvotes=result.upvotes,
        downvotes=result.downvotes,
        score=result.score,
    )
