"""Vote service: ledger transitions, counter aggregates, scores and aura.

Casting a vote is a sequence of independent writes, each committed on its
own:

1. the voter's ledger record (the source of truth),
2. atomic increments of the subject's ``upvotes``/``downvotes``,
3. for posts, the recomputed trending ``score``,
4. for posts, an atomic increment of the author's ``aura_total``.

A failure in step 1 aborts the vote. Failures in steps 2-4 are logged and
reported on the returned :class:`VoteOutcome`; the ledger is never rolled
back for them because aggregates can be re-derived from it with
:meth:`VoteService.reconcile_subject` and :meth:`VoteService.reconcile_author_aura`.

Replies do not feed author aura. Only post votes do.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loop_stage.core.settings import settings
from loop_stage.db.time import utcnow
from loop_stage.models import Post, SubjectKind
from loop_stage.repositories.vote_repo import VoteRepository
from loop_stage.services.scoring import compute_score

# Configure logger for this module
logger = logging.getLogger(__name__)

VOTE_VALUES: Final = (-1, 0, 1)

STEP_COUNTERS: Final = "counters"
STEP_SCORE: Final = "score"
STEP_AURA: Final = "aura"

__all__ = [
    "AggregateUpdateFailed",
    "ReconcileResult",
    "SubjectKind",
    "SubjectNotFound",
    "VoteLedgerError",
    "VoteOutcome",
    "VoteService",
    "toggle_value",
    "vote_deltas",
]


class SubjectNotFound(LookupError):
    """Raised when the post or reply being voted on does not exist."""

    def __init__(self, subject_kind: SubjectKind, subject_id: str) -> None:
        super().__init__(f"{subject_kind.value} {subject_id} not found")
        self.subject_kind = subject_kind
        self.subject_id = subject_id


class VoteLedgerError(RuntimeError):
    """Raised when the ledger write fails; the vote did not happen."""


class AggregateUpdateFailed(RuntimeError):
    """A best-effort step after the ledger write did not apply.

    The ledger already holds the new vote. Recover by recomputing from the
    ledger rather than replaying the same delta.
    """

    def __init__(self, step: str, subject_kind: SubjectKind, subject_id: str, reason: str) -> None:
        super().__init__(f"{step} update for {subject_kind.value} {subject_id} failed: {reason}")
        self.step = step
        self.subject_kind = subject_kind
        self.subject_id = subject_id
        self.reason = reason


def vote_deltas(previous: int, intended: int) -> tuple[int, int]:
    """Return ``(upvote_delta, downvote_delta)`` for a ledger transition."""
    up_delta = int(intended == 1) - int(previous == 1)
    down_delta = int(intended == -1) - int(previous == -1)
    return up_delta, down_delta


def toggle_value(previous: int, pressed: int) -> int:
    """Return the vote after pressing an arrow: same arrow retracts to neutral."""
    if pressed not in (-1, 1):
        raise ValueError(f"pressed must be 1 or -1, got {pressed!r}")
    return 0 if previous == pressed else pressed


@dataclass
class VoteOutcome:
    """Result of one ``cast_vote`` call, with per-step status."""

    subject_kind: SubjectKind
    subject_id: str
    voter_id: str
    previous_value: int
    value: int
    upvotes_delta: int = 0
    downvotes_delta: int = 0
    aura_delta: int = 0
    ledger_written: bool = False
    counters_applied: bool = False
    score_applied: bool = False
    aura_applied: bool = False
    upvotes: int | None = None
    downvotes: int | None = None
    score: float | None = None
    failures: list[AggregateUpdateFailed] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """Whether the call moved the ledger at all."""
        return self.previous_value != self.value

    @property
    def partial(self) -> bool:
        """Whether the ledger moved but some aggregate step did not."""
        return bool(self.failures)


@dataclass
class ReconcileResult:
    """Aggregate values after recounting a subject from its ledger."""

    subject_kind: SubjectKind
    subject_id: str
    upvotes: int
    downvotes: int
    score: float | None = None


class VoteService:
    """Apply votes to posts and replies and keep their aggregates in step."""

    def __init__(
        self,
        db: Session,
        *,
        clock: Callable[[], datetime] = utcnow,
        gravity: float | None = None,
        age_offset_hours: float | None = None,
    ) -> None:
        self.db = db
        self.repo = VoteRepository(db)
        self.clock = clock
        self.gravity = settings.trending_gravity if gravity is None else gravity
        self.age_offset_hours = (
            settings.trending_age_offset_hours if age_offset_hours is None else age_offset_hours
        )

    def cast_vote(
        self,
        *,
        loop_id: str,
        subject_kind: SubjectKind,
        subject_id: str,
        voter_id: str,
        value: int,
    ) -> VoteOutcome:
        """Move the voter's stance on a subject to ``value``.

        Args:
            loop_id: Loop that must contain the subject.
            subject_kind: Whether ``subject_id`` names a post or a reply.
            subject_id: Identifier of the post or reply.
            voter_id: Caller's user id as supplied by the identity provider.
            value: Intended vote, one of -1, 0 or 1.

        Returns:
            The outcome; ``changed`` is False when the vote was already ``value``.

        Raises:
            ValueError: If ``value`` is not a valid vote.
            SubjectNotFound: If the subject does not exist in the loop.
            VoteLedgerError: If the ledger record could not be written.
        """
        if value not in VOTE_VALUES:
            raise ValueError(f"vote value must be one of {VOTE_VALUES}, got {value!r}")

        subject = self.repo.get_subject(subject_kind, subject_id, loop_id)
        if subject is None:
            raise SubjectNotFound(subject_kind, subject_id)

        previous = self.repo.get_value(subject_kind, subject_id, voter_id)
        outcome = VoteOutcome(
            subject_kind=subject_kind,
            subject_id=subject_id,
            voter_id=voter_id,
            previous_value=previous,
            value=value,
        )
        if previous == value:
            counters = self.repo.read_counters(subject_kind, subject_id)
            if counters is not None:
                outcome.upvotes, outcome.downvotes = counters
            if isinstance(subject, Post):
                outcome.score = subject.score
            return outcome

        # Capture what later steps need before any commit expires the instance.
        is_post = isinstance(subject, Post)
        poster_id = subject.poster_id if is_post else ""
        created_at = subject.created_at if is_post else None

        self._write_ledger(outcome)

        up_delta, down_delta = vote_deltas(previous, value)
        outcome.upvotes_delta = up_delta
        outcome.downvotes_delta = down_delta
        outcome.counters_applied = self._run_step(
            outcome,
            STEP_COUNTERS,
            lambda: self._increment_counters(outcome),
        )

        if is_post and created_at is not None:
            outcome.score_applied = self._run_step(
                outcome,
                STEP_SCORE,
                lambda: self._recompute_score(outcome, created_at),
            )
            outcome.aura_delta = value - previous
            outcome.aura_applied = self._run_step(
                outcome,
                STEP_AURA,
                lambda: self._increment_aura(outcome, poster_id),
            )

        if outcome.partial:
            logger.warning(
                "Vote by %s on %s %s applied partially; failed steps: %s",
                voter_id,
                subject_kind.value,
                subject_id,
                ", ".join(failure.step for failure in outcome.failures),
            )
        return outcome

    def reconcile_subject(
        self,
        *,
        loop_id: str,
        subject_kind: SubjectKind,
        subject_id: str,
    ) -> ReconcileResult:
        """Recount a subject's counters from its ledger and refresh its score.

        This is the retry path for a failed counter or score step: it derives
        absolute values from the ledger instead of replaying a delta.

        Raises:
            SubjectNotFound: If the subject does not exist in the loop.
        """
        subject = self.repo.get_subject(subject_kind, subject_id, loop_id)
        if subject is None:
            raise SubjectNotFound(subject_kind, subject_id)
        created_at = subject.created_at if isinstance(subject, Post) else None

        upvotes, downvotes = self.repo.count_votes(subject_kind, subject_id)
        self.repo.set_counters(subject_kind, subject_id, upvotes, downvotes)
        result = ReconcileResult(
            subject_kind=subject_kind,
            subject_id=subject_id,
            upvotes=upvotes,
            downvotes=downvotes,
        )
        if created_at is not None:
            result.score = self._score(upvotes, downvotes, created_at)
            self.repo.set_score(subject_id, result.score)
        self.db.commit()
        logger.info(
            "Reconciled %s %s to %d up / %d down",
            subject_kind.value,
            subject_id,
            upvotes,
            downvotes,
        )
        return result

    def reconcile_author_aura(self, user_id: str) -> int:
        """Re-derive a user's aura from the ledger of votes on their posts."""
        aura_total = self.repo.ledger_aura(user_id)
        self.repo.set_aura(user_id, aura_total)
        self.db.commit()
        logger.info("Reconciled aura for %s to %d", user_id, aura_total)
        return aura_total

    def _write_ledger(self, outcome: VoteOutcome) -> None:
        try:
            self.repo.set_value(
                outcome.subject_kind,
                outcome.subject_id,
                outcome.voter_id,
                outcome.value,
            )
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error(
                "Ledger write for %s on %s %s failed",
                outcome.voter_id,
                outcome.subject_kind.value,
                outcome.subject_id,
                exc_info=True,
            )
            raise VoteLedgerError(
                f"could not record vote on {outcome.subject_kind.value} {outcome.subject_id}"
            ) from err
        outcome.ledger_written = True

    def _run_step(self, outcome: VoteOutcome, step: str, action: Callable[[], None]) -> bool:
        try:
            action()
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            failure = AggregateUpdateFailed(step, outcome.subject_kind, outcome.subject_id, str(err))
        except AggregateUpdateFailed as err:
            self.db.rollback()
            failure = err
        else:
            return True
        logger.warning("%s", failure)
        outcome.failures.append(failure)
        return False

    def _increment_counters(self, outcome: VoteOutcome) -> None:
        touched = self.repo.increment_counters(
            outcome.subject_kind,
            outcome.subject_id,
            outcome.upvotes_delta,
            outcome.downvotes_delta,
        )
        if not touched:
            raise AggregateUpdateFailed(
                STEP_COUNTERS, outcome.subject_kind, outcome.subject_id, "subject no longer exists"
            )
        self._read_counters(outcome)

    def _read_counters(self, outcome: VoteOutcome) -> tuple[int, int]:
        counters = self.repo.read_counters(outcome.subject_kind, outcome.subject_id)
        if counters is None:
            raise AggregateUpdateFailed(
                STEP_COUNTERS, outcome.subject_kind, outcome.subject_id, "subject no longer exists"
            )
        outcome.upvotes, outcome.downvotes = counters
        return counters

    def _recompute_score(self, outcome: VoteOutcome, created_at: datetime) -> None:
        try:
            upvotes, downvotes = self._read_counters(outcome)
        except AggregateUpdateFailed as err:
            raise AggregateUpdateFailed(
                STEP_SCORE, outcome.subject_kind, outcome.subject_id, err.reason
            ) from err
        score = self._score(upvotes, downvotes, created_at)
        self.repo.set_score(outcome.subject_id, score)
        outcome.score = score

    def _increment_aura(self, outcome: VoteOutcome, poster_id: str) -> None:
        touched = self.repo.increment_aura(poster_id, outcome.aura_delta)
        if not touched:
            raise AggregateUpdateFailed(
                STEP_AURA, outcome.subject_kind, outcome.subject_id, f"author {poster_id} not found"
            )

    def _score(self, upvotes: int, downvotes: int, created_at: datetime) -> float:
        return compute_score(
            upvotes,
            downvotes,
            created_at,
            self.clock(),
            gravity=self.gravity,
            age_offset_hours=self.age_offset_hours,
        )
