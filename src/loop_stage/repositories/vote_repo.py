"""Data access helpers for the vote ledger and subject aggregates.

Counter and aura changes are issued as single ``UPDATE ... SET x = x + :delta``
statements so concurrent voters never lose each other's increments.
"""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from loop_stage.models import Post, PostVote, Reply, ReplyVote, SubjectKind, User

__all__ = ["VoteRepository"]

_SUBJECT_MODELS: dict[SubjectKind, type[Post] | type[Reply]] = {
    SubjectKind.POST: Post,
    SubjectKind.REPLY: Reply,
}
_LEDGER_MODELS: dict[SubjectKind, type[PostVote] | type[ReplyVote]] = {
    SubjectKind.POST: PostVote,
    SubjectKind.REPLY: ReplyVote,
}


def _ledger_subject_column(kind: SubjectKind):  # type: ignore[no-untyped-def]
    if kind is SubjectKind.POST:
        return PostVote.post_id
    return ReplyVote.reply_id


class VoteRepository:
    """Thin wrapper around database access for ledger rows and counters."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_subject(self, kind: SubjectKind, subject_id: str, loop_id: str) -> Post | Reply | None:
        """Return the post or reply when it exists inside ``loop_id``."""
        if kind is SubjectKind.POST:
            stmt = select(Post).where(Post.id == subject_id, Post.loop_id == loop_id)
        else:
            stmt = (
                select(Reply)
                .join(Post, Post.id == Reply.post_id)
                .where(Reply.id == subject_id, Post.loop_id == loop_id)
            )
        stmt = stmt.execution_options(populate_existing=True)
        return self.session.execute(stmt).scalars().first()

    def get_value(self, kind: SubjectKind, subject_id: str, voter_id: str) -> int:
        """Return the voter's ledger value, 0 when there is no record."""
        record = self.session.get(_LEDGER_MODELS[kind], (subject_id, voter_id))
        if record is None:
            return 0
        return int(record.value)

    def set_value(self, kind: SubjectKind, subject_id: str, voter_id: str, value: int) -> None:
        """Upsert the voter's ledger record, deleting it for a neutral vote."""
        model = _LEDGER_MODELS[kind]
        record = self.session.get(model, (subject_id, voter_id))
        if value == 0:
            if record is not None:
                self.session.delete(record)
        elif record is None:
            if kind is SubjectKind.POST:
                self.session.add(PostVote(post_id=subject_id, voter_id=voter_id, value=value))
            else:
                self.session.add(ReplyVote(reply_id=subject_id, voter_id=voter_id, value=value))
        else:
            record.value = value
        self.session.flush()

    def caller_votes(
        self,
        kind: SubjectKind,
        subject_ids: Iterable[str],
        voter_id: str,
    ) -> dict[str, int]:
        """Return ``{subject_id: value}`` for every record the voter holds.

        Subjects without a record are simply absent from the mapping.
        """
        ids = list(subject_ids)
        if not ids:
            return {}
        model = _LEDGER_MODELS[kind]
        column = _ledger_subject_column(kind)
        rows = self.session.execute(
            select(column, model.value).where(column.in_(ids), model.voter_id == voter_id)
        )
        return {subject_id: int(value) for subject_id, value in rows}

    def increment_counters(
        self,
        kind: SubjectKind,
        subject_id: str,
        up_delta: int,
        down_delta: int,
    ) -> int:
        """Atomically add deltas to the subject's counters.

        Returns:
            Number of rows touched; 0 means the subject disappeared.
        """
        model = _SUBJECT_MODELS[kind]
        result = self.session.execute(
            update(model)
            .where(model.id == subject_id)
            .values(
                upvotes=model.upvotes + up_delta,
                downvotes=model.downvotes + down_delta,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def read_counters(self, kind: SubjectKind, subject_id: str) -> tuple[int, int] | None:
        """Return the stored ``(upvotes, downvotes)`` straight from the database."""
        model = _SUBJECT_MODELS[kind]
        row = self.session.execute(
            select(model.upvotes, model.downvotes).where(model.id == subject_id)
        ).first()
        if row is None:
            return None
        return int(row.upvotes), int(row.downvotes)

    def set_counters(self, kind: SubjectKind, subject_id: str, upvotes: int, downvotes: int) -> int:
        """Overwrite the counters; only reconciliation from the ledger may do this."""
        model = _SUBJECT_MODELS[kind]
        result = self.session.execute(
            update(model)
            .where(model.id == subject_id)
            .values(upvotes=upvotes, downvotes=downvotes)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def count_votes(self, kind: SubjectKind, subject_id: str) -> tuple[int, int]:
        """Count up and down records in the ledger for one subject."""
        model = _LEDGER_MODELS[kind]
        column = _ledger_subject_column(kind)
        row = self.session.execute(
            select(
                func.coalesce(func.sum(case((model.value == 1, 1), else_=0)), 0),
                func.coalesce(func.sum(case((model.value == -1, 1), else_=0)), 0),
            ).where(column == subject_id)
        ).one()
        return int(row[0]), int(row[1])

    def set_score(self, post_id: str, score: float) -> int:
        """Persist a recomputed trending score."""
        result = self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(score=score)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def increment_aura(self, user_id: str, delta: int) -> int:
        """Atomically add ``delta`` to the user's aura."""
        result = self.session.execute(
            update(User)
            .where(User.user_id == user_id)
            .values(aura_total=User.aura_total + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def ledger_aura(self, user_id: str) -> int:
        """Sum the ledger values of every vote cast on the user's posts."""
        total = self.session.execute(
            select(func.coalesce(func.sum(PostVote.value), 0))
            .join(Post, Post.id == PostVote.post_id)
            .where(Post.poster_id == user_id)
        ).scalar_one()
        return int(total)

    def set_aura(self, user_id: str, aura_total: int) -> int:
        """Overwrite the user's aura with a value re-derived from the ledger."""
        result = self.session.execute(
            update(User)
            .where(User.user_id == user_id)
            .values(aura_total=aura_total)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
