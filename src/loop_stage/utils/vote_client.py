"""Client-side optimistic vote state for thread views.

A client shows a vote immediately, sends it, then either confirms it with
the server's numbers or rolls it back. The state is a write-through cache
over an :class:`~loop_stage.services.thread.AssembledThread`, invalidated
in three places:

- ``prime`` after a full reassembly replaces everything,
- ``confirm`` after the server accepted the vote,
- ``rollback`` after the server rejected it.

Counter changes go through the thread's id index, so updating a deeply
nested reply costs one dictionary lookup.
"""

from __future__ import annotations

from dataclasses import dataclass

from loop_stage.schemas.vote import VoteResult
from loop_stage.services.thread import AssembledThread
from loop_stage.services.votes import VoteOutcome, toggle_value, vote_deltas


@dataclass(frozen=True)
class PendingVote:
    """A vote shown locally but not yet confirmed by the server."""

    subject_id: str
    previous: int
    value: int

    @property
    def deltas(self) -> tuple[int, int]:
        """Return the ``(upvote, downvote)`` change applied locally."""
        return vote_deltas(self.previous, self.value)


class OptimisticVoteState:
    """Track the caller's votes on one thread with rollback on failure."""

    def __init__(self, thread: AssembledThread | None = None) -> None:
        self._thread: AssembledThread | None = None
        self._votes: dict[str, int] = {}
        self._pending: dict[str, PendingVote] = {}
        if thread is not None:
            self.prime(thread)

    def prime(self, thread: AssembledThread) -> None:
        """Drop all local state and load it from a freshly assembled thread."""
        self._thread = thread
        self._votes = {subject_id: item.caller_vote for subject_id, item in thread.index.items()}
        self._pending.clear()

    def vote_for(self, subject_id: str) -> int:
        """Return the vote currently shown for a subject."""
        return self._votes.get(subject_id, 0)

    def is_pending(self, subject_id: str) -> bool:
        """Return whether a vote on the subject is awaiting the server."""
        return subject_id in self._pending

    def begin(self, subject_id: str, pressed: int) -> PendingVote:
        """Apply an arrow press locally and return the vote to send.

        Raises:
            RuntimeError: If a vote on the same subject is already in flight.
        """
        if subject_id in self._pending:
            raise RuntimeError(f"a vote on {subject_id} is already pending")
        previous = self.vote_for(subject_id)
        pending = PendingVote(
            subject_id=subject_id,
            previous=previous,
            value=toggle_value(previous, pressed),
        )
        up_delta, down_delta = pending.deltas
        self._apply(subject_id, pending.value, up_delta, down_delta)
        self._pending[subject_id] = pending
        return pending

    def confirm(self, pending: PendingVote, outcome: VoteOutcome | VoteResult | None = None) -> None:
        """Settle a pending vote, adopting the server's counters when given."""
        self._pending.pop(pending.subject_id, None)
        if outcome is None:
            return
        self._votes[pending.subject_id] = outcome.value
        item = self._item(pending.subject_id)
        if item is None:
            return
        item.caller_vote = outcome.value
        if outcome.upvotes is not None and outcome.downvotes is not None:
            item.data["upvotes"] = outcome.upvotes
            item.data["downvotes"] = outcome.downvotes

    def rollback(self, pending: PendingVote) -> None:
        """Undo a pending vote the server did not accept."""
        self._pending.pop(pending.subject_id, None)
        up_delta, down_delta = pending.deltas
        self._apply(pending.subject_id, pending.previous, -up_delta, -down_delta)

    def _item(self, subject_id: str):  # type: ignore[no-untyped-def]
        if self._thread is None:
            return None
        return self._thread.index.get(subject_id)

    def _apply(self, subject_id: str, value: int, up_delta: int, down_delta: int) -> None:
        self._votes[subject_id] = value
        if self._thread is None or subject_id not in self._thread.index:
            return
        item = self._thread.apply_vote_delta(subject_id, up_delta, down_delta)
        item.caller_vote = value
