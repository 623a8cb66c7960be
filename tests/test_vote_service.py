# mypy: ignore-errors
"""Tests for the vote service: ledger transitions, aggregates, score and aura."""

import logging
from itertools import permutations, product

import pytest
from sqlalchemy.exc import OperationalError

from loop_stage.models import PostVote, SubjectKind, User
from loop_stage.repositories.vote_repo import VoteRepository
from loop_stage.services.scoring import compute_score
from loop_stage.services.votes import (
    STEP_AURA,
    STEP_COUNTERS,
    SubjectNotFound,
    VoteLedgerError,
    VoteService,
    toggle_value,
    vote_deltas,
)

VALUES = (-1, 0, 1)


@pytest.fixture()
def service(db_session, now):
    return VoteService(db_session, clock=lambda: now)


def _cast(service, subject, voter, value, kind=SubjectKind.POST, loop_id=None):
    return service.cast_vote(
        loop_id=loop_id or subject.loop_id,
        subject_kind=kind,
        subject_id=subject.id,
        voter_id=voter.user_id,
        value=value,
    )


def _counters(db_session, subject):
    db_session.refresh(subject)
    return subject.upvotes, subject.downvotes


def _aura(db_session, user):
    return db_session.get(User, user.user_id, populate_existing=True).aura_total


def _db_failure(*_args, **_kwargs):
    raise OperationalError("UPDATE", {}, Exception("database is locked"))


class TestVoteDeltas:
    """The indicator-function deltas for every ledger transition."""

    @pytest.mark.parametrize(("previous", "intended"), list(product(VALUES, VALUES)))
    def test_every_transition(self, previous, intended) -> None:
        """Each delta is [intended is x] - [previous is x]."""
        up_delta, down_delta = vote_deltas(previous, intended)
        assert up_delta == int(intended == 1) - int(previous == 1)
        assert down_delta == int(intended == -1) - int(previous == -1)

    def test_flip_from_up_to_down(self) -> None:
        """Switching sides moves one vote from each counter."""
        assert vote_deltas(1, -1) == (-1, 1)

    def test_toggle_same_arrow_retracts(self) -> None:
        """Pressing the active arrow again returns to neutral."""
        assert toggle_value(1, 1) == 0
        assert toggle_value(-1, -1) == 0
        assert toggle_value(0, -1) == -1
        assert toggle_value(1, -1) == -1

    def test_toggle_rejects_neutral_press(self) -> None:
        """Only the two arrows can be pressed."""
        with pytest.raises(ValueError):
            toggle_value(0, 0)


@pytest.mark.parametrize(("previous", "intended"), list(product(VALUES, VALUES)))
def test_cast_vote_transitions(
    db_session, service, test_post, test_user, other_user, now, previous, intended
) -> None:
    """Counters, score and aura follow the ledger for all nine transitions."""
    if previous:
        _cast(service, test_post, other_user, previous)

    outcome = _cast(service, test_post, other_user, intended)

    assert outcome.previous_value == previous
    assert outcome.value == intended
    assert outcome.changed is (previous != intended)
    expected = (int(intended == 1), int(intended == -1))
    assert _counters(db_session, test_post) == expected
    assert (outcome.upvotes, outcome.downvotes) == expected
    assert _aura(db_session, test_user) == intended
    assert VoteRepository(db_session).get_value(SubjectKind.POST, test_post.id, other_user.user_id) == intended
    assert test_post.score == pytest.approx(
        compute_score(expected[0], expected[1], test_post.created_at, now)
    )


def test_repeated_vote_is_noop(db_session, service, test_post, test_user, other_user) -> None:
    """Casting the same value twice changes nothing the second time."""
    first = _cast(service, test_post, other_user, 1)
    second = _cast(service, test_post, other_user, 1)

    assert first.changed is True
    assert second.changed is False
    assert second.ledger_written is False
    assert (second.upvotes, second.downvotes) == (1, 0)
    assert second.score == pytest.approx(first.score)
    assert _counters(db_session, test_post) == (1, 0)
    assert _aura(db_session, test_user) == 1


def test_retracting_absent_vote_is_noop(db_session, service, test_post, other_user) -> None:
    """A neutral vote with no ledger record writes nothing."""
    outcome = _cast(service, test_post, other_user, 0)
    assert outcome.changed is False
    assert db_session.query(PostVote).count() == 0


def test_votes_commute_across_voters(
    db_session, service, make_user, make_post, test_loop, test_user, now
) -> None:
    """Every ordering of the same votes ends at the same totals."""
    voters = [make_user() for _ in range(3)]
    votes = list(zip(voters, (1, -1, 1)))

    totals = set()
    for ordering in permutations(votes):
        post = make_post(test_loop, test_user, created_at=now)
        for voter, value in ordering:
            _cast(service, post, voter, value)
        totals.add(_counters(db_session, post))

    assert totals == {(2, 1)}


def test_end_to_end_aura_scenario(
    db_session, service, test_post, test_user, make_user
) -> None:
    """Two upvotes then one voter flipping to down leaves aura at zero."""
    v1 = make_user(username="v1")
    v2 = make_user(username="v2")

    first = _cast(service, test_post, v1, 1)
    assert _counters(db_session, test_post) == (1, 0)
    assert _aura(db_session, test_user) == 1
    assert first.score_applied is True
    assert first.score > 0

    _cast(service, test_post, v2, 1)
    assert _counters(db_session, test_post) == (2, 0)
    assert _aura(db_session, test_user) == 2

    flip = _cast(service, test_post, v1, -1)
    assert flip.aura_delta == -2
    assert _counters(db_session, test_post) == (1, 1)
    assert _aura(db_session, test_user) == 0
    assert flip.score == pytest.approx(0.0)


def test_reply_votes_skip_score_and_aura(
    db_session, service, test_post, other_user, test_user, make_reply
) -> None:
    """Replies keep counters but never move the replier's aura."""
    reply = make_reply(test_post, other_user)

    outcome = _cast(service, reply, test_user, 1, kind=SubjectKind.REPLY, loop_id=test_post.loop_id)

    assert outcome.counters_applied is True
    assert outcome.score is None
    assert outcome.score_applied is False
    assert outcome.aura_applied is False
    assert outcome.aura_delta == 0
    assert _counters(db_session, reply) == (1, 0)
    assert _aura(db_session, other_user) == 0


def test_missing_subject_raises(service, test_post, other_user) -> None:
    """Votes on unknown ids fail before touching the ledger."""
    with pytest.raises(SubjectNotFound) as exc_info:
        service.cast_vote(
            loop_id=test_post.loop_id,
            subject_kind=SubjectKind.POST,
            subject_id="does-not-exist",
            voter_id=other_user.user_id,
            value=1,
        )
    assert exc_info.value.subject_kind is SubjectKind.POST


def test_subject_outside_loop_raises(db_session, service, test_post, other_user) -> None:
    """A post is only found inside its own loop."""
    with pytest.raises(SubjectNotFound):
        _cast(service, test_post, other_user, 1, loop_id="another-loop")
    assert db_session.query(PostVote).count() == 0


def test_invalid_value_rejected(service, test_post, other_user) -> None:
    """Only -1, 0 and 1 are valid votes."""
    with pytest.raises(ValueError):
        _cast(service, test_post, other_user, 2)


def test_ledger_failure_aborts_vote(db_session, service, test_post, test_user, other_user, monkeypatch) -> None:
    """When the ledger write fails nothing else is attempted."""
    monkeypatch.setattr(VoteRepository, "set_value", _db_failure)

    with pytest.raises(VoteLedgerError):
        _cast(service, test_post, other_user, 1)

    monkeypatch.undo()
    assert VoteRepository(db_session).get_value(SubjectKind.POST, test_post.id, other_user.user_id) == 0
    assert _counters(db_session, test_post) == (0, 0)
    assert _aura(db_session, test_user) == 0


def test_aura_failure_is_partial(
    db_session, service, test_post, test_user, other_user, monkeypatch, caplog
) -> None:
    """A failed aura step is reported while the vote itself stands."""
    monkeypatch.setattr(VoteRepository, "increment_aura", _db_failure)
    caplog.set_level(logging.WARNING, logger="loop_stage.services.votes")

    outcome = _cast(service, test_post, other_user, 1)

    assert outcome.ledger_written is True
    assert outcome.counters_applied is True
    assert outcome.score_applied is True
    assert outcome.aura_applied is False
    assert outcome.partial is True
    assert [failure.step for failure in outcome.failures] == [STEP_AURA]
    assert _counters(db_session, test_post) == (1, 0)
    assert _aura(db_session, test_user) == 0
    assert "applied partially" in caplog.text

    monkeypatch.undo()
    assert service.reconcile_author_aura(test_user.user_id) == 1
    assert _aura(db_session, test_user) == 1


def test_counter_failure_then_reconcile(
    db_session, service, test_post, other_user, monkeypatch, now
) -> None:
    """Counters left behind by a failed step are recounted from the ledger."""
    monkeypatch.setattr(VoteRepository, "increment_counters", _db_failure)

    outcome = _cast(service, test_post, other_user, 1)

    assert outcome.partial is True
    assert STEP_COUNTERS in [failure.step for failure in outcome.failures]
    assert outcome.aura_applied is True
    assert _counters(db_session, test_post) == (0, 0)

    monkeypatch.undo()
    result = service.reconcile_subject(
        loop_id=test_post.loop_id,
        subject_kind=SubjectKind.POST,
        subject_id=test_post.id,
    )
    assert (result.upvotes, result.downvotes) == (1, 0)
    assert _counters(db_session, test_post) == (1, 0)
    assert result.score == pytest.approx(compute_score(1, 0, test_post.created_at, now))
    assert test_post.score == pytest.approx(result.score)


def test_next_vote_after_failure_uses_ledger_state(
    db_session, service, test_post, other_user, monkeypatch
) -> None:
    """A retry sees the vote as already cast and does not double count."""
    monkeypatch.setattr(VoteRepository, "increment_counters", _db_failure)
    _cast(service, test_post, other_user, 1)
    monkeypatch.undo()

    retry = _cast(service, test_post, other_user, 1)

    assert retry.changed is False
    assert _counters(db_session, test_post) == (0, 0)


def test_reconcile_missing_subject(service, test_loop) -> None:
    """Reconciling an unknown subject raises like a vote would."""
    with pytest.raises(SubjectNotFound):
        service.reconcile_subject(
            loop_id=test_loop.id,
            subject_kind=SubjectKind.REPLY,
            subject_id="missing",
        )
