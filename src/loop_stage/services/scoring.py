"""Trending score for posts.

The score is the classic decaying hot rank::

    score = (upvotes - downvotes) / (hours_since_post + offset) ** gravity

Net votes form the numerator, so the score is negative when downvotes
dominate. The denominator grows super-linearly with age, which sinks older
posts even at equal net votes. The offset keeps brand-new posts from being
over-weighted by a single vote.

Scores are recomputed on every vote for the affected post rather than on a
sweep, so a stored score is only as fresh as the post's last vote.
"""
from __future__ import annotations

from datetime import datetime
from typing import Final

from loop_stage.db.time import as_utc

DEFAULT_GRAVITY: Final = 1.5
DEFAULT_AGE_OFFSET_HOURS: Final = 2.0
SECONDS_PER_HOUR: Final = 3600.0

__all__ = [
    "DEFAULT_AGE_OFFSET_HOURS",
    "DEFAULT_GRAVITY",
    "compute_score",
    "hours_since",
]


def hours_since(created_at: datetime, now: datetime) -> float:
    """Return the age in hours, floored at zero to absorb clock skew."""
    elapsed = (as_utc(now) - as_utc(created_at)).total_seconds() / SECONDS_PER_HOUR
    return max(elapsed, 0.0)


def compute_score(
    upvotes: int,
    downvotes: int,
    created_at: datetime,
    now: datetime,
    *,
    gravity: float = DEFAULT_GRAVITY,
    age_offset_hours: float = DEFAULT_AGE_OFFSET_HOURS,
) -> float:
    """Compute the trending score for a post.

    Args:
        upvotes: Current upvote counter.
        downvotes: Current downvote counter.
        created_at: Creation time of the post.
        now: Wall-clock time used for the age.
        gravity: Exponent applied to the age denominator.
        age_offset_hours: Hours added to the age before applying ``gravity``.

    Returns:
        The score; negative when downvotes outnumber upvotes.
    """
    net_votes = upvotes - downvotes
    age = hours_since(created_at, now)
    return net_votes / (age + age_offset_hours) ** gravity

