"""Acceptance policy: auto-accept a claim or hold it for brand review.

Auto-accept only ever skips review; it never rejects. Creators below the
follower threshold always land in PENDING_APPROVAL regardless of the flag.
"""
from __future__ import annotations

from barter_engine.models.db.enums import MatchStatus


def decide(followers_count: int, threshold: int, auto_accept: bool) -> MatchStatus:
    """Return the status a new Match is created with.

    Args:
        followers_count: creator's current follower count
        threshold: offer.acceptance_followers_threshold
        auto_accept: offer.above_threshold_auto_accept
    """
    if auto_accept and followers_count >= threshold:
        return MatchStatus.ACCEPTED
    return MatchStatus.PENDING_APPROVAL


def decide_for(creator, offer) -> MatchStatus:
    return decide(
        int(creator.followers_count or 0),
        int(offer.acceptance_followers_threshold or 0),
        bool(offer.above_threshold_auto_accept),
    )


__all__ = ["decide", "decide_for"]
