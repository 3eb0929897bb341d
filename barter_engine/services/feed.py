"""Creator feed: published offers annotated with claim readiness.

Offers the creator cannot do anything about (full, already claimed, passed,
wrong country, out of range, ...) are dropped. Offers blocked only by
something the creator can fix (profile, address, social connect, location)
stay in the feed with the reason and next step attached.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from barter_engine.integrations.base import SocialConnectService
from barter_engine.models.db import Creator, Offer
from barter_engine.models.db.enums import OfferStatus
from barter_engine.services.eligibility import Denied, can_claim, context_for_offer, load_creator_facts


@dataclass
class FeedEntry:
    offer: Offer
    claimable: bool
    reason: Optional[str] = None
    next_step: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


def build_feed(
    session: Session,
    creator: Creator,
    social: SocialConnectService,
    limit: int = 50,
    offset: int = 0,
) -> List[FeedEntry]:
    offers = (
        session.query(Offer)
        .options(selectinload(Offer.brand))
        .filter(Offer.status == OfferStatus.PUBLISHED)
        .order_by(Offer.published_at.desc(), Offer.id.desc())
        .all()
    )
    # Filtering needs the evaluated denial, so pagination happens after it
    facts = load_creator_facts(session, creator, social)
    entries: List[FeedEntry] = []
    for offer in offers:
        result = can_claim(creator, offer, context_for_offer(offer, facts))
        if isinstance(result, Denied):
            if not result.reason.actionable:
                continue
            entries.append(FeedEntry(
                offer=offer,
                claimable=False,
                reason=result.reason.value,
                next_step=result.reason.next_step.value,
                details=dict(result.details),
            ))
        else:
            entries.append(FeedEntry(offer=offer, claimable=True))
    return entries[offset:offset + limit]


__all__ = ["FeedEntry", "build_feed"]
