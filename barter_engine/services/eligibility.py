"""Claim eligibility evaluation.

``can_claim`` is a pure function: every database fact it needs is gathered
into a ``ClaimContext`` first (see ``build_claim_context``). Checks run in a
fixed order and stop at the first failure, because the first failing check is
what the creator is asked to fix:

 1. Offer published with remaining capacity.
 2. No existing live/revoked match, no pass, strikes under the limit.
 3. Profile completeness (name, allowed country, shipping address when a
    product ships to the creator).
 4. A connected, unexpired social account on a required platform.
 5. Location radius (brand location, creator location, distance).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from barter_engine.config import ELIGIBILITY_SETTINGS
from barter_engine.integrations.base import SocialConnection, SocialConnectService
from barter_engine.models.db import Creator, Match, Offer, OfferPass, Strike
from barter_engine.models.db.enums import (
    FulfillmentType, ManualFulfillmentMethod, MatchStatus, OfferStatus, OfferTemplate, SocialProvider,
)
from barter_engine.utils.geo import haversine_km


class NextStep(str, enum.Enum):
    NONE = "NONE"
    COMPLETE_PROFILE = "COMPLETE_PROFILE"
    CONNECT_SOCIAL = "CONNECT_SOCIAL"
    RECONNECT_SOCIAL = "RECONNECT_SOCIAL"
    CAPTURE_LOCATION = "CAPTURE_LOCATION"


class DenialReason(str, enum.Enum):
    OFFER_NOT_AVAILABLE = "OFFER_NOT_AVAILABLE"
    OFFER_FULL = "OFFER_FULL"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"
    OFFER_REJECTED = "OFFER_REJECTED"
    OFFER_PASSED = "OFFER_PASSED"
    STRIKE_BLOCKED = "STRIKE_BLOCKED"
    NEEDS_PROFILE = "NEEDS_PROFILE"
    COUNTRY_NOT_ALLOWED = "COUNTRY_NOT_ALLOWED"
    NEEDS_ADDRESS = "NEEDS_ADDRESS"
    NEEDS_SOCIAL_CONNECT = "NEEDS_SOCIAL_CONNECT"
    NEEDS_SOCIAL_RECONNECT = "NEEDS_SOCIAL_RECONNECT"
    OFFER_LOCATION_MISSING = "OFFER_LOCATION_MISSING"
    NEEDS_LOCATION = "NEEDS_LOCATION"
    OUT_OF_RANGE = "OUT_OF_RANGE"

    @property
    def next_step(self) -> NextStep:
        return _NEXT_STEPS.get(self, NextStep.NONE)

    @property
    def actionable(self) -> bool:
        """Whether the creator can fix this themselves (used to keep offers in the feed)."""
        return self.next_step != NextStep.NONE


_NEXT_STEPS = {
    DenialReason.NEEDS_PROFILE: NextStep.COMPLETE_PROFILE,
    DenialReason.NEEDS_ADDRESS: NextStep.COMPLETE_PROFILE,
    DenialReason.NEEDS_SOCIAL_CONNECT: NextStep.CONNECT_SOCIAL,
    DenialReason.NEEDS_SOCIAL_RECONNECT: NextStep.RECONNECT_SOCIAL,
    DenialReason.NEEDS_LOCATION: NextStep.CAPTURE_LOCATION,
}


@dataclass(frozen=True)
class Allowed:
    allowed: bool = True


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    details: Dict[str, Any] = field(default_factory=dict)
    allowed: bool = False


EligibilityResult = Union[Allowed, Denied]


@dataclass(frozen=True)
class ClaimContext:
    active_match_count: int
    prior_match_status: Optional[MatchStatus] = None
    passed: bool = False
    active_strikes: int = 0
    social: Mapping[SocialProvider, SocialConnection] = field(default_factory=dict)
    brand_lat: Optional[float] = None
    brand_lng: Optional[float] = None


# Fields a physical shipment to the creator needs
ADDRESS_FIELDS = ("address1", "city", "zip", "country")


def ships_to_creator(offer) -> bool:
    metadata = offer.offer_metadata or {}
    fulfillment = metadata.get("fulfillment_type")
    if fulfillment == FulfillmentType.SHOPIFY.value:
        return True
    return (
        fulfillment == FulfillmentType.MANUAL.value
        and metadata.get("manual_fulfillment_method") == ManualFulfillmentMethod.LOCAL_DELIVERY.value
    )


def required_providers(offer) -> list[SocialProvider]:
    connectable = {p.value for p in SocialProvider}
    wanted = [SocialProvider(p) for p in offer.platforms if p in connectable]
    return wanted or list(SocialProvider)


def _check_capacity(offer, context: ClaimContext) -> Optional[Denied]:
    if offer.status != OfferStatus.PUBLISHED:
        return Denied(DenialReason.OFFER_NOT_AVAILABLE)
    if context.active_match_count >= offer.max_claims:
        return Denied(DenialReason.OFFER_FULL, {"max_claims": offer.max_claims})
    return None


def _check_history(context: ClaimContext) -> Optional[Denied]:
    if context.prior_match_status in (MatchStatus.PENDING_APPROVAL, MatchStatus.ACCEPTED):
        return Denied(DenialReason.ALREADY_CLAIMED, {"status": context.prior_match_status.value})
    if context.prior_match_status == MatchStatus.REVOKED:
        return Denied(DenialReason.OFFER_REJECTED)
    if context.passed:
        return Denied(DenialReason.OFFER_PASSED)
    limit = int(ELIGIBILITY_SETTINGS["strike_limit"])
    if context.active_strikes >= limit:
        return Denied(DenialReason.STRIKE_BLOCKED, {"strikes": context.active_strikes, "limit": limit})
    return None


def _check_profile(creator, offer) -> Optional[Denied]:
    if not (creator.full_name or "").strip():
        return Denied(DenialReason.NEEDS_PROFILE, {"missing": ["full_name"]})
    countries = list(offer.countries_allowed or [])
    if creator.country and countries and creator.country not in countries:
        return Denied(DenialReason.COUNTRY_NOT_ALLOWED, {"country": creator.country, "allowed": countries})
    if ships_to_creator(offer):
        missing = [name for name in ADDRESS_FIELDS if not (getattr(creator, name) or "").strip()]
        if missing:
            return Denied(DenialReason.NEEDS_ADDRESS, {"missing": missing})
    if not creator.country and countries:
        return Denied(DenialReason.NEEDS_PROFILE, {"missing": ["country"]})
    return None


def _check_social(offer, context: ClaimContext) -> Optional[Denied]:
    if offer.template == OfferTemplate.UGC_ONLY:
        return None
    providers = required_providers(offer)
    states = [context.social.get(p, SocialConnection(connected=False)) for p in providers]
    if any(state.usable for state in states):
        return None
    provider_names = [p.value for p in providers]
    if any(state.connected for state in states):
        return Denied(DenialReason.NEEDS_SOCIAL_RECONNECT, {"providers": provider_names})
    return Denied(DenialReason.NEEDS_SOCIAL_CONNECT, {"providers": provider_names})


def _check_location(creator, offer, context: ClaimContext) -> Optional[Denied]:
    radius_km = offer.location_radius_km
    if radius_km is None:
        return None
    if context.brand_lat is None or context.brand_lng is None:
        return Denied(DenialReason.OFFER_LOCATION_MISSING)
    if creator.lat is None or creator.lng is None:
        return Denied(DenialReason.NEEDS_LOCATION)
    distance = haversine_km(creator.lat, creator.lng, context.brand_lat, context.brand_lng)
    if distance > radius_km:
        return Denied(DenialReason.OUT_OF_RANGE, {
            "distance_km": round(distance, 1),
            "radius_km": radius_km,
        })
    return None


def can_claim(creator, offer, context: ClaimContext) -> EligibilityResult:
    """Decide whether ``creator`` may claim ``offer``.

    Returns ``Allowed()`` or ``Denied(reason, details)`` for the first failing check.
    """
    denial = (
        _check_capacity(offer, context)
        or _check_history(context)
        or _check_profile(creator, offer)
        or _check_social(offer, context)
        or _check_location(creator, offer, context)
    )
    return denial or Allowed()


@dataclass(frozen=True)
class CreatorFacts:
    """Per-creator facts shared by every offer evaluated in one request."""
    active_strikes: int
    social: Mapping[SocialProvider, SocialConnection]
    # Latest non-canceled match status per offer id
    prior_statuses: Mapping[int, MatchStatus] = field(default_factory=dict)
    passed_offer_ids: frozenset = frozenset()


def load_creator_facts(
    session: Session,
    creator: Creator,
    social: SocialConnectService,
    offer_ids: Optional[Iterable[int]] = None,
) -> CreatorFacts:
    """Load strikes, social state, match history and passes in a fixed number of queries.

    ``offer_ids`` narrows the history lookups to the offers being evaluated.
    """
    history = session.query(Match.offer_id, Match.status).filter(
        Match.creator_id == creator.id,
        Match.status != MatchStatus.CANCELED,
    )
    passes = session.query(OfferPass.offer_id).filter(OfferPass.creator_id == creator.id)
    if offer_ids is not None:
        wanted = list(offer_ids)
        history = history.filter(Match.offer_id.in_(wanted))
        passes = passes.filter(OfferPass.offer_id.in_(wanted))

    prior_statuses: Dict[int, MatchStatus] = {}
    for offer_id, match_status in history.order_by(Match.id).all():
        prior_statuses[offer_id] = match_status

    strikes = session.query(func.count(Strike.id)).filter(
        Strike.creator_id == creator.id, Strike.forgiven_at.is_(None)
    ).scalar() or 0
    return CreatorFacts(
        active_strikes=int(strikes),
        social=social.status(creator.id),
        prior_statuses=prior_statuses,
        passed_offer_ids=frozenset(row[0] for row in passes.all()),
    )


def context_for_offer(offer: Offer, facts: CreatorFacts) -> ClaimContext:
    brand = offer.brand
    return ClaimContext(
        active_match_count=offer.active_claim_count,
        prior_match_status=facts.prior_statuses.get(offer.id),
        passed=offer.id in facts.passed_offer_ids,
        active_strikes=facts.active_strikes,
        social=facts.social,
        brand_lat=brand.lat if brand else None,
        brand_lng=brand.lng if brand else None,
    )


def build_claim_context(
    session: Session,
    creator: Creator,
    offer: Offer,
    social: SocialConnectService,
) -> ClaimContext:
    return context_for_offer(offer, load_creator_facts(session, creator, social, offer_ids=[offer.id]))


__all__ = [
    "NextStep",
    "DenialReason",
    "Allowed",
    "Denied",
    "EligibilityResult",
    "ClaimContext",
    "CreatorFacts",
    "ADDRESS_FIELDS",
    "ships_to_creator",
    "required_providers",
    "can_claim",
    "load_creator_facts",
    "context_for_offer",
    "build_claim_context",
]
