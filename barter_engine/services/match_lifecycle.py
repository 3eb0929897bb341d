"""Match lifecycle: claim, approve, reject, cancel, pass.

Claim flow:
 1. Load the offer and build the eligibility context.
 2. ``can_claim`` -> ``EligibilityDenied`` on the first failing check.
 3. ``decide`` picks ACCEPTED vs PENDING_APPROVAL.
 4. Admit the claim with a conditional counter increment:
    ``UPDATE offers SET active_claim_count = active_claim_count + 1
      WHERE id = :id AND status = 'PUBLISHED' AND active_claim_count < max_claims``.
    Zero rows means the offer filled up (or was archived) since step 1.
 5. Insert the Match; the unique ``claim_key`` rejects a concurrent duplicate
    claim by the same creator.
 6. ACCEPTED matches get their Shipment/Deliverable immediately.

Brand approve/reject and creator cancel are status-guarded updates
(``compare_and_set``); REVOKED and CANCELED are terminal.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from barter_engine.config import LIFECYCLE_SETTINGS
from barter_engine.errors import Conflict, EligibilityDenied, InvalidTransition, Issue, NotFound, ValidationError
from barter_engine.integrations.base import NotificationSink, SocialConnectService
from barter_engine.models.db import Brand, Creator, Deliverable, Match, Offer, OfferPass, Shipment
from barter_engine.models.db.enums import (
    DeliverableStatus, DeliverableType, FulfillmentType, ManualShipmentStatus, MatchStatus,
    NotificationKind, OfferStatus, OfferTemplate, ShopifyOrderStatus, SocialProvider, UserRole,
)
from barter_engine.services.acceptance_policy import decide_for
from barter_engine.services.eligibility import (
    Denied, DenialReason, build_claim_context, can_claim,
)
from barter_engine.services.stage import is_shipped
from barter_engine.services.transitions import (
    MATCH_TRANSITIONS, assert_expected_status, assert_transition, compare_and_set,
    creator_display_name, notify_brand, notify_creator, release_claim_slot,
)
from barter_engine.utils import get_logger, log_business_event, log_transition
from barter_engine.utils.codes import generate_campaign_code
from barter_engine.utils.time import add_days, utc_now

logger = get_logger(__name__)

_SOCIAL_DENIALS = (DenialReason.NEEDS_SOCIAL_CONNECT, DenialReason.NEEDS_SOCIAL_RECONNECT)


def deliverable_type_for(template: OfferTemplate) -> DeliverableType:
    if template == OfferTemplate.FEED:
        return DeliverableType.FEED
    if template == OfferTemplate.UGC_ONLY:
        return DeliverableType.UGC_ONLY
    return DeliverableType.REELS


def _match_query(session: Session):
    return session.query(Match).options(
        selectinload(Match.shipment),
        selectinload(Match.deliverable),
        selectinload(Match.offer),
    )


def get_match_for_brand(session: Session, brand: Brand, match_id: int) -> Match:
    match = _match_query(session).join(Offer).filter(Match.id == match_id, Offer.brand_id == brand.id).first()
    if match is None:
        raise NotFound("Match", match_id)
    return match


def get_match_for_creator(session: Session, creator: Creator, match_id: int) -> Match:
    match = _match_query(session).filter(Match.id == match_id, Match.creator_id == creator.id).first()
    if match is None:
        raise NotFound("Match", match_id)
    return match


def list_brand_matches(
    session: Session,
    brand: Brand,
    offer_id: Optional[int] = None,
    include_closed: bool = False,
) -> List[Match]:
    query = _match_query(session).join(Offer).filter(Offer.brand_id == brand.id)
    if offer_id is not None:
        query = query.filter(Match.offer_id == offer_id)
    if not include_closed:
        query = query.filter(Match.status.in_([MatchStatus.PENDING_APPROVAL, MatchStatus.ACCEPTED]))
    return query.order_by(Match.created_at.desc(), Match.id.desc()).all()


def list_creator_matches(session: Session, creator: Creator, include_closed: bool = False) -> List[Match]:
    query = _match_query(session).filter(Match.creator_id == creator.id)
    if not include_closed:
        query = query.filter(Match.status.in_([MatchStatus.PENDING_APPROVAL, MatchStatus.ACCEPTED]))
    return query.order_by(Match.created_at.desc(), Match.id.desc()).all()


def _allocate_campaign_code(session: Session) -> str:
    attempts = int(LIFECYCLE_SETTINGS["campaign_code_attempts"])  # type: ignore[arg-type]
    for _ in range(attempts):
        code = generate_campaign_code()
        if session.query(Match.id).filter(Match.campaign_code == code).first() is None:
            return code
    raise Conflict("Could not allocate a unique campaign code", code="CAMPAIGN_CODE_EXHAUSTED")


def ensure_fulfillment_records(session: Session, match: Match, offer: Offer, accepted_at: datetime) -> None:
    """Create the Shipment (physical offers) and the DUE Deliverable for an ACCEPTED match.

    Safe to call repeatedly; existing rows are left alone.
    """
    fulfillment = offer.fulfillment_type
    shipment = session.query(Shipment).filter(Shipment.match_id == match.id).first()
    if fulfillment is not None and shipment is None:
        initial = (
            ShopifyOrderStatus.PENDING.value
            if fulfillment == FulfillmentType.SHOPIFY
            else ManualShipmentStatus.PENDING.value
        )
        session.add(Shipment(match_id=match.id, fulfillment_type=fulfillment, status=initial))

    deliverable = session.query(Deliverable).filter(Deliverable.match_id == match.id).first()
    if deliverable is None:
        window = offer.deadline_days_after_delivery
        if fulfillment is not None:
            # Provisional until the shipment is marked shipped
            window += int(LIFECYCLE_SETTINGS["shipping_grace_days"])  # type: ignore[arg-type]
        session.add(Deliverable(
            match_id=match.id,
            status=DeliverableStatus.DUE,
            expected_type=deliverable_type_for(offer.template),
            due_at=add_days(accepted_at, window),
            review_count=0,
        ))
    session.flush()


def _denial(creator: Creator, denied: Denied, social: SocialConnectService) -> EligibilityDenied:
    details = dict(denied.details)
    if denied.reason in _SOCIAL_DENIALS:
        providers = [SocialProvider(p) for p in details.get("providers", [])]
        urls = {p.value: social.connect_url(p, UserRole.CREATOR, "/creator/feed") for p in providers}
        details["connect_urls"] = urls
        details["connect_url"] = next(iter(urls.values()), None)
    logger.info(
        "Claim denied",
        creator_id=creator.id,
        reason=denied.reason.value,
    )
    return EligibilityDenied(denied.reason, details)


def claim_offer(
    session: Session,
    creator: Creator,
    offer_id: int,
    social: SocialConnectService,
    notifier: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
) -> Match:
    now = now or utc_now()
    offer = session.get(Offer, offer_id)
    if offer is None or offer.status == OfferStatus.DRAFT:
        raise NotFound("Offer", offer_id)

    context = build_claim_context(session, creator, offer, social)
    result = can_claim(creator, offer, context)
    if isinstance(result, Denied):
        raise _denial(creator, result, social)

    status = decide_for(creator, offer)

    admitted = session.execute(
        update(Offer)
        .where(
            Offer.id == offer.id,
            Offer.status == OfferStatus.PUBLISHED,
            Offer.active_claim_count < Offer.max_claims,
        )
        .values(active_claim_count=Offer.active_claim_count + 1)
        .execution_options(synchronize_session=False)
    ).rowcount
    if admitted != 1:
        session.rollback()
        reason = DenialReason.OFFER_FULL if offer.status == OfferStatus.PUBLISHED else DenialReason.OFFER_NOT_AVAILABLE
        logger.info("Claim lost capacity race", offer_id=offer_id, creator_id=creator.id, reason=reason.value)
        raise EligibilityDenied(reason, {"max_claims": offer.max_claims})

    match = Match(
        offer_id=offer.id,
        creator_id=creator.id,
        status=status,
        campaign_code=_allocate_campaign_code(session),
        claim_key=Match.claim_key_for(offer.id, creator.id),
        accepted_at=now if status == MatchStatus.ACCEPTED else None,
    )
    session.add(match)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise EligibilityDenied(DenialReason.ALREADY_CLAIMED)

    if status == MatchStatus.ACCEPTED:
        ensure_fulfillment_records(session, match, offer, now)

    brand_id = offer.brand_id
    session.commit()
    session.refresh(match)

    log_business_event(
        event_type="match_claimed",
        details={
            "match_id": match.id,
            "offer_id": offer_id,
            "creator_id": creator.id,
            "status": match.status.value,
            "campaign_code": match.campaign_code,
        },
    )
    name = creator_display_name(session, creator.id)
    if match.status == MatchStatus.ACCEPTED:
        notify_creator(session, notifier, creator.id, NotificationKind.SUCCESS, "You're in! Your claim was accepted.")
        notify_brand(session, notifier, brand_id, NotificationKind.INFO, f"{name} joined your campaign.")
    else:
        notify_creator(session, notifier, creator.id, NotificationKind.INFO, "Claim sent. The brand will review it.")
        notify_brand(session, notifier, brand_id, NotificationKind.INFO, f"{name} applied to your campaign.")
    return match


def approve_match(
    session: Session,
    brand: Brand,
    match_id: int,
    expected_status: Optional[MatchStatus] = None,
    notifier: Optional[NotificationSink] = None,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Match:
    now = now or utc_now()
    match = get_match_for_brand(session, brand, match_id)
    assert_expected_status(match, expected_status)
    if match.status == MatchStatus.ACCEPTED:
        return match
    previous = match.status
    assert_transition("match", MATCH_TRANSITIONS, previous, MatchStatus.ACCEPTED)

    compare_and_set(session, match, previous, status=MatchStatus.ACCEPTED, accepted_at=now)
    ensure_fulfillment_records(session, match, match.offer, now)
    session.commit()
    session.refresh(match)

    log_transition("match", match.id, previous, match.status, user_id=user_id)
    notify_creator(session, notifier, match.creator_id, NotificationKind.SUCCESS, "Your claim was approved.")
    return match


def reject_match(
    session: Session,
    brand: Brand,
    match_id: int,
    reason: str,
    expected_status: Optional[MatchStatus] = None,
    notifier: Optional[NotificationSink] = None,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Match:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError([Issue("reason", "required", "A rejection reason is required")])
    now = now or utc_now()
    match = get_match_for_brand(session, brand, match_id)
    assert_expected_status(match, expected_status)
    if match.status == MatchStatus.REVOKED:
        return match
    previous = match.status
    assert_transition("match", MATCH_TRANSITIONS, previous, MatchStatus.REVOKED)

    offer_id = match.offer_id
    compare_and_set(
        session, match, previous,
        status=MatchStatus.REVOKED, rejection_reason=reason, revoked_at=now,
    )
    release_claim_slot(session, offer_id)
    session.commit()
    session.refresh(match)

    log_transition("match", match.id, previous, match.status, reason=reason, user_id=user_id)
    notify_creator(session, notifier, match.creator_id, NotificationKind.INFO, "The brand passed on your claim.")
    return match


def cancel_match(
    session: Session,
    creator: Creator,
    match_id: int,
    expected_status: Optional[MatchStatus] = None,
    notifier: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
) -> Match:
    now = now or utc_now()
    match = get_match_for_creator(session, creator, match_id)
    assert_expected_status(match, expected_status)
    if match.status == MatchStatus.CANCELED:
        return match
    previous = match.status
    assert_transition("match", MATCH_TRANSITIONS, previous, MatchStatus.CANCELED)
    if is_shipped(match.shipment):
        raise InvalidTransition(
            "match", previous.value, MatchStatus.CANCELED.value,
            "Claims cannot be withdrawn after the product has shipped",
        )

    offer_id = match.offer_id
    brand_id = match.offer.brand_id
    compare_and_set(
        session, match, previous,
        status=MatchStatus.CANCELED, canceled_at=now, claim_key=None,
    )
    release_claim_slot(session, offer_id)
    session.commit()
    session.refresh(match)

    log_transition("match", match.id, previous, match.status, creator_id=creator.id)
    notify_brand(
        session, notifier, brand_id, NotificationKind.INFO,
        f"{creator_display_name(session, creator.id)} withdrew from your campaign.",
    )
    return match


def pass_offer(session: Session, creator: Creator, offer_id: int) -> OfferPass:
    offer = session.get(Offer, offer_id)
    if offer is None or offer.status == OfferStatus.DRAFT:
        raise NotFound("Offer", offer_id)
    existing = session.query(OfferPass).filter(
        OfferPass.offer_id == offer_id, OfferPass.creator_id == creator.id
    ).first()
    if existing is not None:
        return existing
    record = OfferPass(offer_id=offer_id, creator_id=creator.id)
    session.add(record)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        return session.query(OfferPass).filter(
            OfferPass.offer_id == offer_id, OfferPass.creator_id == creator.id
        ).one()
    session.refresh(record)
    log_business_event(
        event_type="offer_passed",
        details={"offer_id": offer_id, "creator_id": creator.id},
    )
    return record


__all__ = [
    "deliverable_type_for",
    "get_match_for_brand",
    "get_match_for_creator",
    "list_brand_matches",
    "list_creator_matches",
    "ensure_fulfillment_records",
    "claim_offer",
    "approve_match",
    "reject_match",
    "cancel_match",
    "pass_offer",
]
