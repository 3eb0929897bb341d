"""Offer lifecycle: create, edit, publish/archive, delete, duplicate.

Edges: DRAFT -> PUBLISHED -> ARCHIVED -> PUBLISHED (pause/resume).
Only DRAFT offers without activity may be deleted.

Publishing (on create, from DRAFT, or resuming from ARCHIVED) requires:
 * billing gate (when enabled) -> ``Paywall``
 * strict (publish-mode) validation of fields + metadata -> ``ValidationError``
 * a brand location when the offer uses a radius or pickup fulfillment

Edits to a PUBLISHED/ARCHIVED offer are validated in publish mode as well, so a
live offer can never drift into a state that would fail validation.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from barter_engine.config import BILLING_SETTINGS, OFFER_LIMITS
from barter_engine.errors import Conflict, InvalidTransition, Issue, NotFound, Paywall, ValidationError
from barter_engine.integrations.base import BillingService
from barter_engine.models.db import Brand, Match, Offer
from barter_engine.models.db.enums import ManualFulfillmentMethod, OfferStatus, OfferTemplate, UsageRightsScope
from barter_engine.services.metadata_validator import ValidationMode, validate_offer
from barter_engine.services.transitions import OFFER_TRANSITIONS, assert_transition
from barter_engine.utils import get_logger, log_business_event, log_transition
from barter_engine.utils.time import utc_now

logger = get_logger(__name__)

# Offer columns a brand may set directly
EDITABLE_FIELDS = (
    "title",
    "template",
    "countries_allowed",
    "max_claims",
    "deadline_days_after_delivery",
    "acceptance_followers_threshold",
    "above_threshold_auto_accept",
    "usage_rights_required",
    "usage_rights_scope",
    "metadata",
)


def _plain(value: Any) -> Any:
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return getattr(value, "value", value)


def offer_fields(offer: Offer) -> Dict[str, Any]:
    return {
        "title": offer.title,
        "template": _plain(offer.template),
        "countries_allowed": list(offer.countries_allowed or []),
        "max_claims": offer.max_claims,
        "deadline_days_after_delivery": offer.deadline_days_after_delivery,
        "acceptance_followers_threshold": offer.acceptance_followers_threshold,
        "above_threshold_auto_accept": offer.above_threshold_auto_accept,
        "usage_rights_required": offer.usage_rights_required,
        "usage_rights_scope": _plain(offer.usage_rights_scope),
        "metadata": dict(offer.offer_metadata or {}),
    }


def _apply_fields(offer: Offer, fields: Mapping[str, Any], metadata: Optional[Dict[str, Any]]) -> None:
    for name in EDITABLE_FIELDS:
        if name == "metadata" or name not in fields:
            continue
        value = fields[name]
        if name == "countries_allowed":
            value = [_plain(c) for c in value or []]
        elif name == "template":
            value = OfferTemplate(_plain(value))
        elif name == "usage_rights_scope" and value is not None:
            value = UsageRightsScope(_plain(value))
        setattr(offer, name, value)
    if metadata is not None:
        offer.offer_metadata = metadata


def _brand_location_issues(brand: Brand, metadata: Mapping[str, Any]) -> List[Issue]:
    uses_radius = metadata.get("location_radius_km") is not None
    uses_pickup = metadata.get("manual_fulfillment_method") == ManualFulfillmentMethod.PICKUP.value
    if (uses_radius or uses_pickup) and not brand.has_location:
        return [Issue(
            "brand_location", "required",
            "Add your brand location before publishing offers with a radius or pickup",
        )]
    return []


def _check_billing(brand: Brand, billing: Optional[BillingService]) -> None:
    if not BILLING_SETTINGS.get("enabled"):
        return
    if billing is None or not billing.is_subscribed(brand.id):
        logger.warning("Publish blocked by paywall", brand_id=brand.id)
        raise Paywall()


def _validated_metadata(
    brand: Brand,
    fields: Mapping[str, Any],
    resulting_status: OfferStatus,
    extra_issues: Optional[List[Issue]] = None,
) -> Dict[str, Any]:
    mode = ValidationMode.DRAFT if resulting_status == OfferStatus.DRAFT else ValidationMode.PUBLISH
    result = validate_offer(fields, mode)
    issues = list(extra_issues or []) + list(result.issues)
    if resulting_status == OfferStatus.PUBLISHED and result.ok:
        issues.extend(_brand_location_issues(brand, result.metadata or {}))
    if issues:
        raise ValidationError(issues)
    return result.metadata or {}


def commit_offer(session: Session, offer: Offer) -> None:
    """Commit, translating lost optimistic-lock races into ``Conflict``."""
    try:
        session.commit()
    except StaleDataError:
        session.rollback()
        raise Conflict("Offer was modified by another request", code="STALE_OFFER", offer_id=offer.id)
    except IntegrityError as e:
        session.rollback()
        logger.warning("Offer write rejected by constraint", offer_id=offer.id, error=str(e.orig))
        raise Conflict("Offer changed concurrently; reload and retry", offer_id=offer.id)


def get_brand_offer(session: Session, brand: Brand, offer_id: int) -> Offer:
    offer = session.get(Offer, offer_id)
    if offer is None or offer.brand_id != brand.id:
        raise NotFound("Offer", offer_id)
    return offer


def create_offer(
    session: Session,
    brand: Brand,
    fields: Mapping[str, Any],
    target_status: OfferStatus = OfferStatus.DRAFT,
    billing: Optional[BillingService] = None,
    user_id: Optional[int] = None,
) -> Offer:
    if target_status == OfferStatus.ARCHIVED:
        raise InvalidTransition("offer", "NEW", target_status.value)
    if target_status == OfferStatus.PUBLISHED:
        _check_billing(brand, billing)

    metadata = _validated_metadata(brand, fields, target_status)
    offer = Offer(brand_id=brand.id, status=OfferStatus.DRAFT, active_claim_count=0)
    _apply_fields(offer, fields, metadata)
    if target_status == OfferStatus.PUBLISHED:
        offer.status = OfferStatus.PUBLISHED
        offer.published_at = utc_now()

    session.add(offer)
    commit_offer(session, offer)
    session.refresh(offer)

    log_business_event(
        event_type="offer_created",
        details={"offer_id": offer.id, "brand_id": brand.id, "status": offer.status.value},
        user_id=user_id,
    )
    return offer


def apply_offer_update(
    session: Session,
    brand: Brand,
    offer: Offer,
    changes: Mapping[str, Any],
    target_status: Optional[OfferStatus] = None,
    billing: Optional[BillingService] = None,
) -> Optional[OfferStatus]:
    """Validate and stage an update on ``offer`` without committing.

    Returns the previous status when a status edge was taken, else None.
    """
    current = offer.status
    moving = target_status is not None and target_status != current
    if moving:
        assert_transition("offer", OFFER_TRANSITIONS, current, target_status)
    resulting_status = target_status if moving else current

    merged = offer_fields(offer)
    merged.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})

    extra: List[Issue] = []
    if "max_claims" in changes and changes["max_claims"] < offer.active_claim_count:
        extra.append(Issue(
            "max_claims", "below_active_claims",
            f"max_claims cannot drop below the {offer.active_claim_count} active claims",
        ))
    if current != OfferStatus.DRAFT and "metadata" in changes:
        before = (offer.offer_metadata or {}).get("fulfillment_type")
        after = (changes.get("metadata") or {}).get("fulfillment_type")
        if before != after:
            extra.append(Issue(
                "metadata.fulfillment_type", "immutable",
                "fulfillment_type cannot change after the offer has been published",
            ))

    if moving and resulting_status == OfferStatus.PUBLISHED:
        _check_billing(brand, billing)
    metadata = _validated_metadata(brand, merged, resulting_status, extra)

    _apply_fields(offer, changes, metadata)
    if moving:
        offer.status = resulting_status
        if resulting_status == OfferStatus.PUBLISHED and offer.published_at is None:
            offer.published_at = utc_now()
        return current
    return None


def update_offer(
    session: Session,
    brand: Brand,
    offer_id: int,
    changes: Mapping[str, Any],
    target_status: Optional[OfferStatus] = None,
    expected_version: Optional[int] = None,
    billing: Optional[BillingService] = None,
    user_id: Optional[int] = None,
) -> Offer:
    offer = get_brand_offer(session, brand, offer_id)
    if expected_version is not None and expected_version != offer.version:
        raise Conflict(
            "Offer was modified since it was loaded",
            code="STALE_OFFER",
            offer_id=offer.id,
            current_version=offer.version,
        )
    if not changes and target_status is None:
        raise ValidationError([Issue("body", "no_changes", "No changes supplied")])
    if not changes and target_status == offer.status:
        return offer

    previous = apply_offer_update(session, brand, offer, changes, target_status, billing)
    commit_offer(session, offer)
    session.refresh(offer)

    if previous is not None:
        log_transition("offer", offer.id, previous, offer.status, brand_id=brand.id, user_id=user_id)
    else:
        log_business_event(
            event_type="offer_updated",
            details={"offer_id": offer.id, "fields": sorted(changes.keys())},
            user_id=user_id,
        )
    return offer


def delete_offer(session: Session, brand: Brand, offer_id: int, user_id: Optional[int] = None) -> None:
    offer = get_brand_offer(session, brand, offer_id)
    if offer.status != OfferStatus.DRAFT:
        raise InvalidTransition(
            "offer", offer.status.value, "DELETED", "Only draft offers can be deleted; archive it instead",
        )
    has_activity = session.query(Match.id).filter(Match.offer_id == offer.id).first() is not None
    if has_activity:
        raise Conflict("Offer has claims and cannot be deleted", code="OFFER_HAS_ACTIVITY", offer_id=offer.id)
    session.delete(offer)
    commit_offer(session, offer)
    log_business_event(
        event_type="offer_deleted",
        details={"offer_id": offer_id, "brand_id": brand.id},
        user_id=user_id,
    )


def duplicate_offer(session: Session, brand: Brand, offer_id: int, user_id: Optional[int] = None) -> Offer:
    source = get_brand_offer(session, brand, offer_id)
    fields = offer_fields(source)
    fields["title"] = f"{source.title} (copy)"[: OFFER_LIMITS["title_max"]]

    copy = Offer(brand_id=brand.id, status=OfferStatus.DRAFT, active_claim_count=0)
    _apply_fields(copy, fields, dict(fields["metadata"]))
    session.add(copy)
    commit_offer(session, copy)
    session.refresh(copy)

    log_business_event(
        event_type="offer_duplicated",
        details={"offer_id": copy.id, "source_offer_id": source.id, "brand_id": brand.id},
        user_id=user_id,
    )
    return copy


def list_brand_offers(
    session: Session,
    brand: Brand,
    status: Optional[OfferStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Offer]:
    query = session.query(Offer).filter(Offer.brand_id == brand.id)
    if status is not None:
        query = query.filter(Offer.status == status)
    return query.order_by(Offer.created_at.desc(), Offer.id.desc()).offset(offset).limit(limit).all()


__all__ = [
    "EDITABLE_FIELDS",
    "offer_fields",
    "get_brand_offer",
    "create_offer",
    "apply_offer_update",
    "update_offer",
    "commit_offer",
    "delete_offer",
    "duplicate_offer",
    "list_brand_offers",
]
