"""Shipment updates for MANUAL and SHOPIFY fulfillment.

Each shipment has exactly one authority, fixed by the offer's fulfillment
type: brands drive MANUAL shipments, the storefront order feed drives SHOPIFY
ones. Entering the shipped state stamps ``shipped_at`` and moves the
deliverable due date from its provisional value to
``shipped_at + deadline_days_after_delivery``.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from barter_engine.config import LIFECYCLE_SETTINGS
from barter_engine.errors import InvalidTransition, Issue, NotFound, ValidationError
from barter_engine.integrations.base import NotificationSink
from barter_engine.models.db import Brand, Deliverable, Match, Offer, Shipment
from barter_engine.models.db.enums import (
    DeliverableStatus, FulfillmentType, ManualShipmentStatus, MatchStatus, NotificationKind, ShopifyOrderStatus,
)
from barter_engine.services.transitions import (
    MANUAL_SHIPMENT_TRANSITIONS, assert_expected_status, assert_transition, compare_and_set, notify_creator,
)
from barter_engine.utils import get_logger, log_business_event, log_transition
from barter_engine.utils.time import add_days, utc_now

logger = get_logger(__name__)

TRACKING_LIMITS = {"carrier": 64, "tracking_number": 64, "tracking_url": 500}


def _get_shipment(session: Session, shipment_id: int, fulfillment_type: FulfillmentType) -> Shipment:
    shipment = session.get(Shipment, shipment_id)
    if shipment is None or shipment.fulfillment_type != fulfillment_type:
        raise NotFound("Shipment", shipment_id)
    return shipment


def get_brand_shipment(
    session: Session, brand: Brand, shipment_id: int, fulfillment_type: FulfillmentType
) -> Shipment:
    shipment = _get_shipment(session, shipment_id, fulfillment_type)
    if shipment.match.offer.brand_id != brand.id:
        raise NotFound("Shipment", shipment_id)
    return shipment


def _tracking_issues(tracking: dict) -> list[Issue]:
    issues = []
    for name, limit in TRACKING_LIMITS.items():
        value = tracking.get(name)
        if value is not None and len(value) > limit:
            issues.append(Issue(name, "too_long", f"{name} must be at most {limit} characters"))
    url = tracking.get("tracking_url")
    if url and not url.lower().startswith(("http://", "https://")):
        issues.append(Issue("tracking_url", "invalid_url", "tracking_url must be an http(s) URL"))
    return issues


def _recompute_due_at(session: Session, match: Match, offer: Offer, shipped_at: datetime) -> None:
    deliverable = session.query(Deliverable).filter(Deliverable.match_id == match.id).first()
    if deliverable is None or deliverable.status in (DeliverableStatus.VERIFIED, DeliverableStatus.FAILED):
        return
    deliverable.due_at = add_days(shipped_at, offer.deadline_days_after_delivery)


def update_manual_shipment(
    session: Session,
    brand: Brand,
    shipment_id: int,
    status: Optional[ManualShipmentStatus] = None,
    carrier: Optional[str] = None,
    tracking_number: Optional[str] = None,
    tracking_url: Optional[str] = None,
    expected_status: Optional[ManualShipmentStatus] = None,
    notifier: Optional[NotificationSink] = None,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Shipment:
    now = now or utc_now()
    shipment = get_brand_shipment(session, brand, shipment_id, FulfillmentType.MANUAL)
    match = shipment.match
    if match.status != MatchStatus.ACCEPTED:
        raise InvalidTransition(
            "shipment", shipment.status, status.value if status else shipment.status,
            "Only accepted matches can be shipped",
        )
    if expected_status is not None:
        assert_expected_status(shipment, expected_status.value)

    tracking = {"carrier": carrier, "tracking_number": tracking_number, "tracking_url": tracking_url}
    issues = _tracking_issues(tracking)
    if issues:
        raise ValidationError(issues)
    tracking = {k: v for k, v in tracking.items() if v is not None}

    current = ManualShipmentStatus(shipment.status)
    target = status or current
    tracking_changed = any(getattr(shipment, k) != v for k, v in tracking.items())

    if target == current:
        if not tracking_changed:
            return shipment
        for name, value in tracking.items():
            setattr(shipment, name, value)
        session.commit()
        session.refresh(shipment)
        log_business_event(
            event_type="shipment_tracking_updated",
            details={"shipment_id": shipment.id, "fields": sorted(tracking)},
            user_id=user_id,
        )
        return shipment

    assert_transition("shipment", MANUAL_SHIPMENT_TRANSITIONS, current, target)
    offer = match.offer
    creator_id = match.creator_id
    compare_and_set(session, shipment, current.value, status=target.value, shipped_at=now, **tracking)
    _recompute_due_at(session, match, offer, now)
    session.commit()
    session.refresh(shipment)

    log_transition("shipment", shipment.id, current, target, match_id=match.id, user_id=user_id)
    log_business_event(
        event_type="shipment_shipped",
        details={"shipment_id": shipment.id, "match_id": match.id, "carrier": shipment.carrier},
        user_id=user_id,
    )
    notify_creator(session, notifier, creator_id, NotificationKind.SUCCESS, "Your product is on its way!")
    return shipment


def apply_shopify_status(
    session: Session,
    shipment_id: int,
    order_status: ShopifyOrderStatus,
    tracking_number: Optional[str] = None,
    tracking_url: Optional[str] = None,
    brand: Optional[Brand] = None,
    notifier: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
) -> Shipment:
    """Mirror a storefront order status onto a SHOPIFY shipment."""
    now = now or utc_now()
    if brand is not None:
        shipment = get_brand_shipment(session, brand, shipment_id, FulfillmentType.SHOPIFY)
    else:
        shipment = _get_shipment(session, shipment_id, FulfillmentType.SHOPIFY)

    tracking = {"tracking_number": tracking_number, "tracking_url": tracking_url}
    issues = _tracking_issues(tracking)
    if issues:
        raise ValidationError(issues)
    tracking = {k: v for k, v in tracking.items() if v is not None}

    current = shipment.status
    shipped_statuses = LIFECYCLE_SETTINGS["shopify_shipped_statuses"]
    entering_shipped = (
        order_status.value in shipped_statuses  # type: ignore[operator]
        and shipment.shipped_at is None
    )
    if current == order_status.value and not tracking:
        return shipment

    match = shipment.match
    offer = match.offer
    creator_id = match.creator_id
    values = dict(tracking, status=order_status.value)
    if entering_shipped:
        values["shipped_at"] = now
    compare_and_set(session, shipment, current, **values)
    if entering_shipped:
        _recompute_due_at(session, match, offer, now)
    session.commit()
    session.refresh(shipment)

    if current != order_status.value:
        log_transition("shipment", shipment.id, current, order_status, match_id=match.id, source="shopify")
    if entering_shipped:
        log_business_event(
            event_type="shipment_shipped",
            details={"shipment_id": shipment.id, "match_id": match.id, "source": "shopify"},
        )
        notify_creator(session, notifier, creator_id, NotificationKind.SUCCESS, "Your product is on its way!")
    return shipment


__all__ = [
    "TRACKING_LIMITS",
    "get_brand_shipment",
    "update_manual_shipment",
    "apply_shopify_status",
]
