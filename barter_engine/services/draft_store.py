"""Server-side persistence for the offer creation wizard.

The DRAFT offer row is the single source of truth; ``OfferDraft`` only keeps
resume hints (current step, opaque UI state). Saves are optimistic: the client
sends the ``version`` it last saw and a mismatch is a ``Conflict`` carrying the
current version so the wizard can reload instead of clobbering another tab.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session, selectinload

from barter_engine.errors import Conflict, InvalidTransition, Issue
from barter_engine.integrations.base import BillingService
from barter_engine.models.db import Brand, Offer, OfferDraft
from barter_engine.models.db.enums import OfferStatus
from barter_engine.services.metadata_validator import ValidationMode, validate_offer
from barter_engine.services.offer_lifecycle import (
    apply_offer_update, commit_offer, get_brand_offer, offer_fields,
)
from barter_engine.utils import get_logger, log_business_event, log_transition
from barter_engine.utils.time import utc_now

logger = get_logger(__name__)


@dataclass
class DraftView:
    offer: Offer
    current_step: int
    ui_state: Dict[str, Any]
    version: int
    # Publish-mode issues still open; empty means the draft is ready to publish
    outstanding: List[Issue] = field(default_factory=list)


def _check_version(offer: Offer, expected_version: int) -> None:
    if expected_version != offer.version:
        raise Conflict(
            "Draft was saved from another session; reload before saving",
            code="STALE_DRAFT",
            offer_id=offer.id,
            current_version=offer.version,
        )


def _view(offer: Offer) -> DraftView:
    record = offer.draft
    result = validate_offer(offer_fields(offer), ValidationMode.PUBLISH)
    return DraftView(
        offer=offer,
        current_step=record.current_step if record else 1,
        ui_state=dict(record.ui_state or {}) if record else {},
        version=offer.version,
        outstanding=list(result.issues),
    )


def save_draft(
    session: Session,
    brand: Brand,
    offer_id: int,
    changes: Mapping[str, Any],
    expected_version: int,
    current_step: Optional[int] = None,
    ui_state: Optional[Mapping[str, Any]] = None,
    user_id: Optional[int] = None,
) -> DraftView:
    offer = get_brand_offer(session, brand, offer_id)
    if offer.status != OfferStatus.DRAFT:
        raise InvalidTransition(
            "offer", offer.status.value, OfferStatus.DRAFT.value, "Only draft offers can be saved from the wizard",
        )
    _check_version(offer, expected_version)

    if changes:
        apply_offer_update(session, brand, offer, changes)
    # Every save bumps the offer version, even a step-only save
    offer.updated_at = utc_now()

    record = offer.draft
    if record is None:
        record = OfferDraft(offer_id=offer.id, current_step=1, ui_state={}, saved_version=0)
        offer.draft = record
    if current_step is not None:
        record.current_step = current_step
    if ui_state is not None:
        record.ui_state = dict(ui_state)

    # version_id_col bumps by one on this flush
    record.saved_version = offer.version + 1
    commit_offer(session, offer)
    session.refresh(offer)

    logger.debug("Draft saved", offer_id=offer.id, version=offer.version, step=record.current_step)
    return _view(offer)


def load_draft(session: Session, brand: Brand, offer_id: int) -> DraftView:
    offer = get_brand_offer(session, brand, offer_id)
    if offer.status != OfferStatus.DRAFT:
        raise InvalidTransition("offer", offer.status.value, OfferStatus.DRAFT.value, "Offer is no longer a draft")
    return _view(offer)


def list_drafts(session: Session, brand: Brand) -> List[DraftView]:
    offers = (
        session.query(Offer)
        .options(selectinload(Offer.draft))
        .filter(Offer.brand_id == brand.id, Offer.status == OfferStatus.DRAFT)
        .order_by(Offer.updated_at.desc(), Offer.id.desc())
        .all()
    )
    return [_view(offer) for offer in offers]


def publish_draft(
    session: Session,
    brand: Brand,
    offer_id: int,
    expected_version: Optional[int] = None,
    billing: Optional[BillingService] = None,
    user_id: Optional[int] = None,
) -> Offer:
    """Idempotent DRAFT -> PUBLISHED upgrade that also drops the resume record."""
    offer = get_brand_offer(session, brand, offer_id)
    if offer.status == OfferStatus.PUBLISHED:
        return offer
    if offer.status != OfferStatus.DRAFT:
        raise InvalidTransition("offer", offer.status.value, OfferStatus.PUBLISHED.value)
    if expected_version is not None:
        _check_version(offer, expected_version)

    previous = apply_offer_update(session, brand, offer, {}, OfferStatus.PUBLISHED, billing)
    if offer.draft is not None:
        offer.draft = None
    commit_offer(session, offer)
    session.refresh(offer)

    log_transition("offer", offer.id, previous, offer.status, brand_id=brand.id, user_id=user_id)
    log_business_event(
        event_type="offer_published",
        details={"offer_id": offer.id, "brand_id": brand.id, "source": "draft"},
        user_id=user_id,
    )
    return offer


__all__ = [
    "DraftView",
    "save_draft",
    "load_draft",
    "list_drafts",
    "publish_draft",
]
