"""Pipeline stage derivation and Kanban drop translation.

``derive_stage`` is a pure, total function over the current Match, Shipment
and Deliverable. The stage is never persisted; every read recomputes it.

Precedence (highest first):
  VERIFIED deliverable        -> complete
  REPOST_REQUIRED deliverable -> repost_required
  submitted deliverable       -> posted
  shipped shipment            -> shipped
  ACCEPTED match              -> approved
  otherwise                   -> applied

The board is a read-only projection of this function. ``resolve_board_drop``
maps a drop gesture to the single real operation behind it, or rejects it.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional, Union

from barter_engine.config import LIFECYCLE_SETTINGS
from barter_engine.models.db.enums import (
    DeliverableStatus, FulfillmentType, ManualShipmentStatus, MatchStatus, Stage,
)


def _value(value: Any) -> Any:
    return getattr(value, "value", value)


def is_shipped(shipment) -> bool:
    if shipment is None:
        return False
    status = _value(shipment.status)
    if _value(shipment.fulfillment_type) == FulfillmentType.SHOPIFY.value:
        return status in LIFECYCLE_SETTINGS["shopify_shipped_statuses"]  # type: ignore[operator]
    return status == ManualShipmentStatus.SHIPPED.value


def derive_stage(match, shipment=None, deliverable=None) -> Stage:
    if deliverable is not None:
        deliverable_status = _value(deliverable.status)
        if deliverable_status == DeliverableStatus.VERIFIED.value:
            return Stage.COMPLETE
        if deliverable_status == DeliverableStatus.REPOST_REQUIRED.value:
            return Stage.REPOST_REQUIRED
        if deliverable.submitted_at is not None:
            return Stage.POSTED
    if is_shipped(shipment):
        return Stage.SHIPPED
    if _value(match.status) == MatchStatus.ACCEPTED.value:
        return Stage.APPROVED
    return Stage.APPLIED


def stage_for_match(match) -> Stage:
    """Convenience wrapper for ORM matches with loaded relationships."""
    return derive_stage(match, match.shipment, match.deliverable)


# ------------------------------ Board drops ------------------------------ #

class BoardAction(str, enum.Enum):
    APPROVE_MATCH = "APPROVE_MATCH"
    MARK_SHIPPED = "MARK_SHIPPED"
    VERIFY_DELIVERABLE = "VERIFY_DELIVERABLE"
    REQUEST_CHANGES = "REQUEST_CHANGES"


@dataclass(frozen=True)
class BoardRejection:
    explanation: str


DropResult = Union[BoardAction, BoardRejection]

ALREADY_THERE = "Already in this stage."
REPOST_HINT = "Re-post required is set when you request changes."
COMPLETE_HINT = "Verify in deliverables to complete."
DEFAULT_HINT = "Move to Approved first, then update shipments/deliverables."


def resolve_board_drop(
    target: Stage,
    match,
    shipment=None,
    deliverable=None,
    reason: Optional[str] = None,
) -> DropResult:
    current = derive_stage(match, shipment, deliverable)
    if target == current:
        return BoardRejection(ALREADY_THERE)

    if target == Stage.APPROVED:
        if _value(match.status) == MatchStatus.PENDING_APPROVAL.value:
            return BoardAction.APPROVE_MATCH
        return BoardRejection(DEFAULT_HINT)

    if target == Stage.SHIPPED:
        if (
            shipment is not None
            and _value(shipment.fulfillment_type) == FulfillmentType.MANUAL.value
            and _value(shipment.status) == ManualShipmentStatus.PENDING.value
        ):
            return BoardAction.MARK_SHIPPED
        return BoardRejection(DEFAULT_HINT)

    if target == Stage.COMPLETE:
        if deliverable is not None and deliverable.submitted_permalink:
            return BoardAction.VERIFY_DELIVERABLE
        return BoardRejection(COMPLETE_HINT)

    if target == Stage.REPOST_REQUIRED:
        if deliverable is not None and deliverable.submitted_at is not None and (reason or "").strip():
            return BoardAction.REQUEST_CHANGES
        return BoardRejection(REPOST_HINT)

    return BoardRejection(DEFAULT_HINT)


__all__ = [
    "is_shipped",
    "derive_stage",
    "stage_for_match",
    "BoardAction",
    "BoardRejection",
    "DropResult",
    "resolve_board_drop",
]
