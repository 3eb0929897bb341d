"""State machine tables and optimistic-concurrency helpers shared by the lifecycle services.

Every status change is applied with ``compare_and_set``: a conditional
``UPDATE ... WHERE id = :id AND status = :expected``. Zero affected rows means
another request moved the entity first, which surfaces as ``Conflict``.
Callers wrap engine operations in ``retry_on_conflict`` so one conflict is
retried against fresh state and a second one reaches the client.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from sqlalchemy import update
from sqlalchemy.orm import Session

from barter_engine.errors import Conflict, InvalidTransition
from barter_engine.integrations.base import NotificationSink
from barter_engine.models.db import Creator, Offer, User
from barter_engine.models.db.enums import (
    DeliverableStatus, ManualShipmentStatus, MatchStatus, NotificationKind, OfferStatus,
)
from barter_engine.utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

OFFER_TRANSITIONS: Mapping[OfferStatus, frozenset] = {
    OfferStatus.DRAFT: frozenset({OfferStatus.PUBLISHED}),
    OfferStatus.PUBLISHED: frozenset({OfferStatus.ARCHIVED}),
    OfferStatus.ARCHIVED: frozenset({OfferStatus.PUBLISHED}),
}

MATCH_TRANSITIONS: Mapping[MatchStatus, frozenset] = {
    MatchStatus.PENDING_APPROVAL: frozenset({MatchStatus.ACCEPTED, MatchStatus.REVOKED, MatchStatus.CANCELED}),
    MatchStatus.ACCEPTED: frozenset({MatchStatus.REVOKED, MatchStatus.CANCELED}),
    MatchStatus.REVOKED: frozenset(),
    MatchStatus.CANCELED: frozenset(),
}

MANUAL_SHIPMENT_TRANSITIONS: Mapping[ManualShipmentStatus, frozenset] = {
    ManualShipmentStatus.PENDING: frozenset({ManualShipmentStatus.SHIPPED}),
    ManualShipmentStatus.SHIPPED: frozenset(),
}

# DUE -> DUE is a creator (re)submission; REPOST_REQUIRED -> DUE is a resubmission
DELIVERABLE_TRANSITIONS: Mapping[DeliverableStatus, frozenset] = {
    DeliverableStatus.DUE: frozenset({
        DeliverableStatus.DUE, DeliverableStatus.VERIFIED,
        DeliverableStatus.REPOST_REQUIRED, DeliverableStatus.FAILED,
    }),
    DeliverableStatus.REPOST_REQUIRED: frozenset({
        DeliverableStatus.DUE, DeliverableStatus.VERIFIED, DeliverableStatus.FAILED,
    }),
    DeliverableStatus.VERIFIED: frozenset(),
    DeliverableStatus.FAILED: frozenset(),
}


def _label(value: Any) -> str:
    return str(getattr(value, "value", value))


def assert_transition(entity: str, table: Mapping[Any, Iterable[Any]], current: Any, target: Any) -> None:
    if target not in table.get(current, ()):
        raise InvalidTransition(entity, _label(current), _label(target))


def compare_and_set(session: Session, obj: Any, expected_status: Any, **values: Any) -> None:
    """Apply ``values`` to ``obj`` only if its row still has ``expected_status``.

    Rolls back and raises ``Conflict`` when the row moved underneath us. The
    instance is expired so the next attribute access reloads the new state.
    """
    model = type(obj)
    stmt = (
        update(model)
        .where(model.id == obj.id, model.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        entity_id = obj.id
        session.rollback()
        logger.warning(
            "Compare-and-set lost race",
            entity=model.__name__,
            entity_id=entity_id,
            expected_status=_label(expected_status),
        )
        raise Conflict(
            f"{model.__name__} {entity_id} changed concurrently; expected {_label(expected_status)}",
            entity=model.__name__,
            entity_id=entity_id,
            expected_status=_label(expected_status),
        )
    session.expire(obj)


def assert_expected_status(obj: Any, expected_status: Optional[Any]) -> None:
    """Client-side precondition: the caller saw ``expected_status`` when it decided to act."""
    if expected_status is not None and obj.status != expected_status:
        raise Conflict(
            f"{type(obj).__name__} {obj.id} is {_label(obj.status)}, not {_label(expected_status)}",
            entity=type(obj).__name__,
            entity_id=obj.id,
            expected_status=_label(expected_status),
            current_status=_label(obj.status),
        )


def release_claim_slot(session: Session, offer_id: int) -> None:
    session.execute(
        update(Offer)
        .where(Offer.id == offer_id, Offer.active_claim_count > 0)
        .values(active_claim_count=Offer.active_claim_count - 1)
        .execution_options(synchronize_session=False)
    )


def retry_on_conflict(session: Session, operation: Callable[[], T], attempts: int = 2) -> T:
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Conflict as exc:
            if attempt >= attempts:
                raise
            session.rollback()
            session.expire_all()
            logger.info("Retrying after conflict", attempt=attempt, detail=exc.message)
    raise RuntimeError("unreachable")  # pragma: no cover


# ------------------------------ Notifications ----------------------------- #

def _deliver(notifier: NotificationSink, user_id: int, kind: NotificationKind, text: str) -> None:
    try:
        notifier.notify(user_id, kind, text)
    except Exception as e:
        # The transition is already committed; delivery is best effort
        logger.warning("Notification sink failed", user_id=user_id, kind=kind.value, error=str(e))


def notify_creator(
    session: Session,
    notifier: Optional[NotificationSink],
    creator_id: int,
    kind: NotificationKind,
    text: str,
) -> None:
    """Send after commit; the sink writes through its own session."""
    if notifier is None:
        return
    user = session.query(User).filter(User.creator_id == creator_id).first()
    if user is not None:
        _deliver(notifier, user.id, kind, text)


def notify_brand(
    session: Session,
    notifier: Optional[NotificationSink],
    brand_id: int,
    kind: NotificationKind,
    text: str,
) -> None:
    if notifier is None:
        return
    for user in session.query(User).filter(User.brand_id == brand_id, User.is_active == True).all():  # noqa: E712
        _deliver(notifier, user.id, kind, text)


def creator_display_name(session: Session, creator_id: int) -> str:
    creator = session.get(Creator, creator_id)
    return (creator.full_name if creator and creator.full_name else "A creator")


__all__ = [
    "OFFER_TRANSITIONS",
    "MATCH_TRANSITIONS",
    "MANUAL_SHIPMENT_TRANSITIONS",
    "DELIVERABLE_TRANSITIONS",
    "assert_transition",
    "assert_expected_status",
    "compare_and_set",
    "release_claim_slot",
    "retry_on_conflict",
    "notify_creator",
    "notify_brand",
    "creator_display_name",
]
