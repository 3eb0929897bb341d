"""Creator submissions and brand review of deliverables.

    DUE --submit--> DUE (submitted)
    DUE (submitted) --request_changes--> REPOST_REQUIRED --submit--> DUE
    DUE | REPOST_REQUIRED --verify--> VERIFIED
    DUE | REPOST_REQUIRED --fail--> FAILED (+1 strike for the creator)

VERIFIED and FAILED are terminal. Every review action appends an immutable
``DeliverableReview`` row.

The deadline sweep reminds creators shortly before ``due_at`` and fails
DUE deliverables with no submission by then (+1 strike, once per match).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, selectinload

from barter_engine.config import LIFECYCLE_SETTINGS
from barter_engine.errors import Conflict, InvalidTransition, Issue, NotFound, ValidationError
from barter_engine.integrations.base import NotificationSink
from barter_engine.models.db import Brand, Creator, Deliverable, DeliverableReview, Match, Offer, Strike
from barter_engine.models.db.enums import (
    DeliverableStatus, MatchStatus, NotificationKind, ReviewAction, UsageRightsScope,
)
from barter_engine.services.transitions import (
    DELIVERABLE_TRANSITIONS, assert_expected_status, assert_transition, compare_and_set,
    notify_brand, notify_creator, creator_display_name,
)
from barter_engine.utils import get_logger, log_business_event, log_transition
from barter_engine.utils.time import ensure_aware, utc_now

logger = get_logger(__name__)

PERMALINK_MAX = 500
NOTES_MAX = 2000
REASON_MAX = 500
MISSED_DEADLINE = "Missed deadline"
MISSED_DEADLINE_STRIKE = "Missed deliverable deadline"


def _deliverable_query(session: Session):
    return session.query(Deliverable).options(
        selectinload(Deliverable.reviews),
        selectinload(Deliverable.match).selectinload(Match.offer),
    )


def get_brand_deliverable(session: Session, brand: Brand, deliverable_id: int) -> Deliverable:
    deliverable = (
        _deliverable_query(session)
        .join(Match, Deliverable.match_id == Match.id)
        .join(Offer, Match.offer_id == Offer.id)
        .filter(Deliverable.id == deliverable_id, Offer.brand_id == brand.id)
        .first()
    )
    if deliverable is None:
        raise NotFound("Deliverable", deliverable_id)
    return deliverable


def _permalink_issues(field: str, url: Optional[str]) -> list[Issue]:
    if not url:
        return [Issue(field, "required", "Missing permalink")]
    if len(url) > PERMALINK_MAX:
        return [Issue(field, "too_long", f"{field} must be at most {PERMALINK_MAX} characters")]
    if not url.lower().startswith(("http://", "https://")):
        return [Issue(field, "invalid_url", f"{field} must be an http(s) URL")]
    return []


def _require_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError([Issue("reason", "required", "A reason is required")])
    if len(reason) > REASON_MAX:
        raise ValidationError([Issue("reason", "too_long", f"reason must be at most {REASON_MAX} characters")])
    return reason


def _assert_reviewable(deliverable: Deliverable, target: DeliverableStatus) -> None:
    if deliverable.match.status != MatchStatus.ACCEPTED:
        raise InvalidTransition(
            "deliverable", deliverable.status.value, target.value,
            "Deliverables can only be reviewed while the match is accepted",
        )
    assert_transition("deliverable", DELIVERABLE_TRANSITIONS, deliverable.status, target)


def submit_deliverable(
    session: Session,
    creator: Creator,
    match_id: int,
    permalink: str,
    notes: Optional[str] = None,
    grant_usage_rights: bool = False,
    notifier: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
) -> Deliverable:
    now = now or utc_now()
    match = session.query(Match).filter(Match.id == match_id, Match.creator_id == creator.id).first()
    if match is None:
        raise NotFound("Match", match_id)
    deliverable = session.query(Deliverable).filter(Deliverable.match_id == match.id).first()
    if match.status != MatchStatus.ACCEPTED or deliverable is None:
        raise InvalidTransition(
            "deliverable", deliverable.status.value if deliverable else "NONE", DeliverableStatus.DUE.value,
            "Only accepted matches can submit content",
        )
    assert_transition("deliverable", DELIVERABLE_TRANSITIONS, deliverable.status, DeliverableStatus.DUE)

    permalink = (permalink or "").strip()
    issues = _permalink_issues("permalink", permalink)
    if notes is not None and len(notes) > NOTES_MAX:
        issues.append(Issue("notes", "too_long", f"notes must be at most {NOTES_MAX} characters"))
    offer = match.offer
    if offer.usage_rights_required and not grant_usage_rights:
        issues.append(Issue(
            "grant_usage_rights", "required",
            "This campaign requires granting usage rights with your submission",
        ))
    if issues:
        raise ValidationError(issues)

    values = {
        "status": DeliverableStatus.DUE,
        "submitted_permalink": permalink,
        "submitted_notes": notes,
        "submitted_at": now,
    }
    if offer.usage_rights_required:
        values["usage_rights_granted_at"] = now
        values["usage_rights_scope"] = offer.usage_rights_scope or UsageRightsScope(
            LIFECYCLE_SETTINGS["default_usage_rights_scope"]
        )

    previous = deliverable.status
    brand_id = offer.brand_id
    compare_and_set(session, deliverable, previous, **values)
    session.commit()
    session.refresh(deliverable)

    log_transition("deliverable", deliverable.id, previous, deliverable.status, action="submit", match_id=match.id)
    notify_brand(
        session, notifier, brand_id, NotificationKind.INFO,
        f"{creator_display_name(session, creator.id)} submitted content for review.",
    )
    return deliverable


def _append_review(
    session: Session,
    deliverable: Deliverable,
    action: ReviewAction,
    reason: Optional[str],
    permalink: Optional[str],
    user_id: Optional[int],
) -> None:
    session.add(DeliverableReview(
        deliverable_id=deliverable.id,
        action=action,
        reason=reason,
        submitted_permalink=permalink,
        reviewer_user_id=user_id,
    ))


def _record_strike(session: Session, creator_id: int, match_id: int, reason: str) -> bool:
    """Add the match's strike unless it already has one. Returns whether a strike was added."""
    if session.query(Strike.id).filter(Strike.match_id == match_id).first() is not None:
        return False
    session.add(Strike(creator_id=creator_id, match_id=match_id, reason=reason[:200]))
    return True


def verify_deliverable(
    session: Session,
    brand: Brand,
    deliverable_id: int,
    permalink: Optional[str] = None,
    expected_status: Optional[DeliverableStatus] = None,
    notifier: Optional[NotificationSink] = None,
    user_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Deliverable:
    now = now or utc_now()
    deliverable = get_brand_deliverable(session, brand, deliverable_id)
    assert_expected_status(deliverable, expected_status)
    _assert_reviewable(deliverable, DeliverableStatus.VERIFIED)

    final_link = (permalink or "").strip() or deliverable.submitted_permalink
    issues = _permalink_issues("permalink", final_link)
    offer = deliverable.match.offer
    if offer.usage_rights_required and deliverable.usage_rights_granted_at is None:
        issues.append(Issue("usage_rights", "not_granted", "The creator has not granted usage rights"))
    if issues:
        raise ValidationError(issues)

    previous = deliverable.status
    creator_id = deliverable.match.creator_id
    compare_and_set(
        session, deliverable, previous,
        status=DeliverableStatus.VERIFIED, verified_permalink=final_link, verified_at=now,
    )
    _append_review(session, deliverable, ReviewAction.VERIFIED, None, final_link, user_id)
    session.commit()
    session.refresh(deliverable)

    log_transition("deliverable", deliverable.id, previous, deliverable.status, user_id=user_id)
    log_business_event(
        event_type="deliverable_verified",
        details={"deliverable_id": deliverable.id, "permalink": final_link},
        user_id=user_id,
    )
    notify_creator(session, notifier, creator_id, NotificationKind.SUCCESS, "Your post was verified. Nice work!")
    return deliverable


def request_changes(
    session: Session,
    brand: Brand,
    deliverable_id: int,
    reason: str,
    expected_status: Optional[DeliverableStatus] = None,
    notifier: Optional[NotificationSink] = None,
    user_id: Optional[int] = None,
) -> Deliverable:
    reason = _require_reason(reason)
    deliverable = get_brand_deliverable(session, brand, deliverable_id)
    assert_expected_status(deliverable, expected_status)
    _assert_reviewable(deliverable, DeliverableStatus.REPOST_REQUIRED)
    if deliverable.submitted_at is None:
        raise InvalidTransition(
            "deliverable", deliverable.status.value, DeliverableStatus.REPOST_REQUIRED.value,
            "Nothing has been submitted yet",
        )

    previous = deliverable.status
    snapshot = deliverable.submitted_permalink
    creator_id = deliverable.match.creator_id
    compare_and_set(
        session, deliverable, previous,
        status=DeliverableStatus.REPOST_REQUIRED,
        submitted_permalink=None,
        submitted_notes=None,
        submitted_at=None,
        review_count=Deliverable.review_count + 1,
    )
    _append_review(session, deliverable, ReviewAction.REQUEST_CHANGES, reason, snapshot, user_id)
    session.commit()
    session.refresh(deliverable)

    log_transition("deliverable", deliverable.id, previous, deliverable.status, reason=reason, user_id=user_id)
    notify_creator(session, notifier, creator_id, NotificationKind.INFO, f"Changes requested: {reason}")
    return deliverable


def fail_deliverable(
    session: Session,
    brand: Brand,
    deliverable_id: int,
    reason: str,
    expected_status: Optional[DeliverableStatus] = None,
    notifier: Optional[NotificationSink] = None,
    user_id: Optional[int] = None,
) -> Deliverable:
    reason = _require_reason(reason)
    deliverable = get_brand_deliverable(session, brand, deliverable_id)
    assert_expected_status(deliverable, expected_status)
    _assert_reviewable(deliverable, DeliverableStatus.FAILED)

    previous = deliverable.status
    match_id = deliverable.match_id
    creator_id = deliverable.match.creator_id
    snapshot = deliverable.submitted_permalink
    compare_and_set(
        session, deliverable, previous,
        status=DeliverableStatus.FAILED, failure_reason=reason,
    )
    _append_review(session, deliverable, ReviewAction.FAILED, reason, snapshot, user_id)
    strike_issued = _record_strike(session, creator_id, match_id, reason)
    session.commit()
    session.refresh(deliverable)

    log_transition("deliverable", deliverable.id, previous, deliverable.status, reason=reason, user_id=user_id)
    log_business_event(
        event_type="strike_recorded",
        details={"creator_id": creator_id, "match_id": match_id, "new": strike_issued},
        user_id=user_id,
    )
    notify_creator(session, notifier, creator_id, NotificationKind.ERROR, f"Deliverable marked failed: {reason}")
    return deliverable


# ------------------------------ Deadline sweep ----------------------------- #

@dataclass(slots=True)
class OverdueFailure:
    deliverable_id: int
    match_id: int
    creator_id: int
    strike_issued: bool


def _open_deliverables(session: Session):
    """DUE deliverables of accepted matches with nothing submitted before the deadline."""
    return (
        session.query(Deliverable)
        .join(Match, Deliverable.match_id == Match.id)
        .filter(
            Deliverable.status == DeliverableStatus.DUE,
            Match.status == MatchStatus.ACCEPTED,
            or_(Deliverable.submitted_at.is_(None), Deliverable.submitted_at > Deliverable.due_at),
        )
    )


def send_due_reminders(
    session: Session,
    notifier: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
) -> int:
    """Remind creators once when a deliverable falls due within the reminder window."""
    now = now or utc_now()
    window_end = now + timedelta(hours=int(LIFECYCLE_SETTINGS["reminder_window_hours"]))  # type: ignore[arg-type]
    due_soon = (
        _open_deliverables(session)
        .filter(
            Deliverable.submitted_at.is_(None),
            Deliverable.reminder_sent_at.is_(None),
            Deliverable.due_at > now,
            Deliverable.due_at < window_end,
        )
        .order_by(Deliverable.due_at, Deliverable.id)
        .limit(int(LIFECYCLE_SETTINGS["deadline_sweep_batch"]))  # type: ignore[arg-type]
        .all()
    )
    targets = [(d.id, d.match.creator_id, d.match.campaign_code, ensure_aware(d.due_at)) for d in due_soon]

    sent = 0
    for deliverable_id, creator_id, campaign_code, due_at in targets:
        claimed = session.execute(
            update(Deliverable)
            .where(Deliverable.id == deliverable_id, Deliverable.reminder_sent_at.is_(None))
            .values(reminder_sent_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount
        session.commit()
        if claimed != 1:
            continue
        sent += 1
        log_business_event(
            event_type="deliverable_due_soon",
            details={"deliverable_id": deliverable_id, "campaign_code": campaign_code, "due_at": due_at},
        )
        notify_creator(
            session, notifier, creator_id, NotificationKind.INFO,
            f"Reminder: your post for {campaign_code} is due by {due_at:%Y-%m-%d %H:%M} UTC.",
        )
    return sent


def fail_overdue_deliverables(
    session: Session,
    notifier: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
) -> List[OverdueFailure]:
    """Fail DUE deliverables past their deadline and strike the creator once per match.

    Each deliverable is committed on its own; one that a brand reviewed in the
    meantime loses the compare-and-set and is skipped.
    """
    now = now or utc_now()
    overdue_ids = [
        row.id for row in (
            _open_deliverables(session)
            .filter(Deliverable.due_at < now)
            .order_by(Deliverable.due_at, Deliverable.id)
            .limit(int(LIFECYCLE_SETTINGS["deadline_sweep_batch"]))  # type: ignore[arg-type]
            .all()
        )
    ]

    failures: List[OverdueFailure] = []
    for deliverable_id in overdue_ids:
        deliverable = session.get(Deliverable, deliverable_id)
        if deliverable is None:
            continue
        match_id = deliverable.match_id
        creator_id = deliverable.match.creator_id
        snapshot = deliverable.submitted_permalink
        try:
            compare_and_set(
                session, deliverable, DeliverableStatus.DUE,
                status=DeliverableStatus.FAILED, failure_reason=MISSED_DEADLINE,
            )
        except Conflict:
            logger.info("Overdue deliverable already moved", deliverable_id=deliverable_id)
            continue
        _append_review(session, deliverable, ReviewAction.FAILED, MISSED_DEADLINE, snapshot, None)
        strike_issued = _record_strike(session, creator_id, match_id, MISSED_DEADLINE_STRIKE)
        session.commit()

        failures.append(OverdueFailure(deliverable_id, match_id, creator_id, strike_issued))
        log_transition(
            "deliverable", deliverable_id, DeliverableStatus.DUE, DeliverableStatus.FAILED,
            reason=MISSED_DEADLINE,
        )
        log_business_event(
            event_type="strike_recorded",
            details={"creator_id": creator_id, "match_id": match_id, "new": strike_issued},
        )
        if strike_issued:
            notify_creator(
                session, notifier, creator_id, NotificationKind.ERROR,
                "Strike issued: you missed the deadline for your post.",
            )
    return failures


__all__ = [
    "get_brand_deliverable",
    "submit_deliverable",
    "verify_deliverable",
    "request_changes",
    "fail_deliverable",
    "OverdueFailure",
    "send_due_reminders",
    "fail_overdue_deliverables",
]
