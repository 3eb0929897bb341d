from datetime import datetime, timedelta, timezone

from barter_engine.jobs import deadline_sweep
from barter_engine.models.db import Deliverable, Notification, Strike
from barter_engine.models.db.enums import DeliverableStatus, NotificationKind, ReviewAction
from barter_engine.services import deliverable_review, match_lifecycle
from barter_engine.utils.time import ensure_aware

T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
PERMALINK = "https://www.instagram.com/reel/Cx12345/"
STRIKE_TEXT = "Strike issued: you missed the deadline for your post."


def _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory, **offer_fields):
    brand = brand_factory()
    offer = offer_factory(brand, deadline_days_after_delivery=10, **offer_fields)
    creator = creator_factory()
    match = match_lifecycle.claim_offer(db_session, creator.creator, offer.id, social, now=T0)
    return brand, creator, match


def _strikes(db_session, creator):
    return db_session.query(Strike).filter(Strike.creator_id == creator.creator_id).all()


def test_overdue_deliverable_fails_with_one_strike(db_session, social, notifier, brand_factory, creator_factory, offer_factory):
    _, creator, match = _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory)
    deliverable_id = match.deliverable.id
    due_at = ensure_aware(match.deliverable.due_at)

    # Not yet late
    assert deliverable_review.fail_overdue_deliverables(db_session, notifier, now=due_at - timedelta(hours=1)) == []

    failures = deliverable_review.fail_overdue_deliverables(db_session, notifier, now=due_at + timedelta(days=1))
    assert [(f.deliverable_id, f.strike_issued) for f in failures] == [(deliverable_id, True)]

    db_session.expire_all()
    deliverable = db_session.get(Deliverable, deliverable_id)
    assert deliverable.status == DeliverableStatus.FAILED
    assert deliverable.failure_reason == "Missed deadline"
    assert [r.action for r in deliverable.reviews] == [ReviewAction.FAILED]
    strikes = _strikes(db_session, creator)
    assert len(strikes) == 1
    assert strikes[0].match_id == match.id
    assert notifier.events == [(creator.id, NotificationKind.ERROR, STRIKE_TEXT)]

    # A second sweep finds nothing left to fail
    assert deliverable_review.fail_overdue_deliverables(db_session, notifier, now=due_at + timedelta(days=2)) == []
    assert len(_strikes(db_session, creator)) == 1


def test_late_submission_still_misses_the_deadline(db_session, social, brand_factory, creator_factory, offer_factory):
    _, creator, match = _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory)
    due_at = ensure_aware(match.deliverable.due_at)
    deliverable_review.submit_deliverable(
        db_session, creator.creator, match.id, PERMALINK, now=due_at + timedelta(days=60),
    )

    failures = deliverable_review.fail_overdue_deliverables(db_session, now=due_at + timedelta(days=61))
    assert len(failures) == 1
    db_session.expire_all()
    assert db_session.get(Deliverable, failures[0].deliverable_id).status == DeliverableStatus.FAILED
    assert len(_strikes(db_session, creator)) == 1


def test_on_time_submission_waits_for_review(db_session, social, brand_factory, creator_factory, offer_factory):
    _, creator, match = _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory)
    due_at = ensure_aware(match.deliverable.due_at)
    deliverable_review.submit_deliverable(db_session, creator.creator, match.id, PERMALINK, now=T0 + timedelta(days=5))

    assert deliverable_review.fail_overdue_deliverables(db_session, now=due_at + timedelta(days=30)) == []
    db_session.expire_all()
    assert db_session.get(Deliverable, match.deliverable.id).status == DeliverableStatus.DUE
    assert _strikes(db_session, creator) == []


def test_canceled_matches_are_not_swept(db_session, social, brand_factory, creator_factory, offer_factory):
    _, creator, match = _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory)
    due_at = ensure_aware(match.deliverable.due_at)
    match_lifecycle.cancel_match(db_session, creator.creator, match.id, now=T0 + timedelta(days=1))

    assert deliverable_review.fail_overdue_deliverables(db_session, now=due_at + timedelta(days=1)) == []
    assert _strikes(db_session, creator) == []


def test_due_soon_reminder_is_sent_once(db_session, social, notifier, brand_factory, creator_factory, offer_factory):
    _, creator, match = _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory)
    due_at = ensure_aware(match.deliverable.due_at)

    # Outside the 48h window
    assert deliverable_review.send_due_reminders(db_session, notifier, now=due_at - timedelta(days=3)) == 0

    reminder_at = due_at - timedelta(hours=24)
    assert deliverable_review.send_due_reminders(db_session, notifier, now=reminder_at) == 1
    assert deliverable_review.send_due_reminders(db_session, notifier, now=reminder_at + timedelta(hours=1)) == 0

    assert len(notifier.events) == 1
    user_id, kind, text = notifier.events[0]
    assert (user_id, kind) == (creator.id, NotificationKind.INFO)
    assert text.startswith(f"Reminder: your post for {match.campaign_code} is due by ")

    db_session.expire_all()
    assert ensure_aware(db_session.get(Deliverable, match.deliverable.id).reminder_sent_at) == reminder_at


def test_submitted_deliverables_get_no_reminder(db_session, social, notifier, brand_factory, creator_factory, offer_factory):
    _, creator, match = _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory)
    due_at = ensure_aware(match.deliverable.due_at)
    deliverable_review.submit_deliverable(db_session, creator.creator, match.id, PERMALINK, now=T0 + timedelta(days=5))

    assert deliverable_review.send_due_reminders(db_session, notifier, now=due_at - timedelta(hours=24)) == 0
    assert notifier.events == []


def test_sweep_command_writes_to_the_outbox(db_session, social, brand_factory, creator_factory, offer_factory):
    # Claimed long ago, so the deadline has passed by the time the command runs
    _, creator, match = _accepted_match(db_session, social, brand_factory, creator_factory, offer_factory)

    result = deadline_sweep.main()
    assert result == deadline_sweep.DeadlineSweepResult(reminded=0, failed=1, strikes_issued=1)

    db_session.expire_all()
    assert db_session.get(Deliverable, match.deliverable.id).status == DeliverableStatus.FAILED
    rows = db_session.query(Notification).filter(Notification.user_id == creator.id).all()
    assert [(n.kind, n.text) for n in rows] == [(NotificationKind.ERROR, STRIKE_TEXT)]
