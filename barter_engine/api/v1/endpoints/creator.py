"""
Creator-facing endpoints: feed, own matches, submissions and notifications.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
import time
from barter_engine.api.deps import (
    get_db, get_current_creator, require_creator_user, get_notifier, get_social_connect, get_pagination_params,
)
from barter_engine.integrations import NotificationSink, SocialConnectService
from barter_engine.models.db import Creator, Notification, User
from barter_engine.models.schemas.deliverables import DeliverableRead, DeliverableSubmit
from barter_engine.models.schemas.matches import MatchAction, MatchView
from barter_engine.models.schemas.notifications import NotificationRead
from barter_engine.models.schemas.offers import FeedItem, OfferRead
from barter_engine.services import deliverable_review, match_lifecycle
from barter_engine.services.feed import build_feed
from barter_engine.services.transitions import retry_on_conflict
from barter_engine.utils import get_logger, log_performance
from .matches import to_match_view

router = APIRouter()
logger = get_logger(__name__)

@router.get("/feed", response_model=List[FeedItem], summary="Offer feed")
async def feed(
    request: Request,
    pagination: dict = Depends(get_pagination_params),
    creator: Creator = Depends(get_current_creator),
    social: SocialConnectService = Depends(get_social_connect),
    db: Session = Depends(get_db)
) -> List[FeedItem]:
    """Published offers the creator can claim now or after fixing their profile."""
    start_time = time.time()
    entries = build_feed(db, creator, social, **pagination)
    items = [
        FeedItem(
            offer=OfferRead.model_validate(entry.offer),
            brand_name=entry.offer.brand.name,
            claimable=entry.claimable,
            reason=entry.reason,
            next_step=entry.next_step,
            details=entry.details,
        )
        for entry in entries
    ]
    log_performance(
        operation="creator_feed",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"creator_id": creator.id, "items": len(items)}
    )
    return items

@router.get("/matches", response_model=List[MatchView], summary="My matches")
async def my_matches(
    include_closed: bool = Query(False),
    creator: Creator = Depends(get_current_creator),
    db: Session = Depends(get_db)
) -> List[MatchView]:
    return [to_match_view(m) for m in match_lifecycle.list_creator_matches(db, creator, include_closed)]

@router.post("/matches/{match_id}/submit", response_model=DeliverableRead, summary="Submit content")
async def submit(
    match_id: int,
    body: DeliverableSubmit,
    request: Request,
    creator: Creator = Depends(get_current_creator),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> DeliverableRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    deliverable = retry_on_conflict(db, lambda: deliverable_review.submit_deliverable(
        db, creator, match_id, body.permalink, body.notes, body.grant_usage_rights, notifier
    ))
    logger.info(
        "Deliverable submitted",
        match_id=match_id,
        deliverable_id=deliverable.id,
        request_id=request_id
    )
    return DeliverableRead.model_validate(deliverable)

@router.post("/matches/{match_id}/cancel", response_model=MatchView, summary="Withdraw claim")
async def cancel(
    match_id: int,
    action: Optional[MatchAction] = None,
    creator: Creator = Depends(get_current_creator),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> MatchView:
    match = retry_on_conflict(db, lambda: match_lifecycle.cancel_match(
        db, creator, match_id, action.expected_status if action else None, notifier
    ))
    return to_match_view(match)

@router.get("/notifications", response_model=List[NotificationRead], summary="My notifications")
async def notifications(
    pagination: dict = Depends(get_pagination_params),
    user: User = Depends(require_creator_user),
    db: Session = Depends(get_db)
) -> List[NotificationRead]:
    rows = (
        db.query(Notification)
        .filter(Notification.user_id == user.id)
        .order_by(Notification.id.desc())
        .offset(pagination["offset"])
        .limit(pagination["limit"])
        .all()
    )
    return [NotificationRead.model_validate(n) for n in rows]
