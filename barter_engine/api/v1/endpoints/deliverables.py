"""
Deliverable review endpoints for brands.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import time
from barter_engine.api.deps import get_db, get_current_brand, require_brand_user, get_notifier
from barter_engine.integrations import NotificationSink
from barter_engine.models.db import Brand, User
from barter_engine.models.schemas.deliverables import (
    DeliverableDetail, DeliverableReason, DeliverableVerify,
)
from barter_engine.services import deliverable_review
from barter_engine.services.transitions import retry_on_conflict
from barter_engine.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

@router.get("/{deliverable_id}", response_model=DeliverableDetail, summary="Deliverable with review history")
async def get_deliverable(
    deliverable_id: int,
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> DeliverableDetail:
    return DeliverableDetail.model_validate(deliverable_review.get_brand_deliverable(db, brand, deliverable_id))

@router.post("/{deliverable_id}/verify", response_model=DeliverableDetail, summary="Verify deliverable")
async def verify_deliverable(
    deliverable_id: int,
    body: DeliverableVerify,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> DeliverableDetail:
    start_time = time.time()
    deliverable = retry_on_conflict(db, lambda: deliverable_review.verify_deliverable(
        db, brand, deliverable_id, body.permalink, body.expected_status, notifier, user_id=user.id
    ))
    log_performance(
        operation="verify_deliverable",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"deliverable_id": deliverable.id}
    )
    return DeliverableDetail.model_validate(deliverable)

@router.post(
    "/{deliverable_id}/request-changes",
    response_model=DeliverableDetail,
    summary="Request a re-post"
)
async def request_changes(
    deliverable_id: int,
    body: DeliverableReason,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> DeliverableDetail:
    request_id = request.headers.get("X-Request-ID", "unknown")
    deliverable = retry_on_conflict(db, lambda: deliverable_review.request_changes(
        db, brand, deliverable_id, body.reason, body.expected_status, notifier, user_id=user.id
    ))
    logger.info(
        "Changes requested",
        deliverable_id=deliverable.id,
        review_count=deliverable.review_count,
        request_id=request_id
    )
    return DeliverableDetail.model_validate(deliverable)

@router.post("/{deliverable_id}/fail", response_model=DeliverableDetail, summary="Fail deliverable")
async def fail_deliverable(
    deliverable_id: int,
    body: DeliverableReason,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> DeliverableDetail:
    request_id = request.headers.get("X-Request-ID", "unknown")
    deliverable = retry_on_conflict(db, lambda: deliverable_review.fail_deliverable(
        db, brand, deliverable_id, body.reason, body.expected_status, notifier, user_id=user.id
    ))
    logger.info("Deliverable failed", deliverable_id=deliverable.id, request_id=request_id)
    return DeliverableDetail.model_validate(deliverable)
