"""
Brand-side match endpoints: approval queue and the pipeline board.

The board never stores a stage. Every read derives it, and a drop on the
board is translated into the one real operation it stands for.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import time
from barter_engine.api.deps import get_db, get_current_brand, require_brand_user, get_notifier
from barter_engine.integrations import NotificationSink
from barter_engine.models.db import Brand, Match, User
from barter_engine.models.db.enums import ManualShipmentStatus
from barter_engine.models.schemas.matches import MatchAction, MatchMove, MatchReject, MatchRead, MatchView
from barter_engine.services import deliverable_review, fulfillment, match_lifecycle
from barter_engine.services.stage import BoardAction, BoardRejection, resolve_board_drop, stage_for_match
from barter_engine.services.transitions import retry_on_conflict
from barter_engine.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)

def to_match_view(match: Match) -> MatchView:
    data = MatchRead.model_validate(match).model_dump()
    return MatchView(**data, stage=stage_for_match(match))

@router.get("/", response_model=List[MatchView], summary="List brand matches")
async def list_matches(
    offer_id: Optional[int] = Query(None),
    include_closed: bool = Query(False, description="Include REVOKED and CANCELED matches"),
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> List[MatchView]:
    matches = match_lifecycle.list_brand_matches(db, brand, offer_id, include_closed)
    return [to_match_view(m) for m in matches]

@router.get("/pipeline", response_model=List[MatchView], summary="Pipeline board")
async def pipeline(
    offer_id: Optional[int] = Query(None),
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> List[MatchView]:
    """Live matches with their derived stage, one card per match."""
    start_time = time.time()
    matches = match_lifecycle.list_brand_matches(db, brand, offer_id)
    views = [to_match_view(m) for m in matches]
    log_performance(
        operation="pipeline",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"brand_id": brand.id, "cards": len(views)}
    )
    return views

@router.post("/{match_id}/approve", response_model=MatchView, summary="Approve pending claim")
async def approve_match(
    match_id: int,
    action: Optional[MatchAction] = None,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> MatchView:
    match = retry_on_conflict(db, lambda: match_lifecycle.approve_match(
        db, brand, match_id, action.expected_status if action else None, notifier, user_id=user.id
    ))
    return to_match_view(match)

@router.post("/{match_id}/reject", response_model=MatchView, summary="Reject claim")
async def reject_match(
    match_id: int,
    rejection: MatchReject,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> MatchView:
    match = retry_on_conflict(db, lambda: match_lifecycle.reject_match(
        db, brand, match_id, rejection.reason, rejection.expected_status, notifier, user_id=user.id
    ))
    return to_match_view(match)

@router.post(
    "/{match_id}/move",
    response_model=MatchView,
    summary="Board drop",
    description="Translate a drag to a target stage into its operation; 409 NO_DIRECT_ACTION otherwise"
)
async def move_match(
    match_id: int,
    move: MatchMove,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
):
    request_id = request.headers.get("X-Request-ID", "unknown")
    match = match_lifecycle.get_match_for_brand(db, brand, match_id)
    result = resolve_board_drop(move.target, match, match.shipment, match.deliverable, move.reason)

    if isinstance(result, BoardRejection):
        logger.info(
            "Board drop rejected",
            match_id=match_id,
            target=move.target.value,
            explanation=result.explanation,
            request_id=request_id
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "success": False,
                "code": "NO_DIRECT_ACTION",
                "message": result.explanation,
                "request_id": getattr(request.state, "request_id", request_id)
            }
        )

    log_business_event(
        event_type="board_drop",
        details={"match_id": match_id, "target": move.target.value, "action": result.value},
        user_id=user.id,
        request_id=request_id
    )

    if result == BoardAction.APPROVE_MATCH:
        retry_on_conflict(db, lambda: match_lifecycle.approve_match(
            db, brand, match_id, None, notifier, user_id=user.id
        ))
    elif result == BoardAction.MARK_SHIPPED:
        shipment_id = match.shipment.id
        retry_on_conflict(db, lambda: fulfillment.update_manual_shipment(
            db, brand, shipment_id, ManualShipmentStatus.SHIPPED, notifier=notifier, user_id=user.id
        ))
    elif result == BoardAction.VERIFY_DELIVERABLE:
        deliverable_id = match.deliverable.id
        retry_on_conflict(db, lambda: deliverable_review.verify_deliverable(
            db, brand, deliverable_id, notifier=notifier, user_id=user.id
        ))
    elif result == BoardAction.REQUEST_CHANGES:
        deliverable_id = match.deliverable.id
        retry_on_conflict(db, lambda: deliverable_review.request_changes(
            db, brand, deliverable_id, move.reason or "", notifier=notifier, user_id=user.id
        ))

    db.expire_all()
    return to_match_view(match_lifecycle.get_match_for_brand(db, brand, match_id))
