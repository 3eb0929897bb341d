"""
Offer management endpoints: brand CRUD, wizard drafts, and creator claim/pass.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import time
from barter_engine.api.deps import (
    get_db, get_current_brand, get_current_creator, require_brand_user, require_creator_user,
    get_billing, get_notifier, get_social_connect, get_pagination_params,
)
from barter_engine.errors import LifecycleError
from barter_engine.integrations import BillingService, NotificationSink, SocialConnectService
from barter_engine.models.db import Brand, Creator, User
from barter_engine.models.db.enums import OfferStatus
from barter_engine.models.schemas.base import ResponseBase
from barter_engine.models.schemas.drafts import DraftPublish, DraftRead, DraftSave, IssueRead
from barter_engine.models.schemas.matches import MatchView
from barter_engine.models.schemas.offers import OfferCreate, OfferRead, OfferUpdate
from barter_engine.services import draft_store, match_lifecycle, offer_lifecycle
from barter_engine.services.transitions import retry_on_conflict
from barter_engine.utils import get_logger, log_performance
from .matches import to_match_view

router = APIRouter()
logger = get_logger(__name__)

def _draft_read(view: draft_store.DraftView) -> DraftRead:
    return DraftRead(
        offer=OfferRead.model_validate(view.offer),
        current_step=view.current_step,
        ui_state=view.ui_state,
        version=view.version,
        ready_to_publish=not view.outstanding,
        outstanding=[IssueRead(**issue.to_dict()) for issue in view.outstanding],
    )

@router.post(
    "/",
    response_model=OfferRead,
    summary="Create offer",
    description="Create a DRAFT offer, or publish immediately with status=PUBLISHED"
)
async def create_offer(
    offer_data: OfferCreate,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    billing: BillingService = Depends(get_billing),
    db: Session = Depends(get_db)
) -> OfferRead:
    """Create a new offer."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Offer creation started",
        brand_id=brand.id,
        target_status=offer_data.status.value,
        request_id=request_id
    )

    try:
        offer = offer_lifecycle.create_offer(
            db, brand, offer_data.fields(), offer_data.status, billing=billing, user_id=user.id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="create_offer",
            duration_ms=duration_ms,
            additional_data={"offer_id": offer.id, "status": offer.status.value}
        )
        logger.info(
            "Offer created successfully",
            offer_id=offer.id,
            status=offer.status.value,
            duration_ms=duration_ms,
            request_id=request_id
        )
        return OfferRead.model_validate(offer)

    except (HTTPException, LifecycleError):
        raise
    except Exception as e:
        logger.error(
            "Offer creation failed with unexpected error",
            brand_id=brand.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during offer creation"
        )

@router.get("/", response_model=List[OfferRead], summary="List brand offers")
async def list_offers(
    status_filter: Optional[OfferStatus] = Query(None, alias="status"),
    pagination: dict = Depends(get_pagination_params),
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> List[OfferRead]:
    offers = offer_lifecycle.list_brand_offers(db, brand, status_filter, **pagination)
    return [OfferRead.model_validate(o) for o in offers]

# --------------------------- Wizard drafts ---------------------------- #

@router.get("/drafts", response_model=List[DraftRead], summary="List resumable drafts")
async def list_drafts(
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> List[DraftRead]:
    return [_draft_read(view) for view in draft_store.list_drafts(db, brand)]

@router.get("/{offer_id}/draft", response_model=DraftRead, summary="Load draft for the wizard")
async def load_draft(
    offer_id: int,
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> DraftRead:
    return _draft_read(draft_store.load_draft(db, brand, offer_id))

@router.put(
    "/{offer_id}/draft",
    response_model=DraftRead,
    summary="Autosave draft",
    description="Save wizard progress; expected_version must match the last loaded version"
)
async def save_draft(
    offer_id: int,
    draft_data: DraftSave,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> DraftRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    view = draft_store.save_draft(
        db, brand, offer_id,
        changes=draft_data.changes(),
        expected_version=draft_data.expected_version,
        current_step=draft_data.current_step,
        ui_state=draft_data.ui_state,
        user_id=user.id,
    )
    logger.info(
        "Draft saved",
        offer_id=offer_id,
        version=view.version,
        outstanding=len(view.outstanding),
        request_id=request_id
    )
    return _draft_read(view)

@router.post("/{offer_id}/draft/publish", response_model=OfferRead, summary="Publish draft")
async def publish_draft(
    offer_id: int,
    publish_data: DraftPublish,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    billing: BillingService = Depends(get_billing),
    db: Session = Depends(get_db)
) -> OfferRead:
    start_time = time.time()
    offer = draft_store.publish_draft(
        db, brand, offer_id,
        expected_version=publish_data.expected_version,
        billing=billing,
        user_id=user.id,
    )
    log_performance(
        operation="publish_draft",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"offer_id": offer.id}
    )
    return OfferRead.model_validate(offer)

# ----------------------------- Single offer ---------------------------- #

@router.get("/{offer_id}", response_model=OfferRead, summary="Get offer")
async def get_offer(
    offer_id: int,
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> OfferRead:
    return OfferRead.model_validate(offer_lifecycle.get_brand_offer(db, brand, offer_id))

@router.patch(
    "/{offer_id}",
    response_model=OfferRead,
    summary="Update offer",
    description="Edit fields and/or move status (publish, archive, resume)"
)
async def update_offer(
    offer_id: int,
    offer_data: OfferUpdate,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    billing: BillingService = Depends(get_billing),
    db: Session = Depends(get_db)
) -> OfferRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")
    changes = offer_data.changes()

    logger.info(
        "Offer update started",
        offer_id=offer_id,
        fields=sorted(changes),
        target_status=offer_data.status.value if offer_data.status else None,
        request_id=request_id
    )

    offer = offer_lifecycle.update_offer(
        db, brand, offer_id, changes,
        target_status=offer_data.status,
        expected_version=offer_data.expected_version,
        billing=billing,
        user_id=user.id,
    )
    log_performance(
        operation="update_offer",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"offer_id": offer.id, "status": offer.status.value}
    )
    return OfferRead.model_validate(offer)

@router.delete("/{offer_id}", response_model=ResponseBase, summary="Delete draft offer")
async def delete_offer(
    offer_id: int,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> ResponseBase:
    offer_lifecycle.delete_offer(db, brand, offer_id, user_id=user.id)
    return ResponseBase(message=f"Offer {offer_id} deleted", data={"offer_id": offer_id})

@router.post("/{offer_id}/duplicate", response_model=OfferRead, summary="Duplicate offer as a new draft")
async def duplicate_offer(
    offer_id: int,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    db: Session = Depends(get_db)
) -> OfferRead:
    return OfferRead.model_validate(offer_lifecycle.duplicate_offer(db, brand, offer_id, user_id=user.id))

# ------------------------------ Creator side ----------------------------- #

@router.post(
    "/{offer_id}/claim",
    response_model=MatchView,
    summary="Claim offer",
    description="Evaluate eligibility and claim a seat; 409 carries the denial reason and next step"
)
async def claim_offer(
    offer_id: int,
    request: Request,
    user: User = Depends(require_creator_user),
    creator: Creator = Depends(get_current_creator),
    social: SocialConnectService = Depends(get_social_connect),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> MatchView:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Claim started",
        offer_id=offer_id,
        creator_id=creator.id,
        request_id=request_id
    )

    match = retry_on_conflict(
        db, lambda: match_lifecycle.claim_offer(db, creator, offer_id, social, notifier)
    )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="claim_offer",
        duration_ms=duration_ms,
        additional_data={"offer_id": offer_id, "match_id": match.id, "status": match.status.value}
    )
    logger.info(
        "Claim completed",
        match_id=match.id,
        status=match.status.value,
        duration_ms=duration_ms,
        request_id=request_id
    )
    return to_match_view(match)

@router.post("/{offer_id}/pass", response_model=ResponseBase, summary="Pass on offer")
async def pass_offer(
    offer_id: int,
    creator: Creator = Depends(get_current_creator),
    db: Session = Depends(get_db)
) -> ResponseBase:
    record = match_lifecycle.pass_offer(db, creator, offer_id)
    return ResponseBase(message="Offer passed", data={"offer_id": record.offer_id})
