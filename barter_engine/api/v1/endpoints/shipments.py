"""
Shipment endpoints: brand-driven manual shipping and storefront order status sync.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
import time
from barter_engine.api.deps import get_db, get_current_brand, require_brand_user, get_notifier
from barter_engine.integrations import NotificationSink
from barter_engine.models.db import Brand, User
from barter_engine.models.schemas.shipments import ManualShipmentUpdate, ShipmentRead, ShopifyStatusUpdate
from barter_engine.services import fulfillment
from barter_engine.services.transitions import retry_on_conflict
from barter_engine.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

@router.patch(
    "/manual/{shipment_id}",
    response_model=ShipmentRead,
    summary="Update manual shipment",
    description="Set tracking and/or mark SHIPPED. Marking shipped re-anchors the deliverable due date"
)
async def update_manual_shipment(
    shipment_id: int,
    update: ManualShipmentUpdate,
    request: Request,
    user: User = Depends(require_brand_user),
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> ShipmentRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Manual shipment update started",
        shipment_id=shipment_id,
        status=update.status.value if update.status else None,
        request_id=request_id
    )

    shipment = retry_on_conflict(db, lambda: fulfillment.update_manual_shipment(
        db, brand, shipment_id,
        status=update.status,
        carrier=update.carrier,
        tracking_number=update.tracking_number,
        tracking_url=update.tracking_url,
        expected_status=update.expected_status,
        notifier=notifier,
        user_id=user.id,
    ))
    log_performance(
        operation="update_manual_shipment",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"shipment_id": shipment.id, "status": shipment.status}
    )
    return ShipmentRead.model_validate(shipment)

@router.post(
    "/shopify/{shipment_id}/status",
    response_model=ShipmentRead,
    summary="Mirror storefront order status"
)
async def apply_shopify_status(
    shipment_id: int,
    update: ShopifyStatusUpdate,
    request: Request,
    brand: Brand = Depends(get_current_brand),
    notifier: NotificationSink = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> ShipmentRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    shipment = retry_on_conflict(db, lambda: fulfillment.apply_shopify_status(
        db, shipment_id, update.status,
        tracking_number=update.tracking_number,
        tracking_url=update.tracking_url,
        brand=brand,
        notifier=notifier,
    ))
    logger.info(
        "Storefront order status applied",
        shipment_id=shipment.id,
        status=shipment.status,
        request_id=request_id
    )
    return ShipmentRead.model_validate(shipment)
