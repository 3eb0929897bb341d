"""
Pydantic schemas for shipments.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from ..db.enums import FulfillmentType, ManualShipmentStatus, ShopifyOrderStatus

class ShipmentRead(BaseModel):
    id: int
    match_id: int
    fulfillment_type: FulfillmentType
    status: str
    carrier: Optional[str]
    tracking_number: Optional[str]
    tracking_url: Optional[str]
    shipped_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

class ManualShipmentUpdate(BaseModel):
    status: Optional[ManualShipmentStatus] = None
    carrier: Optional[str] = Field(None, max_length=64)
    tracking_number: Optional[str] = Field(None, max_length=64)
    tracking_url: Optional[str] = Field(None, max_length=500)
    expected_status: Optional[ManualShipmentStatus] = None

    model_config = ConfigDict(str_strip_whitespace=True, json_schema_extra={
        "example": {
            "status": "SHIPPED",
            "carrier": "UPS",
            "tracking_number": "1Z999AA10123456784",
            "tracking_url": "https://www.ups.com/track?tracknum=1Z999AA10123456784"
        }
    })

class ShopifyStatusUpdate(BaseModel):
    status: ShopifyOrderStatus
    tracking_number: Optional[str] = Field(None, max_length=64)
    tracking_url: Optional[str] = Field(None, max_length=500)
