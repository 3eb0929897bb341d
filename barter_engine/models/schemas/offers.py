"""
Pydantic schemas for brand offers and the creator feed.

Request schemas only check shape and numeric ranges. Publish-readiness
(title length, countries, metadata cross-field rules) is decided by
``services.metadata_validator`` because it depends on the target status.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, ConfigDict
from barter_engine.config import OFFER_LIMITS
from ..db.enums import OfferStatus, OfferTemplate, Country, UsageRightsScope

# Columns that cannot be set to NULL; an explicit null in a PATCH is ignored
_NON_NULLABLE = {
    "title", "template", "countries_allowed", "max_claims", "deadline_days_after_delivery",
    "acceptance_followers_threshold", "above_threshold_auto_accept", "usage_rights_required",
}

class OfferCreate(BaseModel):
    title: str = Field("", max_length=OFFER_LIMITS["title_max"])
    template: OfferTemplate = OfferTemplate.REEL
    countries_allowed: List[Country] = Field(default_factory=list)
    max_claims: int = Field(1, ge=1, le=OFFER_LIMITS["max_claims_max"])
    deadline_days_after_delivery: int = Field(14, ge=1, le=OFFER_LIMITS["deadline_days_max"])
    acceptance_followers_threshold: int = Field(0, ge=0, le=OFFER_LIMITS["followers_threshold_max"])
    above_threshold_auto_accept: bool = False
    usage_rights_required: bool = False
    usage_rights_scope: Optional[UsageRightsScope] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    status: OfferStatus = Field(OfferStatus.DRAFT, description="DRAFT to save, PUBLISHED to go live")

    def fields(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"status"})

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "title": "Summer SPF glow kit",
            "template": "REEL",
            "countries_allowed": ["US"],
            "max_claims": 25,
            "deadline_days_after_delivery": 14,
            "acceptance_followers_threshold": 5000,
            "above_threshold_auto_accept": True,
            "metadata": {
                "category": "SKINCARE",
                "platforms": ["INSTAGRAM"],
                "fulfillment_type": "MANUAL",
                "manual_fulfillment_method": "LOCAL_DELIVERY",
            },
            "status": "PUBLISHED"
        }
    })

class OfferUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=OFFER_LIMITS["title_max"])
    template: Optional[OfferTemplate] = None
    countries_allowed: Optional[List[Country]] = None
    max_claims: Optional[int] = Field(None, ge=1, le=OFFER_LIMITS["max_claims_max"])
    deadline_days_after_delivery: Optional[int] = Field(None, ge=1, le=OFFER_LIMITS["deadline_days_max"])
    acceptance_followers_threshold: Optional[int] = Field(None, ge=0, le=OFFER_LIMITS["followers_threshold_max"])
    above_threshold_auto_accept: Optional[bool] = None
    usage_rights_required: Optional[bool] = None
    usage_rights_scope: Optional[UsageRightsScope] = None
    metadata: Optional[Dict[str, Any]] = Field(None, description="Replaces the whole metadata bag")
    status: Optional[OfferStatus] = None
    expected_version: Optional[int] = Field(None, ge=1)

    def changes(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", exclude_unset=True, exclude={"status", "expected_version"})
        if "metadata" in data and data["metadata"] is None:
            data["metadata"] = {}
        return {k: v for k, v in data.items() if not (k in _NON_NULLABLE and v is None)}

class OfferRead(BaseModel):
    id: int
    brand_id: int
    title: str
    status: OfferStatus
    template: OfferTemplate
    countries_allowed: List[str]
    max_claims: int
    active_claim_count: int
    deadline_days_after_delivery: int
    acceptance_followers_threshold: int
    above_threshold_auto_accept: bool
    usage_rights_required: bool
    usage_rights_scope: Optional[UsageRightsScope]
    metadata: Dict[str, Any] = Field(validation_alias="offer_metadata")
    published_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    version: int

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

class FeedItem(BaseModel):
    """An offer as shown in the creator feed, with the creator's claim readiness."""
    offer: OfferRead
    brand_name: str
    claimable: bool
    reason: Optional[str] = None
    next_step: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
