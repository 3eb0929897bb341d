"""
Pydantic schema for the structured offer metadata bag.

Field-level shape only (types, enums, lengths, ranges). Cross-field rules such
as OTHER companions, region agreement and country platform allow-lists live in
``services.metadata_validator`` because they need the offer context.
"""
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator
from barter_engine.config import METADATA_LIMITS
from ..db.enums import (
    CampaignCategory, Platform, ContentType, CreatorNiche, Region,
    FulfillmentType, ManualFulfillmentMethod,
)

_OTHER_MIN = int(METADATA_LIMITS["other_text_min"])
_OTHER_MAX = int(METADATA_LIMITS["other_text_max"])


class OfferMetadata(BaseModel):
    product_value: Optional[float] = Field(None, ge=0, le=METADATA_LIMITS["product_value_max"])
    category: Optional[CampaignCategory] = None
    category_other: Optional[str] = Field(None, min_length=_OTHER_MIN, max_length=_OTHER_MAX)
    description: Optional[str] = Field(None, max_length=int(METADATA_LIMITS["description_max"]))
    platforms: Optional[List[Platform]] = Field(None, max_length=int(METADATA_LIMITS["platforms_max"]))
    platform_other: Optional[str] = Field(None, min_length=_OTHER_MIN, max_length=_OTHER_MAX)
    content_types: Optional[List[ContentType]] = Field(None, max_length=int(METADATA_LIMITS["content_types_max"]))
    content_type_other: Optional[str] = Field(None, min_length=_OTHER_MIN, max_length=_OTHER_MAX)
    niches: Optional[List[CreatorNiche]] = Field(None, max_length=int(METADATA_LIMITS["niches_max"]))
    niche_other: Optional[str] = Field(None, min_length=_OTHER_MIN, max_length=_OTHER_MAX)
    hashtags: Optional[str] = Field(None, max_length=int(METADATA_LIMITS["hashtags_max"]))
    guidelines: Optional[str] = Field(None, max_length=int(METADATA_LIMITS["guidelines_max"]))
    region: Optional[Region] = None
    campaign_name: Optional[str] = Field(None, max_length=int(METADATA_LIMITS["campaign_name_max"]))
    fulfillment_type: Optional[FulfillmentType] = None
    manual_fulfillment_method: Optional[ManualFulfillmentMethod] = None
    manual_fulfillment_notes: Optional[str] = Field(None, max_length=int(METADATA_LIMITS["manual_notes_max"]))
    location_radius_km: Optional[float] = Field(
        None, ge=METADATA_LIMITS["radius_km_min"], le=METADATA_LIMITS["radius_km_max"]
    )
    cta_url: Optional[str] = Field(None, max_length=int(METADATA_LIMITS["cta_url_max"]))
    preset_id: Optional[str] = Field(None, max_length=int(METADATA_LIMITS["preset_id_max"]))

    # Unknown keys (UI presets, future fields) are kept verbatim
    model_config = ConfigDict(
        extra="allow",
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "product_value": 45,
                "category": "SKINCARE",
                "platforms": ["INSTAGRAM", "TIKTOK"],
                "content_types": ["REEL"],
                "hashtags": "#glow #spf",
                "region": "US",
                "fulfillment_type": "MANUAL",
                "manual_fulfillment_method": "LOCAL_DELIVERY",
                "location_radius_km": 40,
            }
        },
    )

    @field_validator(
        "category_other", "platform_other", "content_type_other", "niche_other",
        "description", "hashtags", "guidelines", "campaign_name",
        "manual_fulfillment_notes", "cta_url", "preset_id", "category", "region",
        "fulfillment_type", "manual_fulfillment_method",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("cta_url")
    @classmethod
    def validate_cta_url(cls, v):
        if v is None:
            return v
        if not (v.startswith("http://") or v.startswith("https://")) or "." not in v.split("//", 1)[1]:
            raise ValueError("cta_url must be an http(s) URL")
        return v

    @field_validator("platforms", "content_types", "niches")
    @classmethod
    def dedupe_selection(cls, v):
        if v is None:
            return v
        seen = []
        for item in v:
            if item not in seen:
                seen.append(item)
        return seen
