"""Central Enum definitions for core domain states and picklists.

These replace scattered string literals to ensure consistency across
DB models, schemas, and business logic.
"""
from __future__ import annotations
import enum


class UserRole(str, enum.Enum):
    BRAND = "BRAND"
    CREATOR = "CREATOR"
    ADMIN = "ADMIN"

# ------------------------------ Offer ------------------------------ #

class OfferStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"

class OfferTemplate(str, enum.Enum):
    REEL = "REEL"
    FEED = "FEED"
    REEL_PLUS_STORY = "REEL_PLUS_STORY"
    UGC_ONLY = "UGC_ONLY"

class Country(str, enum.Enum):
    US = "US"
    IN = "IN"

class Region(str, enum.Enum):
    US = "US"
    IN = "IN"
    US_IN = "US_IN"

class UsageRightsScope(str, enum.Enum):
    PAID_ADS_12MO = "PAID_ADS_12MO"
    PAID_ADS_6MO = "PAID_ADS_6MO"
    PAID_ADS_UNLIMITED = "PAID_ADS_UNLIMITED"
    ORGANIC_ONLY = "ORGANIC_ONLY"

class FulfillmentType(str, enum.Enum):
    SHOPIFY = "SHOPIFY"
    MANUAL = "MANUAL"

class ManualFulfillmentMethod(str, enum.Enum):
    PICKUP = "PICKUP"
    LOCAL_DELIVERY = "LOCAL_DELIVERY"

# --------------------------- Picklists ----------------------------- #

class CampaignCategory(str, enum.Enum):
    SKINCARE = "SKINCARE"
    MAKEUP = "MAKEUP"
    FASHION = "FASHION"
    FITNESS = "FITNESS"
    FOOD = "FOOD"
    TECH = "TECH"
    HOME = "HOME"
    WELLNESS = "WELLNESS"
    OTHER = "OTHER"

class Platform(str, enum.Enum):
    INSTAGRAM = "INSTAGRAM"
    TIKTOK = "TIKTOK"
    YOUTUBE = "YOUTUBE"
    OTHER = "OTHER"

class ContentType(str, enum.Enum):
    REEL = "REEL"
    STORY = "STORY"
    FEED_POST = "FEED_POST"
    REVIEW_VIDEO = "REVIEW_VIDEO"
    OTHER = "OTHER"

class CreatorNiche(str, enum.Enum):
    BEAUTY = "BEAUTY"
    FASHION = "FASHION"
    FITNESS = "FITNESS"
    FOOD = "FOOD"
    TRAVEL = "TRAVEL"
    LIFESTYLE = "LIFESTYLE"
    TECH = "TECH"
    HOME = "HOME"
    PARENTING = "PARENTING"
    PETS = "PETS"
    OTHER = "OTHER"

class SocialProvider(str, enum.Enum):
    INSTAGRAM = "INSTAGRAM"
    TIKTOK = "TIKTOK"
    YOUTUBE = "YOUTUBE"

class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

# ------------------------- Match / Fulfillment ------------------------- #

class MatchStatus(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACCEPTED = "ACCEPTED"
    REVOKED = "REVOKED"
    CANCELED = "CANCELED"

# Statuses that hold one of the offer's max_claims slots.
ACTIVE_MATCH_STATUSES = (MatchStatus.PENDING_APPROVAL, MatchStatus.ACCEPTED)

class ManualShipmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SHIPPED = "SHIPPED"

class ShopifyOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    DRAFT_CREATED = "DRAFT_CREATED"
    COMPLETED = "COMPLETED"
    FULFILLED = "FULFILLED"
    CANCELED = "CANCELED"
    ERROR = "ERROR"

# ---------------------------- Deliverable ---------------------------- #

class DeliverableStatus(str, enum.Enum):
    DUE = "DUE"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"
    REPOST_REQUIRED = "REPOST_REQUIRED"

class DeliverableType(str, enum.Enum):
    REELS = "REELS"
    FEED = "FEED"
    UGC_ONLY = "UGC_ONLY"

class ReviewAction(str, enum.Enum):
    REQUEST_CHANGES = "REQUEST_CHANGES"
    FAILED = "FAILED"
    VERIFIED = "VERIFIED"

class NotificationKind(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"

# --------------------------- Derived stage --------------------------- #

class Stage(str, enum.Enum):
    APPLIED = "applied"
    APPROVED = "approved"
    SHIPPED = "shipped"
    POSTED = "posted"
    REPOST_REQUIRED = "repost_required"
    COMPLETE = "complete"

__all__ = [
    "UserRole",
    "OfferStatus",
    "OfferTemplate",
    "Country",
    "Region",
    "UsageRightsScope",
    "FulfillmentType",
    "ManualFulfillmentMethod",
    "CampaignCategory",
    "Platform",
    "ContentType",
    "CreatorNiche",
    "SocialProvider",
    "SubscriptionStatus",
    "MatchStatus",
    "ACTIVE_MATCH_STATUSES",
    "ManualShipmentStatus",
    "ShopifyOrderStatus",
    "DeliverableStatus",
    "DeliverableType",
    "ReviewAction",
    "NotificationKind",
    "Stage",
]
