from .base import ResponseBase
from .users import UserCreate, UserRead, BrandProfile, CreatorProfile, BrandRead, CreatorRead, ProfileUpdate
from .metadata import OfferMetadata
from .offers import OfferCreate, OfferUpdate, OfferRead, FeedItem
from .matches import MatchRead, MatchView, MatchAction, MatchReject, MatchMove
from .shipments import ShipmentRead, ManualShipmentUpdate, ShopifyStatusUpdate
from .deliverables import (
    ReviewRead, DeliverableRead, DeliverableDetail, DeliverableSubmit, DeliverableVerify, DeliverableReason,
)
from .drafts import DraftSave, DraftPublish, DraftRead, IssueRead
from .notifications import NotificationRead

__all__ = [
    # Base
    "ResponseBase",

    # Users
    "UserCreate",
    "UserRead",
    "BrandProfile",
    "CreatorProfile",
    "BrandRead",
    "CreatorRead",
    "ProfileUpdate",

    # Offers
    "OfferMetadata",
    "OfferCreate",
    "OfferUpdate",
    "OfferRead",
    "FeedItem",

    # Matches
    "MatchRead",
    "MatchView",
    "MatchAction",
    "MatchReject",
    "MatchMove",

    # Shipments
    "ShipmentRead",
    "ManualShipmentUpdate",
    "ShopifyStatusUpdate",

    # Deliverables
    "ReviewRead",
    "DeliverableRead",
    "DeliverableDetail",
    "DeliverableSubmit",
    "DeliverableVerify",
    "DeliverableReason",

    # Drafts
    "DraftSave",
    "DraftPublish",
    "DraftRead",
    "IssueRead",

    # Notifications
    "NotificationRead",
]
