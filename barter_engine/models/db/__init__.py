from .users import User
from .brands import Brand, Subscription
from .creators import Creator, SocialAccount, Strike
from .offers import Offer, OfferDraft, OfferPass
from .matches import Match
from .shipments import Shipment
from .deliverables import Deliverable, DeliverableReview
from .notifications import Notification

__all__ = [
    "User",
    "Brand",
    "Subscription",
    "Creator",
    "SocialAccount",
    "Strike",
    "Offer",
    "OfferDraft",
    "OfferPass",
    "Match",
    "Shipment",
    "Deliverable",
    "DeliverableReview",
    "Notification",
]
