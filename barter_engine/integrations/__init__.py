"""
Integrations package initialization.
Exports collaborator interfaces and their default adapters.
"""
from .base import SocialConnection, SocialConnectService, BillingService, NotificationSink
from .social_connect import DatabaseSocialConnect
from .billing import DatabaseBilling
from .notifications import OutboxNotificationSink

__all__ = [
    "SocialConnection",
    "SocialConnectService",
    "BillingService",
    "NotificationSink",
    "DatabaseSocialConnect",
    "DatabaseBilling",
    "OutboxNotificationSink",
]
