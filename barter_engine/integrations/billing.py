"""Database-backed billing adapter (subscription rows synced by the billing provider)."""
from sqlalchemy.orm import Session

from barter_engine.models.db import Subscription
from barter_engine.models.db.enums import SubscriptionStatus
from barter_engine.utils.time import ensure_aware, utc_now
from .base import BillingService


class DatabaseBilling(BillingService):
    def __init__(self, session: Session):
        self.session = session

    def is_subscribed(self, brand_id: int) -> bool:
        subscription = self.session.query(Subscription).filter(Subscription.brand_id == brand_id).first()
        if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
            return False
        period_end = ensure_aware(subscription.current_period_end)
        return period_end is None or period_end > utc_now()
