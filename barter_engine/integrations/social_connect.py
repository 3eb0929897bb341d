"""Database-backed social-connect adapter.

Connection state is written by the OAuth callback service into
``social_accounts``; this adapter only reads it.
"""
from typing import Dict
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from barter_engine.config import SOCIAL_CONNECT_SETTINGS
from barter_engine.models.db import SocialAccount
from barter_engine.models.db.enums import SocialProvider, UserRole
from barter_engine.utils.time import ensure_aware, utc_now
from .base import SocialConnectService, SocialConnection


class DatabaseSocialConnect(SocialConnectService):
    def __init__(self, session: Session):
        self.session = session

    def status(self, creator_id: int) -> Dict[SocialProvider, SocialConnection]:
        now = utc_now()
        result = {provider: SocialConnection(connected=False) for provider in SocialProvider}
        accounts = self.session.query(SocialAccount).filter(SocialAccount.creator_id == creator_id).all()
        for account in accounts:
            expires_at = ensure_aware(account.expires_at)
            result[account.provider] = SocialConnection(
                connected=True,
                expired=expires_at is not None and expires_at <= now,
            )
        return result

    def connect_url(self, provider: SocialProvider, role: UserRole, return_path: str) -> str:
        base = SOCIAL_CONNECT_SETTINGS["base_url"].rstrip("/")
        query = urlencode({"role": role.value, "returnTo": return_path})
        return f"{base}/{provider.value.lower()}/connect?{query}"
