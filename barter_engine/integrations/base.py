"""Interfaces for the external collaborators the lifecycle engine consumes.

The engine only ever talks to these abstractions; concrete adapters (database
backed defaults in this package, or real OAuth/billing/push providers) are
wired in through ``api.deps``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict

from barter_engine.models.db.enums import NotificationKind, SocialProvider, UserRole


@dataclass(frozen=True)
class SocialConnection:
    connected: bool
    expired: bool = False

    @property
    def usable(self) -> bool:
        return self.connected and not self.expired


class SocialConnectService(ABC):
    @abstractmethod
    def status(self, creator_id: int) -> Dict[SocialProvider, SocialConnection]:
        """Report {connected, expired} per provider for one creator account."""

    @abstractmethod
    def connect_url(self, provider: SocialProvider, role: UserRole, return_path: str) -> str:
        """URL that starts the provider's OAuth flow and returns to ``return_path``."""


class BillingService(ABC):
    @abstractmethod
    def is_subscribed(self, brand_id: int) -> bool:
        """Whether the brand currently holds an active subscription."""


class NotificationSink(ABC):
    @abstractmethod
    def notify(self, user_id: int, kind: NotificationKind, text: str) -> None:
        """Deliver a toast/push event. Implementations must not raise."""
