from __future__ import annotations
"""SQLAlchemy models for creators, their social accounts and strikes."""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Float, Enum, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .users import User
    from .matches import Match
from sqlalchemy.sql import func
from barter_engine.database import Base
from .enums import SocialProvider

class Creator(Base):
    __tablename__ = "creators"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    followers_count: Mapped[int] = mapped_column(Integer, default=0)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)

    address1: Mapped[str | None] = mapped_column(String(200), nullable=True)
    address2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    province: Mapped[str | None] = mapped_column(String(120), nullable=True)
    zip: Mapped[str | None] = mapped_column(String(20), nullable=True)

    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User | None"] = relationship("User", back_populates="creator", uselist=False)
    social_accounts: Mapped[list["SocialAccount"]] = relationship("SocialAccount", back_populates="creator")
    strikes: Mapped[list["Strike"]] = relationship("Strike", back_populates="creator")
    matches: Mapped[list["Match"]] = relationship("Match", back_populates="creator")

    __table_args__ = (
        CheckConstraint("followers_count >= 0", name="creators_followers_non_negative"),
    )

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None


class SocialAccount(Base):
    __tablename__ = "social_accounts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    creator_id: Mapped[int] = mapped_column(Integer, ForeignKey("creators.id"), nullable=False, index=True)
    provider: Mapped[SocialProvider] = mapped_column(Enum(SocialProvider), nullable=False)
    connected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    # Token expiry reported by the social-connect service; NULL means no expiry
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    creator: Mapped["Creator"] = relationship("Creator", back_populates="social_accounts")

    __table_args__ = (
        UniqueConstraint("creator_id", "provider", name="uq_social_account_creator_provider"),
    )


class Strike(Base):
    __tablename__ = "strikes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    creator_id: Mapped[int] = mapped_column(Integer, ForeignKey("creators.id"), nullable=False, index=True)
    # One strike per failed match
    match_id: Mapped[int] = mapped_column(Integer, ForeignKey("matches.id"), nullable=False, unique=True)
    reason: Mapped[str] = mapped_column(String(200))
    forgiven_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    creator: Mapped["Creator"] = relationship("Creator", back_populates="strikes")
