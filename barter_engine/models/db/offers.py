from __future__ import annotations
"""SQLAlchemy models for brand offers (campaigns), wizard drafts and creator passes."""
from datetime import datetime
from typing import TYPE_CHECKING, Any
from sqlalchemy import (
    Integer, String, DateTime, Boolean, Enum, ForeignKey, JSON, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .brands import Brand
    from .matches import Match
from sqlalchemy.sql import func
from barter_engine.database import Base
from .enums import OfferStatus, OfferTemplate, UsageRightsScope, FulfillmentType

class Offer(Base):
    __tablename__ = "offers"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    brand_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(160), default="")
    status: Mapped[OfferStatus] = mapped_column(Enum(OfferStatus), default=OfferStatus.DRAFT, index=True)
    template: Mapped[OfferTemplate] = mapped_column(Enum(OfferTemplate), default=OfferTemplate.REEL)
    countries_allowed: Mapped[list[str]] = mapped_column(JSON, default=list)
    max_claims: Mapped[int] = mapped_column(Integer, default=1)
    # Slots held by PENDING_APPROVAL + ACCEPTED matches; only moved by conditional UPDATEs
    active_claim_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deadline_days_after_delivery: Mapped[int] = mapped_column(Integer, default=14)
    acceptance_followers_threshold: Mapped[int] = mapped_column(Integer, default=0)
    above_threshold_auto_accept: Mapped[bool] = mapped_column(Boolean, default=False)
    usage_rights_required: Mapped[bool] = mapped_column(Boolean, default=False)
    usage_rights_scope: Mapped[UsageRightsScope | None] = mapped_column(Enum(UsageRightsScope), nullable=True)
    offer_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    brand: Mapped["Brand"] = relationship("Brand", back_populates="offers")
    matches: Mapped[list["Match"]] = relationship("Match", back_populates="offer")
    draft: Mapped["OfferDraft | None"] = relationship(
        "OfferDraft", back_populates="offer", uselist=False, cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("max_claims >= 1", name="offers_max_claims_positive"),
        CheckConstraint("active_claim_count >= 0", name="offers_active_claims_non_negative"),
        CheckConstraint("active_claim_count <= max_claims", name="offers_active_claims_within_cap"),
        CheckConstraint("deadline_days_after_delivery >= 1", name="offers_deadline_positive"),
        CheckConstraint("acceptance_followers_threshold >= 0", name="offers_threshold_non_negative"),
    )

    @property
    def fulfillment_type(self) -> FulfillmentType | None:
        raw = (self.offer_metadata or {}).get("fulfillment_type")
        return FulfillmentType(raw) if raw else None

    @property
    def location_radius_km(self) -> float | None:
        raw = (self.offer_metadata or {}).get("location_radius_km")
        return float(raw) if raw is not None else None

    @property
    def platforms(self) -> list[str]:
        return list((self.offer_metadata or {}).get("platforms") or [])


class OfferDraft(Base):
    """Wizard resume hints for a DRAFT offer. The offer row stays authoritative."""
    __tablename__ = "offer_drafts"
    offer_id: Mapped[int] = mapped_column(Integer, ForeignKey("offers.id"), primary_key=True)
    current_step: Mapped[int] = mapped_column(Integer, default=1)
    ui_state: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    saved_version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    offer: Mapped["Offer"] = relationship("Offer", back_populates="draft")


class OfferPass(Base):
    """A creator swiped an offer away; it leaves their feed and cannot be claimed."""
    __tablename__ = "offer_passes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    offer_id: Mapped[int] = mapped_column(Integer, ForeignKey("offers.id"), nullable=False, index=True)
    creator_id: Mapped[int] = mapped_column(Integer, ForeignKey("creators.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("offer_id", "creator_id", name="uq_offer_pass_offer_creator"),
    )
