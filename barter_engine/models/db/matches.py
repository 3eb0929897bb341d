from __future__ import annotations
"""SQLAlchemy model for matches: one creator's claim against one offer."""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .offers import Offer
    from .creators import Creator
    from .shipments import Shipment
    from .deliverables import Deliverable
from sqlalchemy.sql import func
from barter_engine.database import Base
from .enums import MatchStatus

class Match(Base):
    __tablename__ = "matches"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    offer_id: Mapped[int] = mapped_column(Integer, ForeignKey("offers.id"), nullable=False, index=True)
    creator_id: Mapped[int] = mapped_column(Integer, ForeignKey("creators.id"), nullable=False, index=True)
    status: Mapped[MatchStatus] = mapped_column(Enum(MatchStatus), nullable=False, index=True)
    campaign_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    # "{offer_id}:{creator_id}" while live or REVOKED, NULL once CANCELED
    claim_key: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    offer: Mapped["Offer"] = relationship("Offer", back_populates="matches")
    creator: Mapped["Creator"] = relationship("Creator", back_populates="matches")
    shipment: Mapped["Shipment | None"] = relationship("Shipment", back_populates="match", uselist=False)
    deliverable: Mapped["Deliverable | None"] = relationship("Deliverable", back_populates="match", uselist=False)

    @staticmethod
    def claim_key_for(offer_id: int, creator_id: int) -> str:
        return f"{offer_id}:{creator_id}"
