from __future__ import annotations
"""SQLAlchemy models for deliverables and their append-only review log."""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .matches import Match
from sqlalchemy.sql import func
from barter_engine.database import Base
from .enums import DeliverableStatus, DeliverableType, ReviewAction, UsageRightsScope

class Deliverable(Base):
    __tablename__ = "deliverables"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    match_id: Mapped[int] = mapped_column(Integer, ForeignKey("matches.id"), unique=True, nullable=False)
    status: Mapped[DeliverableStatus] = mapped_column(Enum(DeliverableStatus), default=DeliverableStatus.DUE, index=True)
    expected_type: Mapped[DeliverableType] = mapped_column(Enum(DeliverableType), nullable=False)
    due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    submitted_permalink: Mapped[str | None] = mapped_column(String(500), nullable=True)
    submitted_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    usage_rights_granted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    usage_rights_scope: Mapped[UsageRightsScope | None] = mapped_column(Enum(UsageRightsScope), nullable=True)

    verified_permalink: Mapped[str | None] = mapped_column(String(500), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    match: Mapped["Match"] = relationship("Match", back_populates="deliverable")
    reviews: Mapped[list["DeliverableReview"]] = relationship(
        "DeliverableReview", back_populates="deliverable", order_by="DeliverableReview.id"
    )


class DeliverableReview(Base):
    """Immutable record of one brand review action."""
    __tablename__ = "deliverable_reviews"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    deliverable_id: Mapped[int] = mapped_column(Integer, ForeignKey("deliverables.id"), nullable=False, index=True)
    action: Mapped[ReviewAction] = mapped_column(Enum(ReviewAction), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    submitted_permalink: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reviewer_user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    deliverable: Mapped["Deliverable"] = relationship("Deliverable", back_populates="reviews")
