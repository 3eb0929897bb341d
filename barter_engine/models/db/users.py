from __future__ import annotations
"""SQLAlchemy model for API users (brand staff, creators and admins)."""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Boolean, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .brands import Brand
    from .creators import Creator
from sqlalchemy.sql import func
from barter_engine.database import Base
from .enums import UserRole

class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    api_key: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), index=True)

    # Exactly one profile link per non-admin role
    brand_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("brands.id"), nullable=True, index=True)
    creator_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("creators.id"), nullable=True, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    brand: Mapped["Brand | None"] = relationship("Brand", back_populates="users")
    creator: Mapped["Creator | None"] = relationship("Creator", back_populates="user")

    __table_args__ = (
        CheckConstraint(
            "role != 'BRAND' OR brand_id IS NOT NULL",
            name="brand_users_must_have_brand_id"
        ),
        CheckConstraint(
            "role != 'CREATOR' OR creator_id IS NOT NULL",
            name="creator_users_must_have_creator_id"
        ),
        CheckConstraint(
            "brand_id IS NULL OR creator_id IS NULL",
            name="users_single_profile"
        ),
    )
