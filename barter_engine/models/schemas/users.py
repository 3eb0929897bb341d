"""
Pydantic schemas for users and their brand/creator profiles.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, model_validator
from ..db.enums import Country, UserRole

class BrandProfile(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)

class CreatorProfile(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    followers_count: int = Field(0, ge=0)
    country: Optional[Country] = None
    address1: Optional[str] = Field(None, max_length=200)
    address2: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=120)
    province: Optional[str] = Field(None, max_length=120)
    zip: Optional[str] = Field(None, max_length=20)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)

class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    role: UserRole
    brand: Optional[BrandProfile] = None
    creator: Optional[CreatorProfile] = None

    @model_validator(mode="after")
    def validate_profile(self):
        if self.role == UserRole.BRAND and self.brand is None:
            raise ValueError('brand profile is required for BRAND role users')
        if self.role == UserRole.CREATOR and self.creator is None:
            raise ValueError('creator profile is required for CREATOR role users')
        if self.brand is not None and self.creator is not None:
            raise ValueError('a user can hold only one profile')
        return self

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Glow Labs",
            "email": "team@glowlabs.com",
            "role": "BRAND",
            "brand": {"name": "Glow Labs", "lat": 40.7128, "lng": -74.006}
        }
    })

class BrandRead(BaseModel):
    id: int
    name: str
    lat: Optional[float]
    lng: Optional[float]

    model_config = ConfigDict(from_attributes=True)

class CreatorRead(BaseModel):
    id: int
    full_name: Optional[str]
    followers_count: int
    country: Optional[str]
    address1: Optional[str]
    address2: Optional[str]
    city: Optional[str]
    province: Optional[str]
    zip: Optional[str]
    lat: Optional[float]
    lng: Optional[float]

    model_config = ConfigDict(from_attributes=True)

class UserRead(BaseModel):
    id: int
    name: str
    email: str
    api_key: Optional[str]
    is_active: bool
    role: UserRole
    brand: Optional[BrandRead] = None
    creator: Optional[CreatorRead] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class ProfileUpdate(BaseModel):
    """Partial update of the caller's own profile; only supplied keys change."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    full_name: Optional[str] = Field(None, max_length=200)
    followers_count: Optional[int] = Field(None, ge=0)
    country: Optional[Country] = None
    address1: Optional[str] = Field(None, max_length=200)
    address2: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=120)
    province: Optional[str] = Field(None, max_length=120)
    zip: Optional[str] = Field(None, max_length=20)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)

    @model_validator(mode="after")
    def validate_pair(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError('lat and lng must be supplied together')
        return self
