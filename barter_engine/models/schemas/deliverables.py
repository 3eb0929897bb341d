"""
Pydantic schemas for deliverables and brand reviews.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from ..db.enums import DeliverableStatus, DeliverableType, ReviewAction, UsageRightsScope

class ReviewRead(BaseModel):
    id: int
    action: ReviewAction
    reason: Optional[str]
    submitted_permalink: Optional[str]
    reviewer_user_id: Optional[int]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class DeliverableRead(BaseModel):
    id: int
    match_id: int
    status: DeliverableStatus
    expected_type: DeliverableType
    due_at: datetime
    submitted_permalink: Optional[str]
    submitted_notes: Optional[str]
    submitted_at: Optional[datetime]
    usage_rights_granted_at: Optional[datetime]
    usage_rights_scope: Optional[UsageRightsScope]
    verified_permalink: Optional[str]
    verified_at: Optional[datetime]
    failure_reason: Optional[str]
    review_count: int
    reminder_sent_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class DeliverableDetail(DeliverableRead):
    reviews: List[ReviewRead] = Field(default_factory=list)

class DeliverableSubmit(BaseModel):
    permalink: str = Field(min_length=1, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)
    grant_usage_rights: bool = False

    model_config = ConfigDict(str_strip_whitespace=True, json_schema_extra={
        "example": {
            "permalink": "https://www.instagram.com/reel/Cx12345/",
            "notes": "Posted with the agreed hashtags",
            "grant_usage_rights": True
        }
    })

class DeliverableVerify(BaseModel):
    permalink: Optional[str] = Field(None, max_length=500)
    expected_status: Optional[DeliverableStatus] = None

class DeliverableReason(BaseModel):
    reason: str = Field(max_length=500)
    expected_status: Optional[DeliverableStatus] = None
