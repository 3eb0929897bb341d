"""
Pydantic schemas for matches and the brand pipeline board.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from ..db.enums import MatchStatus, Stage
from .shipments import ShipmentRead
from .deliverables import DeliverableRead

class MatchRead(BaseModel):
    id: int
    offer_id: int
    creator_id: int
    status: MatchStatus
    campaign_code: str
    rejection_reason: Optional[str]
    accepted_at: Optional[datetime]
    revoked_at: Optional[datetime]
    canceled_at: Optional[datetime]
    created_at: datetime
    shipment: Optional[ShipmentRead] = None
    deliverable: Optional[DeliverableRead] = None

    model_config = ConfigDict(from_attributes=True)

class MatchView(MatchRead):
    """Match plus its derived pipeline stage (computed on every read)."""
    stage: Stage

class MatchAction(BaseModel):
    expected_status: Optional[MatchStatus] = None

class MatchReject(BaseModel):
    reason: str = Field(max_length=500)
    expected_status: Optional[MatchStatus] = None

class MatchMove(BaseModel):
    """A drag-and-drop gesture on the pipeline board."""
    target: Stage
    reason: Optional[str] = Field(None, max_length=500)
