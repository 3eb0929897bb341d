"""
Pydantic schemas for the notification outbox.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from ..db.enums import NotificationKind

class NotificationRead(BaseModel):
    id: int
    kind: NotificationKind
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
