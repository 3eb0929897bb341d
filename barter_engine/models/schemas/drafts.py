"""
Pydantic schemas for the offer creation wizard.
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from .offers import OfferRead, OfferUpdate

class DraftSave(OfferUpdate):
    """Wizard autosave: offer field changes plus resume hints."""
    expected_version: int = Field(ge=1)
    current_step: Optional[int] = Field(None, ge=1, le=20)
    ui_state: Optional[Dict[str, Any]] = None

    def changes(self) -> Dict[str, Any]:
        data = super().changes()
        data.pop("current_step", None)
        data.pop("ui_state", None)
        return data

class DraftPublish(BaseModel):
    expected_version: Optional[int] = Field(None, ge=1)

class IssueRead(BaseModel):
    field: str
    code: str
    message: str

class DraftRead(BaseModel):
    offer: OfferRead
    current_step: int
    ui_state: Dict[str, Any]
    version: int
    ready_to_publish: bool
    outstanding: List[IssueRead]
