from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AssignmentUpdate(BaseModel):
    """Request body for PUT /api/v1/leads/{lead_type}/{lead_id}/assignment."""

    assigned_user_id: str = Field(..., min_length=1)
    assigned_user_name: str = ""
    assigned_by_user_id: str = ""
    assigned_by_name: str = ""


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lead_id: str
    lead_type: str
    assigned_user_id: str
    assigned_user_name: str
    assigned_by_user_id: str
    assigned_by_name: str
    assigned_at: Optional[datetime] = None
