from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from myteacher.models.decision import DecisionType, DecisionStatus
from myteacher.schemas import UTCDateTime


class DecisionCreate(BaseModel):
    decision_type: DecisionType
    summary: str = Field(..., min_length=1)
    rationale: str = Field(..., min_length=1)
    section_key: Optional[str] = Field(None, max_length=100)
    options_considered: Optional[str] = None
    participants: Optional[str] = None
    meeting_id: Optional[str] = None
    plan_version_id: Optional[str] = None
    decided_at: Optional[UTCDateTime] = None


class DecisionVoidRequest(BaseModel):
    # Emptiness is checked by the service so it reports its own error code
    void_reason: Optional[str] = None


class DecisionResponse(BaseModel):
    id: str
    plan_instance_id: str
    plan_version_id: Optional[str] = None
    meeting_id: Optional[str] = None
    decision_type: DecisionType
    section_key: Optional[str] = None
    summary: str
    rationale: str
    options_considered: Optional[str] = None
    participants: Optional[str] = None
    decided_at: datetime
    decided_by_id: Optional[str] = None
    status: DecisionStatus
    voided_at: Optional[datetime] = None
    voided_by_id: Optional[str] = None
    void_reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
