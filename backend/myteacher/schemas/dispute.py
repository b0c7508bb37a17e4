"""
Dispute Schemas - dispute cases, timeline events and attachments
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from myteacher.models.dispute import DisputeCaseStatus, DisputeCaseType, DisputeEventType
from myteacher.schemas import UTCDateTime


# ==================== Case Schemas ====================

class DisputeCaseCreate(BaseModel):
    case_type: DisputeCaseType
    summary: str = Field(..., min_length=1)
    plan_instance_id: Optional[str] = None
    filed_date: Optional[UTCDateTime] = None
    external_reference: Optional[str] = Field(None, max_length=255)
    assigned_to_id: Optional[str] = None


class DisputeCaseUpdate(BaseModel):
    case_type: Optional[DisputeCaseType] = None
    status: Optional[DisputeCaseStatus] = None
    summary: Optional[str] = Field(None, min_length=1)
    resolution_notes: Optional[str] = None
    external_reference: Optional[str] = Field(None, max_length=255)
    assigned_to_id: Optional[str] = None


class DisputeCaseResponse(BaseModel):
    id: str
    case_number: str
    student_id: str
    plan_instance_id: Optional[str] = None
    case_type: DisputeCaseType
    status: DisputeCaseStatus
    summary: str
    filed_date: datetime
    resolved_date: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    external_reference: Optional[str] = None
    assigned_to_id: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    event_count: int = 0

    class Config:
        from_attributes = True


class DisputeDashboardSummary(BaseModel):
    open: int
    in_review: int
    resolved: int
    closed: int
    active: int


class DisputeDashboardResponse(BaseModel):
    summary: DisputeDashboardSummary
    recent_cases: List[DisputeCaseResponse]


# ==================== Event Schemas ====================

class DisputeEventCreate(BaseModel):
    event_type: DisputeEventType
    summary: str = Field(..., min_length=1, max_length=500)
    details: Optional[str] = None
    event_date: Optional[UTCDateTime] = None


class DisputeEventResponse(BaseModel):
    id: str
    dispute_case_id: str
    event_type: DisputeEventType
    event_date: datetime
    summary: str
    details: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DisputeAttachmentResponse(BaseModel):
    id: str
    dispute_case_id: str
    event_id: Optional[str] = None
    file_name: str
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    description: Optional[str] = None
    uploaded_by_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DisputeCaseDetailResponse(DisputeCaseResponse):
    events: List[DisputeEventResponse] = []
    attachments: List[DisputeAttachmentResponse] = []
