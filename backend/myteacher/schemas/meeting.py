from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

from myteacher.models.meeting import (
    ConsentStatus,
    MeetingStatus,
    MeetingTypeCode,
    ParentDeliveryMethod,
)
from myteacher.models.rule_pack import RulePlanType
from myteacher.schemas.rule_pack import MeetingTypeResponse, EvidenceTypeResponse
from myteacher.schemas import UTCDateTime


class MeetingCreate(BaseModel):
    student_id: str
    meeting_type: MeetingTypeCode
    plan_type: RulePlanType = RulePlanType.IEP
    scheduled_at: UTCDateTime
    plan_instance_id: Optional[str] = None
    continued_from_meeting_id: Optional[str] = None
    parent_delivery_method: Optional[ParentDeliveryMethod] = None
    mutual_agreement_for_continued_date: Optional[bool] = None
    notice_waiver_signed: bool = False
    parent_recording: bool = False
    staff_recording: bool = False


class MeetingUpdate(BaseModel):
    scheduled_at: Optional[UTCDateTime] = None
    parent_delivery_method: Optional[ParentDeliveryMethod] = None
    mutual_agreement_for_continued_date: Optional[bool] = None
    notice_waiver_signed: Optional[bool] = None
    parent_recording: Optional[bool] = None
    staff_recording: Optional[bool] = None
    consent_status: Optional[ConsentStatus] = None
    consent_obtained_at: Optional[UTCDateTime] = None
    outcome_notes: Optional[str] = None
    action_items: Optional[List[Dict[str, Any]]] = None


class EvidenceUpsert(BaseModel):
    evidence_type_key: str = Field(..., min_length=1)
    note: Optional[str] = None
    evidence_date: Optional[UTCDateTime] = None
    delivery_method: Optional[ParentDeliveryMethod] = None
    file_storage_key: Optional[str] = None


class DocsSentRequest(BaseModel):
    delivery_method: Optional[ParentDeliveryMethod] = None
    delivered_at: Optional[UTCDateTime] = None


class MarkHeldRequest(BaseModel):
    held_at: Optional[UTCDateTime] = None


class MeetingEvidenceResponse(BaseModel):
    id: str
    evidence_type: EvidenceTypeResponse
    note: Optional[str] = None
    evidence_date: Optional[datetime] = None
    delivery_method: Optional[ParentDeliveryMethod] = None
    file_storage_key: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MeetingResponse(BaseModel):
    id: str
    student_id: str
    plan_instance_id: Optional[str] = None
    plan_type: RulePlanType
    meeting_type: MeetingTypeResponse
    scheduled_at: datetime
    held_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    status: MeetingStatus
    is_continued: bool
    continued_from_meeting_id: Optional[str] = None
    mutual_agreement_for_continued_date: Optional[bool] = None
    notice_waiver_signed: bool
    parent_recording: bool
    staff_recording: bool
    parent_delivery_method: Optional[ParentDeliveryMethod] = None
    pre_docs_delivered_at: Optional[datetime] = None
    pre_docs_delivery_method: Optional[ParentDeliveryMethod] = None
    post_docs_delivered_at: Optional[datetime] = None
    post_docs_delivery_method: Optional[ParentDeliveryMethod] = None
    consent_status: Optional[ConsentStatus] = None
    consent_obtained_at: Optional[datetime] = None
    outcome_notes: Optional[str] = None
    action_items: Optional[List[Dict[str, Any]]] = None
    created_at: datetime
    evidence: List[MeetingEvidenceResponse] = []

    class Config:
        from_attributes = True


class EnforcementResponse(BaseModel):
    can_close: bool
    can_implement: bool
    errors: List[Dict[str, Any]]
    warnings: List[Dict[str, Any]]
    required_evidence: List[Any]
    due_dates: Dict[str, Optional[str]]


class MeetingDetailResponse(MeetingResponse):
    enforcement: EnforcementResponse
