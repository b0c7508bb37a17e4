"""
Plan Schemas - plan instances, field values, goals, progress, work samples
and service logs
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, Dict, Any, List
from datetime import datetime
from enum import Enum

from myteacher.models.plan import PlanTypeCode, PlanStatus
from myteacher.models.goal import GoalArea, ProgressLevel, WorkSampleRating
from myteacher.models.service_log import ServiceType, ServiceSetting
from myteacher.schemas import UTCDateTime


class ProgressSchedule(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


# ==================== Plan Schemas ====================

class PlanTypeResponse(BaseModel):
    id: str
    code: PlanTypeCode
    name: str

    class Config:
        from_attributes = True


class PlanSchemaResponse(BaseModel):
    id: str
    name: str
    version: int
    fields: Dict[str, Any]

    class Config:
        from_attributes = True


class PlanResponse(BaseModel):
    id: str
    student_id: str
    plan_type: PlanTypeResponse
    schema_id: str
    start_date: datetime
    end_date: Optional[datetime] = None
    status: PlanStatus
    created_at: datetime

    class Config:
        from_attributes = True


class PlanFieldsUpdate(BaseModel):
    fields: Dict[str, Any] = Field(..., description="Field key to JSON value")


class PlanFinalizeResponse(BaseModel):
    id: str
    status: PlanStatus


# ==================== Goal Schemas ====================

class GoalCreate(BaseModel):
    goal_code: str = Field(..., min_length=1, max_length=20)
    area: GoalArea
    annual_goal_text: str = Field(..., min_length=10)
    baseline_json: Optional[Dict[str, Any]] = None
    short_term_objectives: Optional[List[str]] = None
    progress_schedule: Optional[ProgressSchedule] = None
    target_date: Optional[UTCDateTime] = None


class GoalUpdate(BaseModel):
    area: Optional[GoalArea] = None
    annual_goal_text: Optional[str] = Field(None, min_length=10)
    baseline_json: Optional[Dict[str, Any]] = None
    short_term_objectives: Optional[List[str]] = None
    progress_schedule: Optional[ProgressSchedule] = None
    target_date: Optional[UTCDateTime] = None
    is_active: Optional[bool] = None


class ProgressResponse(BaseModel):
    id: str
    goal_id: str
    date: datetime
    quick_select: ProgressLevel
    measure_json: Optional[Dict[str, Any]] = None
    comment: Optional[str] = None
    is_dictated: bool
    recorded_by_id: Optional[str] = None

    class Config:
        from_attributes = True


class GoalResponse(BaseModel):
    id: str
    plan_instance_id: str
    goal_code: str
    area: GoalArea
    annual_goal_text: str
    baseline_json: Optional[Dict[str, Any]] = None
    short_term_objectives: Optional[List[str]] = None
    progress_schedule: Optional[str] = None
    target_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    progress_records: List[ProgressResponse] = []

    class Config:
        from_attributes = True


class QuickProgressCreate(BaseModel):
    quick_select: ProgressLevel
    comment: Optional[str] = None
    date: Optional[UTCDateTime] = None


class DictationProgressCreate(BaseModel):
    quick_select: ProgressLevel
    comment: str = Field(..., min_length=1, description="Transcribed dictation")
    measure_json: Optional[Dict[str, Any]] = None
    date: Optional[UTCDateTime] = None


class GoalValidateRequest(BaseModel):
    annual_goal_text: str = Field(..., min_length=10)
    area: Optional[GoalArea] = None
    student_grade: Optional[str] = None
    baseline: Optional[str] = None
    short_term_objectives: Optional[List[str]] = None


# ==================== Work Sample Schemas ====================

class WorkSampleUpdate(BaseModel):
    rating: Optional[WorkSampleRating] = None
    comment: Optional[str] = None


class WorkSampleResponse(BaseModel):
    id: str
    goal_id: str
    file_name: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    rating: Optional[WorkSampleRating] = None
    comment: Optional[str] = None
    captured_at: datetime
    uploaded_by_id: Optional[str] = None

    class Config:
        from_attributes = True


# ==================== Service Log Schemas ====================

class ServiceLogCreate(BaseModel):
    date: UTCDateTime
    minutes: int = Field(..., ge=0, le=480)
    service_type: ServiceType
    setting: ServiceSetting
    notes: Optional[str] = None
    missed_reason: Optional[str] = None
    makeup_planned: bool = False

    @model_validator(mode="after")
    def missed_session_needs_reason(self):
        if self.minutes == 0 and not (self.missed_reason or "").strip():
            raise ValueError("A missed session (0 minutes) requires missed_reason")
        return self


class ServiceLogUpdate(BaseModel):
    date: Optional[UTCDateTime] = None
    minutes: Optional[int] = Field(None, ge=1, le=480)
    service_type: Optional[ServiceType] = None
    setting: Optional[ServiceSetting] = None
    notes: Optional[str] = None
    makeup_planned: Optional[bool] = None


class ServiceLogResponse(BaseModel):
    id: str
    plan_instance_id: str
    date: datetime
    minutes: int
    service_type: ServiceType
    setting: ServiceSetting
    notes: Optional[str] = None
    missed_reason: Optional[str] = None
    makeup_planned: bool = False
    provider_id: Optional[str] = None

    class Config:
        from_attributes = True


class ServiceLogSummary(BaseModel):
    total_minutes: int
    by_type: Dict[str, int]


class ServiceLogListResponse(BaseModel):
    services: List[ServiceLogResponse]
    summary: ServiceLogSummary


class PlanDetailResponse(PlanResponse):
    schema_: PlanSchemaResponse = Field(..., alias="schema")
    field_values: Dict[str, Any] = {}
    goals: List[GoalResponse] = []
    services: List[ServiceLogResponse] = []

    class Config:
        from_attributes = True
        populate_by_name = True
