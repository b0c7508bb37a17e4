"""
Review Schemas - review schedules and compliance tasks
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, List
from datetime import datetime

from myteacher.models.review import (
    ComplianceTaskStatus,
    ComplianceTaskType,
    ReviewScheduleStatus,
    ScheduleType,
)
from myteacher.schemas import UTCDateTime


# ==================== Review Schedule Schemas ====================

class ReviewScheduleCreate(BaseModel):
    schedule_type: ScheduleType
    due_date: UTCDateTime
    lead_days: Optional[int] = Field(None, ge=1, le=365)
    notes: Optional[str] = None
    assigned_to_id: Optional[str] = None


class ReviewScheduleUpdate(BaseModel):
    due_date: Optional[UTCDateTime] = None
    lead_days: Optional[int] = Field(None, ge=1, le=365)
    notes: Optional[str] = None
    assigned_to_id: Optional[str] = None


class ReviewScheduleComplete(BaseModel):
    notes: Optional[str] = None


class ReviewScheduleResponse(BaseModel):
    id: str
    plan_instance_id: str
    schedule_type: ScheduleType
    due_date: datetime
    lead_days: int
    status: ReviewScheduleStatus
    notes: Optional[str] = None
    assigned_to_id: Optional[str] = None
    created_by_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    completed_by_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReviewDashboardSummary(BaseModel):
    overdue_count: int
    upcoming_count: int
    total_due_within_30_days: int


class ReviewDashboardResponse(BaseModel):
    overdue: List[ReviewScheduleResponse]
    upcoming: List[ReviewScheduleResponse]
    summary: ReviewDashboardSummary


class SweepResponse(BaseModel):
    marked_overdue: int
    due_soon_tasks: int


# ==================== Compliance Task Schemas ====================

class ComplianceTaskCreate(BaseModel):
    task_type: ComplianceTaskType
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[UTCDateTime] = None
    priority: int = Field(3, ge=1, le=5)
    assigned_to_id: Optional[str] = None
    plan_instance_id: Optional[str] = None
    student_id: Optional[str] = None


class ComplianceTaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[UTCDateTime] = None
    priority: Optional[int] = Field(None, ge=1, le=5)
    assigned_to_id: Optional[str] = None
    status: Optional[ComplianceTaskStatus] = None


class TaskDismissRequest(BaseModel):
    reason: Optional[str] = None


class ComplianceTaskResponse(BaseModel):
    id: str
    task_type: ComplianceTaskType
    status: ComplianceTaskStatus
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: int
    assigned_to_id: Optional[str] = None
    review_schedule_id: Optional[str] = None
    plan_instance_id: Optional[str] = None
    student_id: Optional[str] = None
    created_by_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    completed_by_id: Optional[str] = None
    dismissed_reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TaskDashboardResponse(BaseModel):
    by_status: Dict[str, int]
    overdue: int
    total: int
