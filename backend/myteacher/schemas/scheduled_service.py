"""
Scheduled Service Schemas - expected weekly minutes and the variance report
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime

from myteacher.models.scheduled_service import ScheduledServiceStatus
from myteacher.models.service_log import ServiceType
from myteacher.schemas import UTCDateTime


class ScheduledServiceItemInput(BaseModel):
    service_type: ServiceType
    expected_minutes_per_week: int = Field(..., gt=0)
    start_date: UTCDateTime
    end_date: Optional[UTCDateTime] = None
    provider_role: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class ScheduledServicePlanCreate(BaseModel):
    items: List[ScheduledServiceItemInput] = Field(..., min_length=1)


class ScheduledServicePlanUpdate(BaseModel):
    status: Optional[ScheduledServiceStatus] = None
    items: Optional[List[ScheduledServiceItemInput]] = None


class ScheduledServiceItemResponse(BaseModel):
    id: str
    service_type: ServiceType
    expected_minutes_per_week: int
    start_date: datetime
    end_date: Optional[datetime] = None
    provider_role: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ScheduledServicePlanResponse(BaseModel):
    id: str
    plan_instance_id: str
    status: ScheduledServiceStatus
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: datetime
    items: List[ScheduledServiceItemResponse] = []

    class Config:
        from_attributes = True


class ServiceTypeVariance(BaseModel):
    service_type: ServiceType
    expected_minutes: int
    delivered_minutes: int
    variance_minutes: int
    missed_sessions: int


class WeeklyVariance(BaseModel):
    week_of: date
    week_end: date
    by_service_type: List[ServiceTypeVariance]
    total_expected: int
    total_delivered: int
    total_variance: int


class VarianceSummary(BaseModel):
    total_expected: int
    total_delivered: int
    total_variance: int


class ServiceVarianceResponse(BaseModel):
    variance: List[WeeklyVariance]
    summary: VarianceSummary
