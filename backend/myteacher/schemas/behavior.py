"""
Behavior Schemas - behavior targets and observed events
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

from myteacher.models.behavior import BehaviorMeasurementType
from myteacher.schemas import UTCDateTime


class BehaviorTargetCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    definition: str = Field(..., min_length=10)
    examples: Optional[str] = None
    non_examples: Optional[str] = None
    measurement_type: BehaviorMeasurementType


class BehaviorTargetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    definition: Optional[str] = Field(None, min_length=10)
    examples: Optional[str] = None
    non_examples: Optional[str] = None
    measurement_type: Optional[BehaviorMeasurementType] = None


class BehaviorEventCreate(BaseModel):
    event_date: UTCDateTime
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    count: Optional[int] = Field(None, ge=0)
    rating: Optional[int] = Field(None, ge=1, le=5)
    duration_seconds: Optional[int] = Field(None, ge=0)
    context_json: Optional[Dict[str, Any]] = None


class BehaviorEventResponse(BaseModel):
    id: str
    target_id: str
    event_date: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    count: Optional[int] = None
    rating: Optional[int] = None
    duration_seconds: Optional[int] = None
    context_json: Optional[Dict[str, Any]] = None
    recorded_by_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BehaviorTargetResponse(BaseModel):
    id: str
    plan_instance_id: str
    code: str
    name: str
    definition: str
    examples: Optional[str] = None
    non_examples: Optional[str] = None
    measurement_type: BehaviorMeasurementType
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class BehaviorTargetWithEvents(BehaviorTargetResponse):
    recent_events: List[BehaviorEventResponse] = []


class BehaviorEventSummary(BaseModel):
    total_events: int
    total_count: int
    total_duration_seconds: int
    average_rating: float


class BehaviorEventListResponse(BaseModel):
    events: List[BehaviorEventResponse]
    summary: BehaviorEventSummary
    measurement_type: BehaviorMeasurementType
