from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date

from myteacher.models.student import StatusScope, StatusCode


class StudentCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    external_id: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None
    grade: Optional[str] = Field(None, max_length=10)
    school_name: Optional[str] = Field(None, max_length=255)
    jurisdiction_id: Optional[str] = None


class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    external_id: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None
    grade: Optional[str] = Field(None, max_length=10)
    school_name: Optional[str] = Field(None, max_length=255)
    jurisdiction_id: Optional[str] = None


class StudentResponse(BaseModel):
    id: str
    record_id: str
    external_id: Optional[str] = None
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    grade: Optional[str] = None
    school_name: Optional[str] = None
    is_active: bool
    jurisdiction_id: Optional[str] = None
    teacher_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ==================== Status Schemas ====================

class StudentStatusCreate(BaseModel):
    scope: StatusScope
    code: StatusCode
    summary: Optional[str] = Field(None, max_length=500)
    effective_date: Optional[datetime] = None


class StudentStatusResponse(BaseModel):
    id: str
    student_id: str
    scope: StatusScope
    code: StatusCode
    summary: Optional[str] = None
    effective_date: datetime
    updated_by_id: Optional[str] = None

    class Config:
        from_attributes = True


class StudentStatusSummary(BaseModel):
    current: List[StudentStatusResponse]
    history: List[StudentStatusResponse]
