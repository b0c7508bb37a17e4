"""
Admin Schemas - user management, permissions, student access grants,
audit logs and best-practice documents
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

from myteacher.models.user import UserRole
from myteacher.models.plan import PlanTypeCode
from myteacher.models.best_practice import IngestionStatus
from myteacher.models.audit_log import AuditActionType, AuditEntityType
from myteacher.schemas import UTCDateTime


# ==================== User Schemas ====================

class UserUpdate(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)


class PermissionUpdate(BaseModel):
    can_create_plans: Optional[bool] = None
    can_update_plans: Optional[bool] = None
    can_read_all: Optional[bool] = None
    can_manage_users: Optional[bool] = None
    can_manage_docs: Optional[bool] = None


class StudentAccessGrant(BaseModel):
    student_id: str
    user_id: str
    expires_at: Optional[UTCDateTime] = None


class StudentAccessResponse(BaseModel):
    id: str
    student_id: str
    user_id: str
    granted_by_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class JurisdictionResponse(BaseModel):
    id: str
    state_code: str
    state_name: str
    district_code: str
    district_name: str

    class Config:
        from_attributes = True


# ==================== Audit Log Schemas ====================

class AuditLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    action: AuditActionType
    entity_type: AuditEntityType
    entity_id: Optional[str] = None
    student_id: Optional[str] = None
    metadata_json: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ==================== Best Practice Document Schemas ====================

class BestPracticeDocUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    grade_band: Optional[str] = Field(None, max_length=10)
    jurisdiction_id: Optional[str] = None
    is_active: Optional[bool] = None


class BestPracticeDocResponse(BaseModel):
    id: str
    title: str
    plan_type: PlanTypeCode
    jurisdiction_id: Optional[str] = None
    grade_band: Optional[str] = None
    file_name: str
    mime_type: Optional[str] = None
    file_size: Optional[int] = None
    is_active: bool
    ingestion_status: IngestionStatus
    ingestion_message: Optional[str] = None
    ingestion_at: Optional[datetime] = None
    uploaded_by_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ChunkResponse(BaseModel):
    id: str
    sequence: int
    section_tag: Optional[str] = None
    text: str

    class Config:
        from_attributes = True


class ChunkListResponse(BaseModel):
    document_id: str
    total_chunks: int
    by_section: Dict[str, int]
    chunks: List[ChunkResponse]
