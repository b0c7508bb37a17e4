from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

from myteacher.models.plan_version import PlanVersionStatus, ExportFormat
from myteacher.models.signature import SignatureRole
from myteacher.schemas.decision import DecisionCreate


class FinalizeVersionRequest(BaseModel):
    version_notes: Optional[str] = None
    decisions: List[DecisionCreate] = []
    create_signature_packet: bool = True
    required_signature_roles: List[SignatureRole] = Field(
        default_factory=lambda: [SignatureRole.CASE_MANAGER]
    )


class PlanVersionResponse(BaseModel):
    id: str
    plan_instance_id: str
    version_number: int
    status: PlanVersionStatus
    version_notes: Optional[str] = None
    finalized_at: datetime
    finalized_by_id: Optional[str] = None
    distributed_at: Optional[datetime] = None
    distributed_by_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PlanVersionDetailResponse(PlanVersionResponse):
    snapshot_json: Dict[str, Any]


class FinalizeVersionResponse(BaseModel):
    version: PlanVersionResponse
    signature_packet_id: Optional[str] = None
    decisions_created: int = 0


# ==================== Export Schemas ====================

class ExportCreate(BaseModel):
    format: ExportFormat = ExportFormat.PDF


class PlanExportResponse(BaseModel):
    id: str
    plan_version_id: str
    format: ExportFormat
    file_name: str
    file_size_bytes: Optional[int] = None
    mime_type: str
    exported_by_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
