from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List
from datetime import datetime

from myteacher.models.signature import (
    SignatureMethod,
    SignaturePacketStatus,
    SignatureRole,
    SignatureStatus,
)
from myteacher.schemas import UTCDateTime


class SignerInput(BaseModel):
    role: SignatureRole
    signer_name: Optional[str] = Field(None, max_length=255)
    signer_email: Optional[EmailStr] = None
    signer_title: Optional[str] = Field(None, max_length=255)
    signer_user_id: Optional[str] = None


class PacketCreate(BaseModel):
    required_roles: List[SignatureRole] = Field(..., min_length=1)
    signers: Optional[List[SignerInput]] = None
    expires_at: Optional[UTCDateTime] = None


class SignRequest(BaseModel):
    method: SignatureMethod = SignatureMethod.ELECTRONIC
    signer_name: str = Field(..., min_length=1, max_length=255)
    attestation: bool = False


class DeclineRequest(BaseModel):
    decline_reason: str = Field(..., min_length=1)


class PacketSignRequest(SignRequest):
    signature_record_id: str = Field(..., min_length=1)


class PacketDeclineRequest(DeclineRequest):
    signature_record_id: str = Field(..., min_length=1)


class SignatureRecordResponse(BaseModel):
    id: str
    packet_id: str
    role: SignatureRole
    signer_user_id: Optional[str] = None
    signer_name: Optional[str] = None
    signer_email: Optional[str] = None
    signer_title: Optional[str] = None
    method: Optional[SignatureMethod] = None
    status: SignatureStatus
    signed_at: Optional[datetime] = None
    attestation_text: Optional[str] = None
    ip_address: Optional[str] = None
    declined_at: Optional[datetime] = None
    decline_reason: Optional[str] = None

    class Config:
        from_attributes = True


class RoleSummary(BaseModel):
    role: str
    label: str
    signed: bool
    pending: int
    total: int


class SignaturePacketResponse(BaseModel):
    id: str
    plan_version_id: str
    status: SignaturePacketStatus
    required_roles: List[str]
    completed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    records: List[SignatureRecordResponse] = []
    roles_summary: List[RoleSummary] = []

    class Config:
        from_attributes = True


class SignResponse(BaseModel):
    record: SignatureRecordResponse
    packet_complete: bool
