from sqlalchemy import Column, String, DateTime, Text, JSON, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class SignaturePacketStatus(str, enum.Enum):
    OPEN = "OPEN"
    COMPLETE = "COMPLETE"
    EXPIRED = "EXPIRED"


class SignatureRole(str, enum.Enum):
    PARENT_GUARDIAN = "PARENT_GUARDIAN"
    CASE_MANAGER = "CASE_MANAGER"
    GENERAL_ED_TEACHER = "GENERAL_ED_TEACHER"
    SPECIAL_ED_TEACHER = "SPECIAL_ED_TEACHER"
    ADMINISTRATOR = "ADMINISTRATOR"
    STUDENT = "STUDENT"
    RELATED_SERVICE_PROVIDER = "RELATED_SERVICE_PROVIDER"
    OTHER = "OTHER"


class SignatureMethod(str, enum.Enum):
    ELECTRONIC = "ELECTRONIC"
    IN_PERSON = "IN_PERSON"
    PAPER_RETURNED = "PAPER_RETURNED"


class SignatureStatus(str, enum.Enum):
    PENDING = "PENDING"
    SIGNED = "SIGNED"
    DECLINED = "DECLINED"


class SignaturePacket(Base):
    """Collection of signatures required on one plan version"""
    __tablename__ = "signature_packets"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_version_id = Column(GUID, ForeignKey("plan_versions.id", ondelete="CASCADE"), unique=True, nullable=False)
    status = Column(SQLEnum(SignaturePacketStatus), default=SignaturePacketStatus.OPEN, nullable=False)
    required_roles = Column(JSON, nullable=False, default=list)
    completed_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    records = relationship(
        "SignatureRecord",
        back_populates="packet",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="SignatureRecord.created_at",
    )

    def __repr__(self):
        return f"<SignaturePacket {self.id} ({self.status})>"


class SignatureRecord(Base):
    __tablename__ = "signature_records"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    packet_id = Column(GUID, ForeignKey("signature_packets.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(SignatureRole), nullable=False)

    signer_user_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    signer_name = Column(String(255), nullable=True)
    signer_email = Column(String(255), nullable=True)
    signer_title = Column(String(255), nullable=True)

    method = Column(SQLEnum(SignatureMethod), nullable=True)
    status = Column(SQLEnum(SignatureStatus), default=SignatureStatus.PENDING, nullable=False)
    signed_at = Column(DateTime, nullable=True)
    attestation_text = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    declined_at = Column(DateTime, nullable=True)
    decline_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    packet = relationship("SignaturePacket", back_populates="records")
