from sqlalchemy import Column, String, DateTime, Integer, Text, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class DisputeCaseType(str, enum.Enum):
    SECTION504_COMPLAINT = "SECTION504_COMPLAINT"
    IEP_DISPUTE = "IEP_DISPUTE"
    RECORDS_REQUEST = "RECORDS_REQUEST"
    OTHER = "OTHER"


class DisputeCaseStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_REVIEW = "IN_REVIEW"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class DisputeEventType(str, enum.Enum):
    INTAKE = "INTAKE"
    MEETING = "MEETING"
    RESPONSE_SENT = "RESPONSE_SENT"
    DOCUMENT_RECEIVED = "DOCUMENT_RECEIVED"
    RESOLUTION = "RESOLUTION"
    STATUS_CHANGE = "STATUS_CHANGE"
    NOTE = "NOTE"


class DisputeCase(Base):
    """Parent complaint, dispute or records request about a student"""
    __tablename__ = "dispute_cases"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    case_number = Column(String(20), unique=True, nullable=False, index=True)  # DC-2026-0001
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id"), nullable=True)

    case_type = Column(SQLEnum(DisputeCaseType), nullable=False)
    status = Column(SQLEnum(DisputeCaseStatus), default=DisputeCaseStatus.OPEN, nullable=False, index=True)
    summary = Column(Text, nullable=False)
    filed_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    resolved_date = Column(DateTime, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    external_reference = Column(String(255), nullable=True)

    assigned_to_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("Student", lazy="selectin")

    def __repr__(self):
        return f"<DisputeCase {self.case_number} ({self.status})>"


class DisputeEvent(Base):
    __tablename__ = "dispute_events"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    dispute_case_id = Column(GUID, ForeignKey("dispute_cases.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(SQLEnum(DisputeEventType), nullable=False)
    event_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    summary = Column(String(500), nullable=False)
    details = Column(Text, nullable=True)
    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class DisputeAttachment(Base):
    __tablename__ = "dispute_attachments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    dispute_case_id = Column(GUID, ForeignKey("dispute_cases.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(GUID, ForeignKey("dispute_events.id"), nullable=True)
    file_name = Column(String(255), nullable=False)
    storage_key = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    uploaded_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
