from sqlalchemy import Column, String, DateTime, Text, JSON, Enum as SQLEnum, ForeignKey
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class AuditActionType(str, enum.Enum):
    PLAN_VIEWED = "PLAN_VIEWED"
    PLAN_UPDATED = "PLAN_UPDATED"
    PLAN_FINALIZED = "PLAN_FINALIZED"
    PDF_EXPORTED = "PDF_EXPORTED"
    PDF_DOWNLOADED = "PDF_DOWNLOADED"
    SIGNATURE_ADDED = "SIGNATURE_ADDED"
    REVIEW_SCHEDULE_CREATED = "REVIEW_SCHEDULE_CREATED"
    CASE_VIEWED = "CASE_VIEWED"
    CASE_EXPORTED = "CASE_EXPORTED"
    PERMISSION_DENIED = "PERMISSION_DENIED"


class AuditEntityType(str, enum.Enum):
    PLAN = "PLAN"
    PLAN_VERSION = "PLAN_VERSION"
    PLAN_EXPORT = "PLAN_EXPORT"
    SIGNATURE_RECORD = "SIGNATURE_RECORD"
    REVIEW_SCHEDULE = "REVIEW_SCHEDULE"
    DISPUTE_CASE = "DISPUTE_CASE"
    STUDENT = "STUDENT"


class AuditLog(Base):
    """Audit trail of access to and changes of student records"""
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("app_users.id"), nullable=True, index=True)

    # Action details
    action = Column(SQLEnum(AuditActionType), nullable=False, index=True)
    entity_type = Column(SQLEnum(AuditEntityType), nullable=False)
    entity_id = Column(GUID, nullable=True)
    student_id = Column(GUID, nullable=True, index=True)

    # Change details
    metadata_json = Column(JSON, nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.user_id}>"
