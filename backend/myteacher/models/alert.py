from sqlalchemy import Column, String, Boolean, DateTime, Text, Enum as SQLEnum, ForeignKey
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class AlertType(str, enum.Enum):
    REVIEW_DUE_SOON = "REVIEW_DUE_SOON"
    REVIEW_OVERDUE = "REVIEW_OVERDUE"
    COMPLIANCE_TASK = "COMPLIANCE_TASK"
    SIGNATURE_REQUESTED = "SIGNATURE_REQUESTED"
    MEETING_SCHEDULED = "MEETING_SCHEDULED"
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    GENERAL = "GENERAL"


class InAppAlert(Base):
    __tablename__ = "in_app_alerts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type = Column(SQLEnum(AlertType), default=AlertType.GENERAL, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link_url = Column(String(500), nullable=True)
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(GUID, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<InAppAlert {self.alert_type} -> {self.user_id}>"
