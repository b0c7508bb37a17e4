from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, JSON,
    Enum as SQLEnum, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid
from myteacher.models.rule_pack import RulePlanType


class MeetingTypeCode(str, enum.Enum):
    INITIAL = "INITIAL"
    ANNUAL = "ANNUAL"
    REVIEW = "REVIEW"
    AMENDMENT = "AMENDMENT"
    CONTINUED = "CONTINUED"


class MeetingStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    HELD = "HELD"
    CLOSED = "CLOSED"
    CANCELED = "CANCELED"


class ParentDeliveryMethod(str, enum.Enum):
    SEND_HOME = "SEND_HOME"
    US_MAIL = "US_MAIL"
    PICK_UP = "PICK_UP"


class ConsentStatus(str, enum.Enum):
    PENDING = "PENDING"
    OBTAINED = "OBTAINED"
    REFUSED = "REFUSED"


class MeetingType(Base):
    __tablename__ = "meeting_types"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    code = Column(SQLEnum(MeetingTypeCode), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)


class PlanMeeting(Base):
    """IEP / 504 / BIP team meeting with its compliance state"""
    __tablename__ = "plan_meetings"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id"), nullable=True, index=True)
    plan_type = Column(SQLEnum(RulePlanType), nullable=False)
    meeting_type_id = Column(GUID, ForeignKey("meeting_types.id"), nullable=False)

    scheduled_at = Column(DateTime, nullable=False)
    held_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    status = Column(SQLEnum(MeetingStatus), default=MeetingStatus.SCHEDULED, nullable=False, index=True)

    # Continued meetings
    is_continued = Column(Boolean, default=False, nullable=False)
    continued_from_meeting_id = Column(GUID, ForeignKey("plan_meetings.id"), nullable=True)
    mutual_agreement_for_continued_date = Column(Boolean, nullable=True)
    notice_waiver_signed = Column(Boolean, default=False, nullable=False)

    # Recording
    parent_recording = Column(Boolean, default=False, nullable=False)
    staff_recording = Column(Boolean, default=False, nullable=False)

    # Document delivery
    parent_delivery_method = Column(SQLEnum(ParentDeliveryMethod), nullable=True)
    pre_docs_delivered_at = Column(DateTime, nullable=True)
    pre_docs_delivery_method = Column(SQLEnum(ParentDeliveryMethod), nullable=True)
    post_docs_delivered_at = Column(DateTime, nullable=True)
    post_docs_delivery_method = Column(SQLEnum(ParentDeliveryMethod), nullable=True)

    # Consent (initial IEP)
    consent_status = Column(SQLEnum(ConsentStatus), nullable=True)
    consent_obtained_at = Column(DateTime, nullable=True)

    outcome_notes = Column(Text, nullable=True)
    action_items = Column(JSON, nullable=True)

    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    meeting_type = relationship("MeetingType", lazy="selectin")
    evidence = relationship(
        "MeetingEvidence",
        back_populates="meeting",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<PlanMeeting {self.id} ({self.status})>"


class MeetingEvidence(Base):
    __tablename__ = "meeting_evidence"
    __table_args__ = (UniqueConstraint("meeting_id", "evidence_type_id", name="uq_meeting_evidence_type"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    meeting_id = Column(GUID, ForeignKey("plan_meetings.id", ondelete="CASCADE"), nullable=False, index=True)
    evidence_type_id = Column(GUID, ForeignKey("rule_evidence_types.id"), nullable=False)
    note = Column(Text, nullable=True)
    evidence_date = Column(DateTime, nullable=True)
    delivery_method = Column(SQLEnum(ParentDeliveryMethod), nullable=True)
    file_storage_key = Column(String(500), nullable=True)
    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    meeting = relationship("PlanMeeting", back_populates="evidence")
    evidence_type = relationship("RuleEvidenceType", lazy="selectin")
