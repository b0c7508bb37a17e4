from sqlalchemy import Column, String, DateTime, Integer, Text, Enum as SQLEnum, ForeignKey
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class ScheduleType(str, enum.Enum):
    IEP_ANNUAL_REVIEW = "IEP_ANNUAL_REVIEW"
    IEP_REEVALUATION = "IEP_REEVALUATION"
    PLAN_AMENDMENT_REVIEW = "PLAN_AMENDMENT_REVIEW"
    SECTION504_PERIODIC_REVIEW = "SECTION504_PERIODIC_REVIEW"
    BIP_REVIEW = "BIP_REVIEW"


class ReviewScheduleStatus(str, enum.Enum):
    OPEN = "OPEN"
    COMPLETE = "COMPLETE"
    OVERDUE = "OVERDUE"


class ComplianceTaskType(str, enum.Enum):
    REVIEW_DUE_SOON = "REVIEW_DUE_SOON"
    REVIEW_OVERDUE = "REVIEW_OVERDUE"
    DOCUMENT_REQUIRED = "DOCUMENT_REQUIRED"
    SIGNATURE_NEEDED = "SIGNATURE_NEEDED"
    MEETING_REQUIRED = "MEETING_REQUIRED"


class ComplianceTaskStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    DISMISSED = "DISMISSED"


class ReviewSchedule(Base):
    """Upcoming annual review / reevaluation deadline for a plan"""
    __tablename__ = "review_schedules"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    schedule_type = Column(SQLEnum(ScheduleType), nullable=False)
    due_date = Column(DateTime, nullable=False, index=True)
    lead_days = Column(Integer, default=30, nullable=False)
    status = Column(SQLEnum(ReviewScheduleStatus), default=ReviewScheduleStatus.OPEN, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    assigned_to_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completed_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ReviewSchedule {self.schedule_type} due {self.due_date:%Y-%m-%d}>"


class ComplianceTask(Base):
    __tablename__ = "compliance_tasks"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    task_type = Column(SQLEnum(ComplianceTaskType), nullable=False)
    status = Column(SQLEnum(ComplianceTaskStatus), default=ComplianceTaskStatus.OPEN, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    priority = Column(Integer, default=3, nullable=False)  # 1 = highest

    assigned_to_id = Column(GUID, ForeignKey("app_users.id"), nullable=True, index=True)
    review_schedule_id = Column(GUID, ForeignKey("review_schedules.id", ondelete="CASCADE"), nullable=True, index=True)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id"), nullable=True)
    student_id = Column(GUID, ForeignKey("students.id"), nullable=True)

    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    completed_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    dismissed_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
