from sqlalchemy import Column, String, DateTime, Text, Enum as SQLEnum, ForeignKey
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class DecisionType(str, enum.Enum):
    ELIGIBILITY_CATEGORY = "ELIGIBILITY_CATEGORY"
    PLACEMENT_LRE = "PLACEMENT_LRE"
    SERVICES_CHANGE = "SERVICES_CHANGE"
    GOALS_CHANGE = "GOALS_CHANGE"
    ACCOMMODATIONS_CHANGE = "ACCOMMODATIONS_CHANGE"
    ESY_DECISION = "ESY_DECISION"
    ASSESSMENT_PARTICIPATION = "ASSESSMENT_PARTICIPATION"
    BEHAVIOR_SUPPORTS = "BEHAVIOR_SUPPORTS"
    TRANSITION_SERVICES = "TRANSITION_SERVICES"
    OTHER = "OTHER"


class DecisionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    VOID = "VOID"


class DecisionLedgerEntry(Base):
    """Recorded IEP team decision. Entries are voided, never deleted."""
    __tablename__ = "decision_ledger_entries"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_version_id = Column(GUID, ForeignKey("plan_versions.id"), nullable=True)
    meeting_id = Column(GUID, ForeignKey("plan_meetings.id"), nullable=True)

    decision_type = Column(SQLEnum(DecisionType), nullable=False)
    section_key = Column(String(100), nullable=True)
    summary = Column(Text, nullable=False)
    rationale = Column(Text, nullable=False)
    options_considered = Column(Text, nullable=True)
    participants = Column(Text, nullable=True)

    decided_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    decided_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)

    status = Column(SQLEnum(DecisionStatus), default=DecisionStatus.ACTIVE, nullable=False)
    voided_at = Column(DateTime, nullable=True)
    voided_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    void_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
