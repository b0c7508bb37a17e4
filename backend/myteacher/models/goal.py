from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Text, JSON,
    Enum as SQLEnum, ForeignKey, UniqueConstraint,
)
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class GoalArea(str, enum.Enum):
    READING = "READING"
    WRITING = "WRITING"
    MATH = "MATH"
    COMMUNICATION = "COMMUNICATION"
    SOCIAL_EMOTIONAL = "SOCIAL_EMOTIONAL"
    BEHAVIOR = "BEHAVIOR"
    MOTOR_SKILLS = "MOTOR_SKILLS"
    DAILY_LIVING = "DAILY_LIVING"
    VOCATIONAL = "VOCATIONAL"
    OTHER = "OTHER"


class ProgressLevel(str, enum.Enum):
    NOT_ADDRESSED = "NOT_ADDRESSED"
    FULL_SUPPORT = "FULL_SUPPORT"
    SOME_SUPPORT = "SOME_SUPPORT"
    LOW_SUPPORT = "LOW_SUPPORT"
    MET_TARGET = "MET_TARGET"


class WorkSampleRating(str, enum.Enum):
    BELOW_TARGET = "BELOW_TARGET"
    NEAR_TARGET = "NEAR_TARGET"
    MEETS_TARGET = "MEETS_TARGET"
    ABOVE_TARGET = "ABOVE_TARGET"


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (UniqueConstraint("plan_instance_id", "goal_code", name="uq_goal_plan_code"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_code = Column(String(20), nullable=False)  # e.g. R1.1, M2
    area = Column(SQLEnum(GoalArea), nullable=False)
    annual_goal_text = Column(Text, nullable=False)
    baseline_json = Column(JSON, nullable=True)
    short_term_objectives = Column(JSON, nullable=True)
    progress_schedule = Column(String(20), nullable=True)
    target_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Goal {self.goal_code}>"


class GoalProgress(Base):
    __tablename__ = "goal_progress"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    goal_id = Column(GUID, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime, default=datetime.utcnow, nullable=False)
    quick_select = Column(SQLEnum(ProgressLevel), nullable=False)
    measure_json = Column(JSON, nullable=True)
    comment = Column(Text, nullable=True)
    is_dictated = Column(Boolean, default=False, nullable=False)
    recorded_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WorkSample(Base):
    __tablename__ = "work_samples"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    goal_id = Column(GUID, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_key = Column(String(500), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    rating = Column(SQLEnum(WorkSampleRating), nullable=True)
    comment = Column(Text, nullable=True)
    captured_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    uploaded_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
