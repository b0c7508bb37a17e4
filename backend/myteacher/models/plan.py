from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Text, JSON,
    Enum as SQLEnum, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class PlanTypeCode(str, enum.Enum):
    IEP = "IEP"
    FIVE_OH_FOUR = "FIVE_OH_FOUR"
    BEHAVIOR_PLAN = "BEHAVIOR_PLAN"


class PlanStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class PlanType(Base):
    __tablename__ = "plan_types"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    code = Column(SQLEnum(PlanTypeCode), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<PlanType {self.code}>"


class PlanSchema(Base):
    """Versioned form definition: fields = {"sections": [{key, title, fields: [...]}]}"""
    __tablename__ = "plan_schemas"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_type_id = Column(GUID, ForeignKey("plan_types.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    version = Column(Integer, default=1, nullable=False)
    fields = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, default=True, nullable=False)
    effective_from = Column(DateTime, default=datetime.utcnow, nullable=False)
    effective_to = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    plan_type = relationship("PlanType", lazy="selectin")


class PlanInstance(Base):
    """A student's IEP, 504 plan or behavior plan"""
    __tablename__ = "plan_instances"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_type_id = Column(GUID, ForeignKey("plan_types.id"), nullable=False)
    schema_id = Column(GUID, ForeignKey("plan_schemas.id"), nullable=False)

    start_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    end_date = Column(DateTime, nullable=True)
    status = Column(SQLEnum(PlanStatus), default=PlanStatus.DRAFT, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("Student", back_populates="plans", lazy="selectin")
    plan_type = relationship("PlanType", lazy="selectin")
    schema = relationship("PlanSchema", lazy="selectin")
    field_values = relationship("PlanFieldValue", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<PlanInstance {self.id} ({self.status})>"


class PlanFieldValue(Base):
    __tablename__ = "plan_field_values"
    __table_args__ = (UniqueConstraint("plan_instance_id", "field_key", name="uq_plan_field_value"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    field_key = Column(String(100), nullable=False)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
