from sqlalchemy import Column, String, DateTime, Integer, Text, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid
from myteacher.models.service_log import ServiceType


class ScheduledServiceStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ScheduledServicePlan(Base):
    """Expected weekly service minutes for a plan; one per plan"""
    __tablename__ = "scheduled_service_plans"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), unique=True, nullable=False)
    status = Column(SQLEnum(ScheduledServiceStatus), default=ScheduledServiceStatus.ACTIVE, nullable=False)
    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    updated_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "ScheduledServiceItem",
        back_populates="scheduled_plan",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ScheduledServiceItem.service_type",
    )


class ScheduledServiceItem(Base):
    __tablename__ = "scheduled_service_items"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    scheduled_plan_id = Column(
        GUID, ForeignKey("scheduled_service_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_type = Column(SQLEnum(ServiceType), nullable=False)
    expected_minutes_per_week = Column(Integer, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    provider_role = Column(String(100), nullable=True)
    location = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    scheduled_plan = relationship("ScheduledServicePlan", back_populates="items")
