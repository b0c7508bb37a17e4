from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class BehaviorMeasurementType(str, enum.Enum):
    FREQUENCY = "FREQUENCY"
    DURATION = "DURATION"
    INTERVAL = "INTERVAL"
    RATING = "RATING"


class BehaviorTarget(Base):
    """Operationally defined behavior tracked on a behavior plan"""
    __tablename__ = "behavior_targets"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(20), nullable=False)
    name = Column(String(255), nullable=False)
    definition = Column(Text, nullable=False)
    examples = Column(Text, nullable=True)
    non_examples = Column(Text, nullable=True)
    measurement_type = Column(SQLEnum(BehaviorMeasurementType), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    events = relationship(
        "BehaviorEvent",
        back_populates="target",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="BehaviorEvent.event_date.desc()",
    )

    def __repr__(self):
        return f"<BehaviorTarget {self.code}>"


class BehaviorEvent(Base):
    """One observation of a target behavior"""
    __tablename__ = "behavior_events"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    target_id = Column(GUID, ForeignKey("behavior_targets.id", ondelete="CASCADE"), nullable=False, index=True)
    event_date = Column(DateTime, nullable=False, index=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    count = Column(Integer, nullable=True)
    rating = Column(Integer, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    context_json = Column(JSON, nullable=True)
    recorded_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    target = relationship("BehaviorTarget", back_populates="events")
