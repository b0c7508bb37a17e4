from sqlalchemy import Column, Boolean, DateTime, Integer, Text, Enum as SQLEnum, ForeignKey
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class ServiceType(str, enum.Enum):
    SPECIAL_EDUCATION = "SPECIAL_EDUCATION"
    SPEECH_LANGUAGE = "SPEECH_LANGUAGE"
    OCCUPATIONAL_THERAPY = "OCCUPATIONAL_THERAPY"
    PHYSICAL_THERAPY = "PHYSICAL_THERAPY"
    COUNSELING = "COUNSELING"
    BEHAVIORAL_SUPPORT = "BEHAVIORAL_SUPPORT"
    READING_SPECIALIST = "READING_SPECIALIST"
    PARAPROFESSIONAL = "PARAPROFESSIONAL"
    OTHER = "OTHER"


class ServiceSetting(str, enum.Enum):
    GENERAL_EDUCATION = "GENERAL_EDUCATION"
    SPECIAL_EDUCATION = "SPECIAL_EDUCATION"
    RESOURCE_ROOM = "RESOURCE_ROOM"
    THERAPY_ROOM = "THERAPY_ROOM"
    COMMUNITY = "COMMUNITY"
    HOME = "HOME"
    OTHER = "OTHER"


class ServiceLog(Base):
    """Minutes of service delivered against a plan"""
    __tablename__ = "service_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime, nullable=False)
    minutes = Column(Integer, nullable=False)
    service_type = Column(SQLEnum(ServiceType), nullable=False)
    setting = Column(SQLEnum(ServiceSetting), nullable=False)
    notes = Column(Text, nullable=True)
    # minutes is 0 for a missed session
    missed_reason = Column(Text, nullable=True)
    makeup_planned = Column(Boolean, default=False, nullable=False)
    provider_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
