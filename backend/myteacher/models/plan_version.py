from sqlalchemy import (
    Column, String, DateTime, Integer, Text, JSON,
    Enum as SQLEnum, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class PlanVersionStatus(str, enum.Enum):
    FINAL = "FINAL"
    DISTRIBUTED = "DISTRIBUTED"
    SUPERSEDED = "SUPERSEDED"


class ExportFormat(str, enum.Enum):
    PDF = "PDF"
    HTML = "HTML"


class PlanVersion(Base):
    """Immutable snapshot of a plan taken at finalization"""
    __tablename__ = "plan_versions"
    __table_args__ = (UniqueConstraint("plan_instance_id", "version_number", name="uq_plan_version_number"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_instance_id = Column(GUID, ForeignKey("plan_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    status = Column(SQLEnum(PlanVersionStatus), default=PlanVersionStatus.FINAL, nullable=False)
    snapshot_json = Column(JSON, nullable=False)
    version_notes = Column(Text, nullable=True)

    finalized_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    finalized_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    distributed_at = Column(DateTime, nullable=True)
    distributed_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<PlanVersion {self.plan_instance_id} v{self.version_number} ({self.status})>"


class PlanExport(Base):
    __tablename__ = "plan_exports"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    plan_version_id = Column(GUID, ForeignKey("plan_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    format = Column(SQLEnum(ExportFormat), nullable=False)
    storage_key = Column(String(500), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_size_bytes = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=False)
    exported_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    plan_version = relationship("PlanVersion", lazy="selectin")
