from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, Enum as SQLEnum, ForeignKey
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid
from myteacher.models.plan import PlanTypeCode


class IngestionStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class BestPracticeDocument(Base):
    """Exemplar plan document used as reference material for drafting"""
    __tablename__ = "best_practice_documents"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    plan_type = Column(SQLEnum(PlanTypeCode), nullable=False, index=True)
    jurisdiction_id = Column(GUID, ForeignKey("jurisdictions.id"), nullable=True)
    grade_band = Column(String(10), nullable=True)

    file_name = Column(String(255), nullable=False)
    storage_key = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    ingestion_status = Column(SQLEnum(IngestionStatus), default=IngestionStatus.PENDING, nullable=False)
    ingestion_message = Column(Text, nullable=True)
    ingestion_at = Column(DateTime, nullable=True)

    uploaded_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<BestPracticeDocument {self.title} ({self.ingestion_status})>"


class BestPracticeChunk(Base):
    __tablename__ = "best_practice_chunks"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("best_practice_documents.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    section_tag = Column(String(100), nullable=True, index=True)
    text = Column(Text, nullable=False)
    plan_type = Column(SQLEnum(PlanTypeCode), nullable=False)
    jurisdiction_id = Column(GUID, nullable=True)
    grade_band = Column(String(10), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
