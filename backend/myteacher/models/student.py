from sqlalchemy import Column, String, Boolean, DateTime, Date, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class StatusScope(str, enum.Enum):
    OVERALL = "OVERALL"
    ACADEMIC = "ACADEMIC"
    BEHAVIOR = "BEHAVIOR"
    SERVICES = "SERVICES"


class StatusCode(str, enum.Enum):
    ON_TRACK = "ON_TRACK"
    WATCH = "WATCH"
    CONCERN = "CONCERN"
    URGENT = "URGENT"


class Student(Base):
    """Student record owned by a teacher"""
    __tablename__ = "students"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    record_id = Column(String(20), unique=True, index=True, nullable=False)  # STU-000001
    external_id = Column(String(100), nullable=True, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    grade = Column(String(10), nullable=True)
    school_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    jurisdiction_id = Column(GUID, ForeignKey("jurisdictions.id"), nullable=True)
    teacher_id = Column(GUID, ForeignKey("app_users.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    jurisdiction = relationship("Jurisdiction", lazy="selectin")
    plans = relationship("PlanInstance", back_populates="student", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Student {self.record_id}>"


class StudentStatus(Base):
    """Point-in-time status note per scope"""
    __tablename__ = "student_statuses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    scope = Column(SQLEnum(StatusScope), nullable=False)
    code = Column(SQLEnum(StatusCode), nullable=False)
    summary = Column(String(500), nullable=True)
    effective_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
