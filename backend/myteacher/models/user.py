from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class UserRole(str, enum.Enum):
    """User roles"""
    TEACHER = "TEACHER"
    CASE_MANAGER = "CASE_MANAGER"
    ADMIN = "ADMIN"


class Jurisdiction(Base):
    """State / district pair a student or user belongs to"""
    __tablename__ = "jurisdictions"
    __table_args__ = (UniqueConstraint("state_code", "district_code", name="uq_jurisdiction_state_district"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    state_code = Column(String(2), nullable=False, index=True)
    state_name = Column(String(100), nullable=False)
    district_code = Column(String(50), nullable=False)
    district_name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Jurisdiction {self.state_code}/{self.district_code}>"


class AppUser(Base):
    """Staff account (teacher, case manager or administrator)"""
    __tablename__ = "app_users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    username = Column(String(100), unique=True, index=True, nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    password_hash = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=False)
    avatar_url = Column(String(500), nullable=True)

    # OAuth
    google_id = Column(String(255), unique=True, nullable=True)

    role = Column(SQLEnum(UserRole), default=UserRole.TEACHER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Onboarding profile
    is_onboarded = Column(Boolean, default=False, nullable=False)
    state_code = Column(String(2), nullable=True)
    district_name = Column(String(255), nullable=True)
    school_name = Column(String(255), nullable=True)
    jurisdiction_id = Column(GUID, ForeignKey("jurisdictions.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    permission = relationship(
        "UserPermission",
        back_populates="user",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<AppUser {self.username or self.email} ({self.role})>"


class UserPermission(Base):
    """Explicit permission flags granted on top of the role defaults"""
    __tablename__ = "user_permissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("app_users.id", ondelete="CASCADE"), unique=True, nullable=False)

    can_create_plans = Column(Boolean, default=False, nullable=False)
    can_update_plans = Column(Boolean, default=False, nullable=False)
    can_read_all = Column(Boolean, default=False, nullable=False)
    can_manage_users = Column(Boolean, default=False, nullable=False)
    can_manage_docs = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("AppUser", back_populates="permission")


class StudentAccess(Base):
    """Time-limited read grant on a single student"""
    __tablename__ = "student_access"
    __table_args__ = (UniqueConstraint("student_id", "user_id", name="uq_student_access_student_user"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True)
    granted_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
