from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, Enum as SQLEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class FormType(str, enum.Enum):
    IEP = "IEP"
    IEP_REPORT = "IEP_REPORT"
    FIVE_OH_FOUR = "FIVE_OH_FOUR"
    BIP = "BIP"


class ControlType(str, enum.Enum):
    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    DROPDOWN = "DROPDOWN"
    RADIO = "RADIO"
    CHECKBOX = "CHECKBOX"
    CHECKBOX_GROUP = "CHECKBOX_GROUP"
    DATE = "DATE"
    SIGNATURE = "SIGNATURE"


class OptionsEditableBy(str, enum.Enum):
    ADMIN_ONLY = "ADMIN_ONLY"
    TEACHER_ALLOWED = "TEACHER_ALLOWED"
    NONE = "NONE"


# Control types whose options are managed as FormFieldOption rows
OPTION_CONTROLS = (ControlType.DROPDOWN, ControlType.RADIO)

DEFAULT_VALUE_EDITORS = ["ADMIN", "TEACHER", "CASE_MANAGER"]


class FormFieldDefinition(Base):
    """Admin-managed field on a plan form"""
    __tablename__ = "form_field_definitions"
    __table_args__ = (UniqueConstraint("form_type", "field_key", name="uq_form_field_key"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    form_type = Column(SQLEnum(FormType), nullable=False, index=True)
    field_key = Column(String(100), nullable=False)
    field_label = Column(String(255), nullable=False)
    section = Column(String(100), nullable=False)
    section_order = Column(Integer, default=0, nullable=False)
    control_type = Column(SQLEnum(ControlType), nullable=False)
    placeholder = Column(String(255), nullable=True)
    help_text = Column(Text, nullable=True)
    is_required = Column(Boolean, default=False, nullable=False)
    is_goals_section = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    # roles allowed to set the value
    value_editable_by = Column(JSON, default=lambda: list(DEFAULT_VALUE_EDITORS), nullable=False)
    options_editable_by = Column(SQLEnum(OptionsEditableBy), default=OptionsEditableBy.NONE, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    options = relationship(
        "FormFieldOption",
        back_populates="field",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="FormFieldOption.sort_order",
    )

    def __repr__(self):
        return f"<FormFieldDefinition {self.form_type.value}.{self.field_key}>"


class FormFieldOption(Base):
    __tablename__ = "form_field_options"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    field_id = Column(GUID, ForeignKey("form_field_definitions.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(String(255), nullable=False)
    label = Column(String(255), nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    field = relationship("FormFieldDefinition", back_populates="options")


class StudentFieldValue(Base):
    """Form value kept on the student rather than a plan"""
    __tablename__ = "student_field_values"
    __table_args__ = (UniqueConstraint("student_id", "field_key", name="uq_student_field_value"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    field_key = Column(String(100), nullable=False)
    value = Column(JSON, nullable=True)
    created_by_id = Column(GUID, ForeignKey("app_users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class School(Base):
    __tablename__ = "schools"
    __table_args__ = (UniqueConstraint("jurisdiction_id", "name", name="uq_school_district_name"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    jurisdiction_id = Column(GUID, ForeignKey("jurisdictions.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    state_code = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<School {self.name}>"
