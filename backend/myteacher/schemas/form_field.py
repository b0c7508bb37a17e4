"""
Form Field Schemas - admin-managed form fields, options, field values and schools
"""
from pydantic import BaseModel, Field
from typing import Optional, Any, List
from datetime import datetime

from myteacher.models.form_field import ControlType, FormType, OptionsEditableBy
from myteacher.models.user import UserRole


# ==================== Field Definition Schemas ====================

class FormFieldOptionResponse(BaseModel):
    id: str
    value: str
    label: str
    sort_order: int
    is_default: bool
    is_active: bool

    class Config:
        from_attributes = True


class FormFieldResponse(BaseModel):
    id: str
    form_type: FormType
    field_key: str
    field_label: str
    section: str
    section_order: int
    control_type: ControlType
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    is_required: bool
    is_goals_section: bool
    sort_order: int
    value_editable_by: List[str]
    options_editable_by: OptionsEditableBy
    is_active: bool
    options: List[FormFieldOptionResponse] = []

    class Config:
        from_attributes = True


class FormSection(BaseModel):
    name: str
    order: int
    fields: List[FormFieldResponse]


class FormFieldsResponse(BaseModel):
    form_type: FormType
    fields: List[FormFieldResponse]
    sections: List[FormSection]
    total_fields: int


class FieldPermissions(BaseModel):
    can_edit_value: bool
    can_edit_options: bool


class FormFieldDetailResponse(BaseModel):
    field: FormFieldResponse
    permissions: FieldPermissions


class FormFieldCreate(BaseModel):
    form_type: FormType
    field_key: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z][a-z0-9_]*$")
    field_label: str = Field(..., min_length=1, max_length=255)
    section: str = Field(..., min_length=1, max_length=100)
    section_order: int = 0
    control_type: ControlType
    placeholder: Optional[str] = Field(None, max_length=255)
    help_text: Optional[str] = None
    is_required: bool = False
    is_goals_section: bool = False
    sort_order: int = 0
    value_editable_by: List[UserRole] = [UserRole.ADMIN, UserRole.TEACHER, UserRole.CASE_MANAGER]
    options_editable_by: OptionsEditableBy = OptionsEditableBy.NONE


class FormFieldUpdate(BaseModel):
    field_label: Optional[str] = Field(None, min_length=1, max_length=255)
    section: Optional[str] = Field(None, min_length=1, max_length=100)
    section_order: Optional[int] = None
    placeholder: Optional[str] = Field(None, max_length=255)
    help_text: Optional[str] = None
    is_required: Optional[bool] = None
    is_goals_section: Optional[bool] = None
    sort_order: Optional[int] = None
    value_editable_by: Optional[List[UserRole]] = None
    options_editable_by: Optional[OptionsEditableBy] = None
    is_active: Optional[bool] = None


class FormFieldOptionCreate(BaseModel):
    value: str = Field(..., min_length=1, max_length=255)
    label: str = Field(..., min_length=1, max_length=255)
    sort_order: int = 0
    is_default: bool = False


class FormFieldOptionUpdate(BaseModel):
    value: Optional[str] = Field(None, min_length=1, max_length=255)
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    sort_order: Optional[int] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


# ==================== Field Value Schemas ====================

class FieldValueInput(BaseModel):
    field_key: str = Field(..., min_length=1)
    value: Any = None


class FieldValuesSave(BaseModel):
    form_type: FormType
    plan_id: Optional[str] = None
    student_id: Optional[str] = None
    values: List[FieldValueInput] = Field(..., min_length=1)


class FieldValueError(BaseModel):
    field_key: str
    error: str


class FieldValuesSaveResponse(BaseModel):
    saved: int
    errors: List[FieldValueError] = []


class FieldValuesResponse(BaseModel):
    values: List[FieldValueInput]


class RequiredFieldsCheck(BaseModel):
    form_type: FormType
    plan_id: Optional[str] = None
    student_id: Optional[str] = None


class MissingField(BaseModel):
    section: str
    field_key: str
    field_label: str


class RequiredFieldsResponse(BaseModel):
    is_valid: bool
    missing_fields: List[MissingField]
    message: str


# ==================== School Schemas ====================

class SchoolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    jurisdiction_id: str
    code: Optional[str] = Field(None, max_length=50)
    state_code: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)


class SchoolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    state_code: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class SchoolResponse(BaseModel):
    id: str
    jurisdiction_id: str
    name: str
    code: Optional[str] = None
    state_code: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
