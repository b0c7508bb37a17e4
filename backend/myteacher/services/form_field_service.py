"""
Form field service

Field definitions and their options are managed by admins per form type.
Values are stored against a plan (PlanFieldValue) or a student
(StudentFieldValue); each field names the roles allowed to set it.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import (
    ConflictError,
    FormFieldNotFoundError,
    FormFieldOptionNotFoundError,
    SchoolNotFoundError,
    ValidationFailedError,
)
from myteacher.core.logging_config import logger
from myteacher.models.form_field import (
    OPTION_CONTROLS,
    FormFieldDefinition,
    FormFieldOption,
    FormType,
    OptionsEditableBy,
    School,
    StudentFieldValue,
)
from myteacher.models.plan import PlanInstance
from myteacher.models.student import Student
from myteacher.models.user import AppUser, UserRole
from myteacher.services import plan_service

OPTION_EDITORS = {
    OptionsEditableBy.ADMIN_ONLY: {UserRole.ADMIN},
    OptionsEditableBy.TEACHER_ALLOWED: {UserRole.ADMIN, UserRole.TEACHER, UserRole.CASE_MANAGER},
    OptionsEditableBy.NONE: set(),
}


def can_edit_field_value(role: UserRole, value_editable_by: Optional[List[str]]) -> bool:
    return role.value in (value_editable_by or [])


def can_edit_field_options(role: UserRole, options_editable_by: OptionsEditableBy) -> bool:
    return role in OPTION_EDITORS.get(options_editable_by, set())


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, dict)) and not value)


def group_sections(fields: List[FormFieldDefinition]) -> List[Dict[str, Any]]:
    """Fields grouped by section, in section order; fields keep their input order"""
    sections: Dict[str, Dict[str, Any]] = {}
    for field in fields:
        section = sections.setdefault(field.section, {"name": field.section, "order": field.section_order, "fields": []})
        section["fields"].append(field)
    return sorted(sections.values(), key=lambda s: s["order"])


class FormFieldService:
    """Service for form field definitions, values and schools"""

    # ==================== Definitions ====================

    async def list_fields(self, db: AsyncSession, form_type: FormType,
                          include_inactive: bool = False) -> List[FormFieldDefinition]:
        query = select(FormFieldDefinition).where(FormFieldDefinition.form_type == form_type)
        if not include_inactive:
            query = query.where(FormFieldDefinition.is_active.is_(True))
        query = query.order_by(FormFieldDefinition.section_order, FormFieldDefinition.sort_order)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_field_by_key(self, db: AsyncSession, form_type: FormType, field_key: str) -> FormFieldDefinition:
        result = await db.execute(
            select(FormFieldDefinition).where(
                FormFieldDefinition.form_type == form_type,
                FormFieldDefinition.field_key == field_key,
                FormFieldDefinition.is_active.is_(True),
            )
        )
        field = result.scalar_one_or_none()
        if field is None:
            raise FormFieldNotFoundError(field_key)
        return field

    async def get_field(self, db: AsyncSession, field_id: str) -> FormFieldDefinition:
        field = await db.get(FormFieldDefinition, field_id)
        if field is None:
            raise FormFieldNotFoundError(field_id)
        return field

    async def create_field(self, db: AsyncSession, data: Dict[str, Any]) -> FormFieldDefinition:
        result = await db.execute(
            select(FormFieldDefinition.id).where(
                FormFieldDefinition.form_type == data["form_type"],
                FormFieldDefinition.field_key == data["field_key"],
            )
        )
        if result.scalar_one_or_none():
            raise ConflictError(
                f"Field '{data['field_key']}' already exists on {data['form_type'].value}",
                code="ERR_FORM_FIELD_EXISTS",
            )
        data["value_editable_by"] = [role.value for role in data.get("value_editable_by") or []]
        field = FormFieldDefinition(**data)
        field.options = []
        db.add(field)
        await db.flush()
        logger.info(f"[Forms] Field {field.form_type.value}.{field.field_key} created")
        return field

    async def update_field(self, db: AsyncSession, field: FormFieldDefinition,
                           changes: Dict[str, Any]) -> FormFieldDefinition:
        if "value_editable_by" in changes and changes["value_editable_by"] is not None:
            changes["value_editable_by"] = [role.value for role in changes["value_editable_by"]]
        for key, value in changes.items():
            setattr(field, key, value)
        await db.flush()
        return field

    async def deactivate_field(self, db: AsyncSession, field: FormFieldDefinition) -> None:
        field.is_active = False
        await db.flush()
        logger.info(f"[Forms] Field {field.form_type.value}.{field.field_key} deactivated")

    # ==================== Options ====================

    async def add_option(self, db: AsyncSession, field: FormFieldDefinition, data: Dict[str, Any]) -> FormFieldOption:
        if field.control_type not in OPTION_CONTROLS:
            raise ValidationFailedError(
                f"Options can only be added to {' or '.join(c.value for c in OPTION_CONTROLS)} fields",
                field="control_type",
            )
        option = FormFieldOption(**data)
        field.options.append(option)
        await db.flush()
        return option

    async def get_option(self, db: AsyncSession, option_id: str) -> FormFieldOption:
        option = await db.get(FormFieldOption, option_id)
        if option is None:
            raise FormFieldOptionNotFoundError(option_id)
        return option

    async def update_option(self, db: AsyncSession, option: FormFieldOption,
                            changes: Dict[str, Any]) -> FormFieldOption:
        for key, value in changes.items():
            setattr(option, key, value)
        await db.flush()
        return option

    async def deactivate_option(self, db: AsyncSession, option: FormFieldOption) -> None:
        option.is_active = False
        await db.flush()

    # ==================== Values ====================

    async def student_values(self, db: AsyncSession, student_id: str) -> Dict[str, Any]:
        result = await db.execute(select(StudentFieldValue).where(StudentFieldValue.student_id == student_id))
        return {fv.field_key: fv.value for fv in result.scalars().all()}

    async def values_for(self, db: AsyncSession, plan: Optional[PlanInstance],
                         student: Optional[Student]) -> Dict[str, Any]:
        if plan is not None:
            return await plan_service.get_field_values(db, plan.id)
        return await self.student_values(db, student.id)

    async def save_values(
        self,
        db: AsyncSession,
        user: AppUser,
        form_type: FormType,
        values: List[Dict[str, Any]],
        plan: Optional[PlanInstance] = None,
        student: Optional[Student] = None,
    ) -> Tuple[int, List[Dict[str, str]]]:
        """
        Save each value the caller may edit; returns (saved, errors).

        A value is stored on the plan when one is given, otherwise on the
        student. Unknown or forbidden fields are reported per field and do not
        stop the others.
        """
        definitions = {f.field_key: f for f in await self.list_fields(db, form_type)}
        accepted: Dict[str, Any] = {}
        errors: List[Dict[str, str]] = []
        for item in values:
            field = definitions.get(item["field_key"])
            if field is None:
                errors.append({"field_key": item["field_key"], "error": "Field definition not found"})
            elif not can_edit_field_value(user.role, field.value_editable_by):
                errors.append({
                    "field_key": item["field_key"],
                    "error": f"Permission denied: {user.role.value} cannot edit this field",
                })
            else:
                accepted[item["field_key"]] = item.get("value")

        if accepted:
            if plan is not None:
                await plan_service.upsert_field_values(db, plan, accepted)
            else:
                await self._upsert_student_values(db, student, user, accepted)
        if errors:
            logger.warning(f"[Forms] {len(errors)} of {len(values)} {form_type.value} values rejected for {user.id}")
        return len(accepted), errors

    async def _upsert_student_values(self, db: AsyncSession, student: Student, user: AppUser,
                                     values: Dict[str, Any]) -> None:
        result = await db.execute(select(StudentFieldValue).where(StudentFieldValue.student_id == student.id))
        existing = {fv.field_key: fv for fv in result.scalars().all()}
        for key, value in values.items():
            row = existing.get(key)
            if row is None:
                db.add(StudentFieldValue(student_id=student.id, field_key=key, value=value, created_by_id=user.id))
            else:
                row.value = value
        await db.flush()

    async def missing_required(self, db: AsyncSession, form_type: FormType, plan: Optional[PlanInstance],
                               student: Optional[Student]) -> List[Dict[str, str]]:
        values = await self.values_for(db, plan, student)
        return [
            {"section": f.section, "field_key": f.field_key, "field_label": f.field_label}
            for f in await self.list_fields(db, form_type)
            if f.is_required and is_blank(values.get(f.field_key))
        ]

    # ==================== Schools ====================

    async def list_schools(self, db: AsyncSession, include_inactive: bool = False,
                           jurisdiction_id: Optional[str] = None) -> List[School]:
        query = select(School)
        if not include_inactive:
            query = query.where(School.is_active.is_(True))
        if jurisdiction_id:
            query = query.where(School.jurisdiction_id == jurisdiction_id)
        result = await db.execute(query.order_by(School.name))
        return list(result.scalars().all())

    async def get_school(self, db: AsyncSession, school_id: str) -> School:
        school = await db.get(School, school_id)
        if school is None:
            raise SchoolNotFoundError(school_id)
        return school

    async def _check_school_name(self, db: AsyncSession, jurisdiction_id: str, name: str,
                                 exclude_id: Optional[str] = None) -> None:
        query = select(School.id).where(School.jurisdiction_id == jurisdiction_id, School.name == name)
        if exclude_id:
            query = query.where(School.id != exclude_id)
        if (await db.execute(query)).scalar_one_or_none():
            raise ConflictError(f"School '{name}' already exists in this district", code="ERR_SCHOOL_EXISTS")

    async def create_school(self, db: AsyncSession, data: Dict[str, Any]) -> School:
        await self._check_school_name(db, data["jurisdiction_id"], data["name"])
        school = School(**data)
        db.add(school)
        await db.flush()
        logger.info(f"[Forms] School {school.name} created")
        return school

    async def update_school(self, db: AsyncSession, school: School, changes: Dict[str, Any]) -> School:
        if changes.get("name") and changes["name"] != school.name:
            await self._check_school_name(db, school.jurisdiction_id, changes["name"], exclude_id=school.id)
        for key, value in changes.items():
            setattr(school, key, value)
        await db.flush()
        return school


form_field_service = FormFieldService()
