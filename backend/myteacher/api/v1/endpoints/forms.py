"""
Form Fields API

Endpoints:
- GET /forms/fields - Active fields of a form type, grouped by section
- GET /forms/fields/{field_key} - One field with the caller's edit permissions
- POST /forms/values - Save field values on a plan or a student
- GET /forms/values - Stored values of a plan or a student
- POST /forms/validate-required - Required fields still blank
- GET /schools - Active schools
- POST /admin/forms/fields - Create a field (admin)
- PATCH /admin/forms/fields/{field_id} - Update a field (admin)
- DELETE /admin/forms/fields/{field_id} - Deactivate a field (admin)
- POST /admin/forms/fields/{field_id}/options - Add a dropdown or radio option (admin)
- PATCH /admin/forms/options/{option_id} - Update an option (admin)
- DELETE /admin/forms/options/{option_id} - Deactivate an option (admin)
- GET /admin/schools, POST /admin/schools - All schools / create (admin)
- PATCH /admin/schools/{school_id}, DELETE /admin/schools/{school_id} - Update / deactivate (admin)
"""

from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.database import get_db
from myteacher.core.exceptions import BusinessRuleError, ResourceNotFoundError, ValidationFailedError
from myteacher.models.form_field import FormFieldDefinition, FormType
from myteacher.models.plan import PlanInstance
from myteacher.models.student import Student
from myteacher.models.user import AppUser, Jurisdiction
from myteacher.modules.auth.dependencies import require_admin, require_onboarded
from myteacher.schemas.form_field import (
    FieldPermissions,
    FieldValueInput,
    FieldValuesResponse,
    FieldValuesSave,
    FieldValuesSaveResponse,
    FormFieldCreate,
    FormFieldDetailResponse,
    FormFieldOptionCreate,
    FormFieldOptionResponse,
    FormFieldOptionUpdate,
    FormFieldResponse,
    FormFieldsResponse,
    FormFieldUpdate,
    FormSection,
    MissingField,
    RequiredFieldsCheck,
    RequiredFieldsResponse,
    SchoolCreate,
    SchoolResponse,
    SchoolUpdate,
)
from myteacher.services import plan_service
from myteacher.services.form_field_service import (
    can_edit_field_options,
    can_edit_field_value,
    form_field_service,
    group_sections,
)

router = APIRouter(tags=["Form Fields"])


def field_response(field: FormFieldDefinition) -> FormFieldResponse:
    response = FormFieldResponse.model_validate(field)
    response.options = [FormFieldOptionResponse.model_validate(o) for o in field.options if o.is_active]
    return response


async def resolve_target(
    db: AsyncSession,
    user: AppUser,
    plan_id: Optional[str],
    student_id: Optional[str],
    write: bool = False,
) -> Tuple[Optional[PlanInstance], Optional[Student]]:
    """Plan takes precedence over student; one of them is required"""
    if plan_id:
        return await plan_service.get_accessible_plan(db, user, plan_id, write=write), None
    if student_id:
        return None, await plan_service.get_accessible_student(db, user, student_id)
    raise ValidationFailedError("Either plan_id or student_id is required", field="plan_id")


# ==================== Fields ====================

@router.get("/forms/fields", response_model=FormFieldsResponse)
async def list_form_fields(
    form_type: FormType = Query(FormType.IEP),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    fields = await form_field_service.list_fields(db, form_type)
    return FormFieldsResponse(
        form_type=form_type,
        fields=[field_response(f) for f in fields],
        sections=[
            FormSection(name=s["name"], order=s["order"], fields=[field_response(f) for f in s["fields"]])
            for s in group_sections(fields)
        ],
        total_fields=len(fields),
    )


@router.get("/forms/fields/{field_key}", response_model=FormFieldDetailResponse)
async def get_form_field(
    field_key: str,
    form_type: FormType = Query(FormType.IEP),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    field = await form_field_service.get_field_by_key(db, form_type, field_key)
    return FormFieldDetailResponse(
        field=field_response(field),
        permissions=FieldPermissions(
            can_edit_value=can_edit_field_value(current_user.role, field.value_editable_by),
            can_edit_options=can_edit_field_options(current_user.role, field.options_editable_by),
        ),
    )


# ==================== Values ====================

@router.post("/forms/values", response_model=FieldValuesSaveResponse)
async def save_form_values(
    data: FieldValuesSave,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Saves what the caller may edit; rejected only when every value is refused"""
    plan, student = await resolve_target(db, current_user, data.plan_id, data.student_id, write=True)
    saved, errors = await form_field_service.save_values(
        db, current_user, data.form_type, [v.model_dump() for v in data.values], plan=plan, student=student
    )
    if not saved:
        raise BusinessRuleError(
            "None of the submitted fields could be saved",
            code="ERR_FORM_VALUES_REJECTED",
            details={"errors": errors},
            status_code=403,
        )
    await db.commit()
    return FieldValuesSaveResponse(saved=saved, errors=errors)


@router.get("/forms/values", response_model=FieldValuesResponse)
async def get_form_values(
    plan_id: Optional[str] = None,
    student_id: Optional[str] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan, student = await resolve_target(db, current_user, plan_id, student_id)
    values = await form_field_service.values_for(db, plan, student)
    return FieldValuesResponse(values=[FieldValueInput(field_key=k, value=v) for k, v in values.items()])


@router.post("/forms/validate-required", response_model=RequiredFieldsResponse)
async def validate_required_fields(
    data: RequiredFieldsCheck,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan, student = await resolve_target(db, current_user, data.plan_id, data.student_id)
    missing = await form_field_service.missing_required(db, data.form_type, plan, student)
    return RequiredFieldsResponse(
        is_valid=not missing,
        missing_fields=[MissingField(**m) for m in missing],
        message=f"Missing {len(missing)} required field(s)" if missing else "All required fields are complete",
    )


@router.get("/schools", response_model=List[SchoolResponse])
async def list_schools(
    jurisdiction_id: Optional[str] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await form_field_service.list_schools(db, jurisdiction_id=jurisdiction_id)


# ==================== Admin: Fields and Options ====================

@router.post("/admin/forms/fields", response_model=FormFieldResponse, status_code=status.HTTP_201_CREATED)
async def create_form_field(
    data: FormFieldCreate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    field = await form_field_service.create_field(db, data.model_dump())
    await db.commit()
    return field_response(field)


@router.patch("/admin/forms/fields/{field_id}", response_model=FormFieldResponse)
async def update_form_field(
    field_id: str,
    data: FormFieldUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    field = await form_field_service.get_field(db, field_id)
    field = await form_field_service.update_field(db, field, data.model_dump(exclude_unset=True))
    await db.commit()
    return field_response(field)


@router.delete("/admin/forms/fields/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form_field(
    field_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    field = await form_field_service.get_field(db, field_id)
    await form_field_service.deactivate_field(db, field)
    await db.commit()


@router.post("/admin/forms/fields/{field_id}/options", response_model=FormFieldOptionResponse,
             status_code=status.HTTP_201_CREATED)
async def add_form_field_option(
    field_id: str,
    data: FormFieldOptionCreate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    field = await form_field_service.get_field(db, field_id)
    option = await form_field_service.add_option(db, field, data.model_dump())
    await db.commit()
    return option


@router.patch("/admin/forms/options/{option_id}", response_model=FormFieldOptionResponse)
async def update_form_field_option(
    option_id: str,
    data: FormFieldOptionUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    option = await form_field_service.get_option(db, option_id)
    option = await form_field_service.update_option(db, option, data.model_dump(exclude_unset=True))
    await db.commit()
    return option


@router.delete("/admin/forms/options/{option_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_form_field_option(
    option_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    option = await form_field_service.get_option(db, option_id)
    await form_field_service.deactivate_option(db, option)
    await db.commit()


# ==================== Admin: Schools ====================

@router.get("/admin/schools", response_model=List[SchoolResponse])
async def list_all_schools(
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await form_field_service.list_schools(db, include_inactive=True)


@router.post("/admin/schools", response_model=SchoolResponse, status_code=status.HTTP_201_CREATED)
async def create_school(
    data: SchoolCreate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if await db.get(Jurisdiction, data.jurisdiction_id) is None:
        raise ResourceNotFoundError("Jurisdiction", data.jurisdiction_id)
    school = await form_field_service.create_school(db, data.model_dump())
    await db.commit()
    return school


@router.patch("/admin/schools/{school_id}", response_model=SchoolResponse)
async def update_school(
    school_id: str,
    data: SchoolUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    school = await form_field_service.get_school(db, school_id)
    school = await form_field_service.update_school(db, school, data.model_dump(exclude_unset=True))
    await db.commit()
    return school


@router.delete("/admin/schools/{school_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_school(
    school_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    school = await form_field_service.get_school(db, school_id)
    await form_field_service.update_school(db, school, {"is_active": False})
    await db.commit()
