"""
Plans API

Endpoints:
- POST /students/{student_id}/plans/{plan_type_code} - Start a DRAFT plan
- GET /students/{student_id}/plans - Student's plans, newest first
- GET /plans/{plan_id} - Plan with schema, field values, goals and services
- PATCH /plans/{plan_id}/fields - Upsert field values
- POST /plans/{plan_id}/finalize - Check required fields and activate
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from myteacher.core.database import get_db
from myteacher.core.exceptions import BusinessRuleError, ResourceNotFoundError
from myteacher.core.logging_config import logger
from myteacher.models.plan import PlanInstance, PlanSchema, PlanStatus, PlanType, PlanTypeCode
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded
from myteacher.modules.auth.permissions import require_permission
from myteacher.schemas.plan import (
    GoalResponse,
    PlanDetailResponse,
    PlanFieldsUpdate,
    PlanFinalizeResponse,
    PlanResponse,
    PlanSchemaResponse,
    PlanTypeResponse,
    ServiceLogResponse,
)
from myteacher.services import plan_service
from myteacher.services.audit_service import AuditLogger

router = APIRouter(tags=["Plans"])


@router.post(
    "/students/{student_id}/plans/{plan_type_code}",
    response_model=PlanResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_plan(
    student_id: str,
    plan_type_code: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Create a DRAFT plan on the newest active schema of the type"""
    require_permission(current_user, "can_create_plans")
    student = await plan_service.get_accessible_student(db, current_user, student_id)

    try:
        code = PlanTypeCode(plan_type_code.upper())
    except ValueError:
        raise ResourceNotFoundError("Plan type", plan_type_code)

    plan_type = (await db.execute(select(PlanType).where(PlanType.code == code))).scalar_one_or_none()
    if plan_type is None:
        raise ResourceNotFoundError("Plan type", plan_type_code)

    schema = (await db.execute(
        select(PlanSchema)
        .where(PlanSchema.plan_type_id == plan_type.id, PlanSchema.is_active.is_(True))
        .order_by(PlanSchema.version.desc())
        .limit(1)
    )).scalar_one_or_none()
    if schema is None:
        raise ResourceNotFoundError("Plan schema", plan_type_code)

    plan = PlanInstance(
        student_id=student.id,
        plan_type_id=plan_type.id,
        schema_id=schema.id,
        status=PlanStatus.DRAFT,
    )
    plan.student = student
    plan.plan_type = plan_type
    plan.schema = schema
    db.add(plan)
    await db.commit()

    logger.info(f"[Plans] {code.value} plan {plan.id} created for student {student.id}")
    return plan


@router.get("/students/{student_id}/plans", response_model=List[PlanResponse])
async def list_student_plans(
    student_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    student = await plan_service.get_accessible_student(db, current_user, student_id)
    result = await db.execute(
        select(PlanInstance)
        .where(PlanInstance.student_id == student.id)
        .order_by(PlanInstance.created_at.desc())
    )
    return result.scalars().all()


@router.get("/plans/{plan_id}", response_model=PlanDetailResponse)
async def get_plan(
    plan_id: str,
    request: Request,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    goals = await plan_service.list_goals(db, plan.id)
    services = await plan_service.list_services(db, plan.id)

    await AuditLogger(db, current_user, request).plan_viewed(plan.id, plan.student_id)
    await db.commit()

    return PlanDetailResponse(
        id=plan.id,
        student_id=plan.student_id,
        plan_type=PlanTypeResponse.model_validate(plan.plan_type),
        schema_id=plan.schema_id,
        start_date=plan.start_date,
        end_date=plan.end_date,
        status=plan.status,
        created_at=plan.created_at,
        schema=PlanSchemaResponse.model_validate(plan.schema),
        field_values=await plan_service.get_field_values(db, plan.id),
        goals=[GoalResponse.model_validate(g) for g in goals],
        services=[ServiceLogResponse.model_validate(s) for s in services],
    )


@router.patch("/plans/{plan_id}/fields")
async def update_plan_fields(
    plan_id: str,
    data: PlanFieldsUpdate,
    request: Request,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    values = await plan_service.upsert_field_values(db, plan, data.fields)
    await AuditLogger(db, current_user, request).plan_updated(plan.id, plan.student_id, sorted(data.fields))
    await db.commit()
    return {"plan_id": plan.id, "field_values": values}


@router.post("/plans/{plan_id}/finalize", response_model=PlanFinalizeResponse)
async def finalize_plan(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Reject when a required schema field is empty; DRAFT plans become ACTIVE"""
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    values = await plan_service.get_field_values(db, plan.id)
    missing = plan_service.missing_required_fields(plan.schema, values)
    if missing:
        raise BusinessRuleError(
            "Required fields are missing",
            code="ERR_API_VALIDATION_FAILED",
            details={"missing_fields": missing},
        )

    if plan.status == PlanStatus.DRAFT:
        plan.status = PlanStatus.ACTIVE
    await db.commit()
    return PlanFinalizeResponse(id=plan.id, status=plan.status)
