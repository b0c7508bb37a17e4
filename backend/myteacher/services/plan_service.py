"""
Plan Service - loading plans with access checks and building version snapshots
"""

from datetime import datetime, date
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import PlanNotFoundError, StudentNotFoundError
from myteacher.modules.auth.permissions import can_access_student, require_permission
from myteacher.models.goal import Goal
from myteacher.models.plan import PlanInstance, PlanFieldValue, PlanSchema
from myteacher.models.service_log import ServiceLog
from myteacher.models.student import Student
from myteacher.models.user import AppUser


def iso(value: Optional[Any]) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


async def get_accessible_student(db: AsyncSession, user: AppUser, student_id: str) -> Student:
    """Student the user may read; inaccessible students look like missing ones"""
    student = await db.get(Student, student_id)
    if student is None or not await can_access_student(db, user, student):
        raise StudentNotFoundError(student_id)
    return student


async def get_accessible_plan(db: AsyncSession, user: AppUser, plan_id: str,
                              write: bool = False) -> PlanInstance:
    plan = await db.get(PlanInstance, plan_id)
    if plan is None or not await can_access_student(db, user, plan.student):
        raise PlanNotFoundError(plan_id)
    if write:
        require_permission(user, "can_update_plans")
    return plan


async def get_field_values(db: AsyncSession, plan_id: str) -> Dict[str, Any]:
    result = await db.execute(select(PlanFieldValue).where(PlanFieldValue.plan_instance_id == plan_id))
    return {fv.field_key: fv.value for fv in result.scalars().all()}


async def upsert_field_values(db: AsyncSession, plan: PlanInstance, values: Dict[str, Any]) -> Dict[str, Any]:
    result = await db.execute(select(PlanFieldValue).where(PlanFieldValue.plan_instance_id == plan.id))
    existing = {fv.field_key: fv for fv in result.scalars().all()}
    for key, value in values.items():
        row = existing.get(key)
        if row is None:
            db.add(PlanFieldValue(plan_instance_id=plan.id, field_key=key, value=value))
        else:
            row.value = value
    await db.flush()
    return await get_field_values(db, plan.id)


def schema_fields(schema: PlanSchema) -> List[Dict[str, Any]]:
    sections = (schema.fields or {}).get("sections") or []
    return [f for section in sections for f in section.get("fields", [])]


def missing_required_fields(schema: PlanSchema, values: Dict[str, Any]) -> List[str]:
    missing = []
    for field in schema_fields(schema):
        if not field.get("required"):
            continue
        value = values.get(field["key"])
        if value is None or (isinstance(value, (str, list, dict)) and not value):
            missing.append(field["key"])
    return missing


async def list_goals(db: AsyncSession, plan_id: str) -> List[Goal]:
    result = await db.execute(
        select(Goal).where(Goal.plan_instance_id == plan_id).order_by(Goal.goal_code)
    )
    return list(result.scalars().all())


async def list_services(db: AsyncSession, plan_id: str) -> List[ServiceLog]:
    result = await db.execute(
        select(ServiceLog).where(ServiceLog.plan_instance_id == plan_id).order_by(ServiceLog.date.desc())
    )
    return list(result.scalars().all())


async def build_snapshot(db: AsyncSession, plan: PlanInstance, version_number: int) -> Dict[str, Any]:
    """Frozen JSON copy of everything a plan document shows"""
    student = plan.student
    goals = await list_goals(db, plan.id)
    services = await list_services(db, plan.id)

    return {
        "plan": {
            "id": plan.id,
            "status": plan.status.value,
            "plan_type_code": plan.plan_type.code.value,
            "plan_type_name": plan.plan_type.name,
            "start_date": iso(plan.start_date),
            "end_date": iso(plan.end_date),
        },
        "student": {
            "id": student.id,
            "record_id": student.record_id,
            "first_name": student.first_name,
            "last_name": student.last_name,
            "date_of_birth": iso(student.date_of_birth),
            "grade": student.grade,
            "school_name": student.school_name,
        },
        "schema": {
            "id": plan.schema.id,
            "name": plan.schema.name,
            "version": plan.schema.version,
            "fields": plan.schema.fields,
        },
        "field_values": await get_field_values(db, plan.id),
        "goals": [
            {
                "goal_code": g.goal_code,
                "area": g.area.value,
                "annual_goal_text": g.annual_goal_text,
                "baseline": g.baseline_json,
                "short_term_objectives": g.short_term_objectives or [],
                "progress_schedule": g.progress_schedule,
                "target_date": iso(g.target_date),
            }
            for g in goals if g.is_active
        ],
        "services": [
            {
                "date": iso(s.date),
                "minutes": s.minutes,
                "service_type": s.service_type.value,
                "setting": s.setting.value,
                "notes": s.notes,
            }
            for s in services
        ],
        "version_number": version_number,
        "finalized_at": datetime.utcnow().isoformat(),
    }

