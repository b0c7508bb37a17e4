"""
Review Schedules & Compliance Tasks API

Endpoints:
- POST /plans/{plan_id}/review-schedules - Create (manager only)
- GET /plans/{plan_id}/review-schedules - List (filter by status, type)
- GET /review-schedules/dashboard - Overdue and upcoming reviews
- POST /review-schedules/sweep - Run the compliance sweep (admin)
- GET/PATCH/DELETE /review-schedules/{schedule_id}
- POST /review-schedules/{schedule_id}/complete
- GET /schedule-types
- POST/GET /compliance-tasks, GET /compliance-tasks/my-tasks, GET /compliance-tasks/dashboard
- GET/PATCH /compliance-tasks/{task_id}, POST .../complete, POST .../dismiss
- GET /task-types
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from myteacher.core.database import get_db
from myteacher.models.review import (
    ComplianceTaskStatus,
    ComplianceTaskType,
    ReviewScheduleStatus,
    ScheduleType,
)
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_admin, require_onboarded, require_plan_manager
from myteacher.schemas.review import (
    ComplianceTaskCreate,
    ComplianceTaskResponse,
    ComplianceTaskUpdate,
    ReviewDashboardResponse,
    ReviewScheduleComplete,
    ReviewScheduleCreate,
    ReviewScheduleResponse,
    ReviewScheduleUpdate,
    SweepResponse,
    TaskDashboardResponse,
    TaskDismissRequest,
)
from myteacher.services import plan_service
from myteacher.services.audit_service import AuditLogger
from myteacher.services.review_service import review_service, schedule_types, task_types

router = APIRouter(tags=["Reviews"])


# ==================== Review Schedules ====================

@router.post("/plans/{plan_id}/review-schedules", response_model=ReviewScheduleResponse,
             status_code=status.HTTP_201_CREATED)
async def create_review_schedule(
    plan_id: str,
    data: ReviewScheduleCreate,
    request: Request,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    schedule = await review_service.create_schedule(db, plan, current_user, data.model_dump())
    await AuditLogger(db, current_user, request).review_schedule_created(
        schedule.id, plan.student_id, schedule.schedule_type.value
    )
    await db.commit()
    return schedule


@router.get("/plans/{plan_id}/review-schedules", response_model=List[ReviewScheduleResponse])
async def list_review_schedules(
    plan_id: str,
    schedule_status: Optional[ReviewScheduleStatus] = Query(None, alias="status"),
    schedule_type: Optional[ScheduleType] = Query(None, alias="type"),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    return await review_service.list_schedules(db, plan.id, schedule_status, schedule_type)


@router.get("/review-schedules/dashboard", response_model=ReviewDashboardResponse)
async def review_dashboard(
    days: Optional[int] = Query(None, ge=1, le=365),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await review_service.dashboard(db, days)


@router.post("/review-schedules/sweep", response_model=SweepResponse)
async def run_compliance_sweep(
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    counts = await review_service.sweep(db)
    await db.commit()
    return counts


async def get_accessible_schedule(db: AsyncSession, user: AppUser, schedule_id: str):
    schedule = await review_service.get_schedule(db, schedule_id)
    await plan_service.get_accessible_plan(db, user, schedule.plan_instance_id)
    return schedule


@router.get("/review-schedules/{schedule_id}", response_model=ReviewScheduleResponse)
async def get_review_schedule(
    schedule_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await get_accessible_schedule(db, current_user, schedule_id)


@router.patch("/review-schedules/{schedule_id}", response_model=ReviewScheduleResponse)
async def update_review_schedule(
    schedule_id: str,
    data: ReviewScheduleUpdate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    schedule = await get_accessible_schedule(db, current_user, schedule_id)
    await review_service.update_schedule(db, schedule, data.model_dump(exclude_unset=True))
    await db.commit()
    return schedule


@router.post("/review-schedules/{schedule_id}/complete", response_model=ReviewScheduleResponse)
async def complete_review_schedule(
    schedule_id: str,
    data: Optional[ReviewScheduleComplete] = None,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    schedule = await get_accessible_schedule(db, current_user, schedule_id)
    await review_service.complete_schedule(db, schedule, current_user, data.notes if data else None)
    await db.commit()
    return schedule


@router.delete("/review-schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review_schedule(
    schedule_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    schedule = await review_service.get_schedule(db, schedule_id)
    await review_service.delete_schedule(db, schedule)
    await db.commit()


@router.get("/schedule-types")
async def list_schedule_types():
    return schedule_types()


# ==================== Compliance Tasks ====================

@router.post("/compliance-tasks", response_model=ComplianceTaskResponse, status_code=status.HTTP_201_CREATED)
async def create_compliance_task(
    data: ComplianceTaskCreate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    task = await review_service.create_task(db, current_user, data.model_dump())
    await db.commit()
    return task


@router.get("/compliance-tasks", response_model=List[ComplianceTaskResponse])
async def list_compliance_tasks(
    task_status: Optional[ComplianceTaskStatus] = Query(None, alias="status"),
    task_type: Optional[ComplianceTaskType] = Query(None, alias="type"),
    assigned_to: Optional[str] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await review_service.list_tasks(db, task_status, task_type, assigned_to)


@router.get("/compliance-tasks/my-tasks", response_model=List[ComplianceTaskResponse])
async def my_compliance_tasks(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Open and in-progress tasks assigned to the caller"""
    return await review_service.my_tasks(db, current_user)


@router.get("/compliance-tasks/dashboard", response_model=TaskDashboardResponse)
async def compliance_task_dashboard(
    mine: bool = False,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await review_service.task_dashboard(db, current_user if mine else None)


@router.get("/compliance-tasks/{task_id}", response_model=ComplianceTaskResponse)
async def get_compliance_task(
    task_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await review_service.get_task(db, task_id)


@router.patch("/compliance-tasks/{task_id}", response_model=ComplianceTaskResponse)
async def update_compliance_task(
    task_id: str,
    data: ComplianceTaskUpdate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    task = await review_service.get_task(db, task_id)
    await review_service.update_task(db, task, data.model_dump(exclude_unset=True))
    await db.commit()
    return task


@router.post("/compliance-tasks/{task_id}/complete", response_model=ComplianceTaskResponse)
async def complete_compliance_task(
    task_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    task = await review_service.get_task(db, task_id)
    await review_service.complete_task(db, task, current_user)
    await db.commit()
    return task


@router.post("/compliance-tasks/{task_id}/dismiss", response_model=ComplianceTaskResponse)
async def dismiss_compliance_task(
    task_id: str,
    data: Optional[TaskDismissRequest] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    task = await review_service.get_task(db, task_id)
    await review_service.dismiss_task(db, task, current_user, data.reason if data else None)
    await db.commit()
    return task


@router.get("/task-types")
async def list_task_types():
    return task_types()
