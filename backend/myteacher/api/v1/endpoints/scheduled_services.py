"""
Scheduled Services API

Endpoints:
- POST /plans/{plan_id}/scheduled-services - Expected weekly minutes (manager only)
- GET /plans/{plan_id}/scheduled-services - The plan's schedule, or null
- PATCH /scheduled-services/{scheduled_plan_id} - Change status or replace items (manager only)
- GET /plans/{plan_id}/service-variance?start=&end= - Weekly expected vs delivered minutes
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.database import get_db
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded, require_plan_manager
from myteacher.schemas.scheduled_service import (
    ScheduledServicePlanCreate,
    ScheduledServicePlanResponse,
    ScheduledServicePlanUpdate,
    ServiceVarianceResponse,
)
from myteacher.services import plan_service
from myteacher.services.service_schedule_service import service_schedule_service

router = APIRouter(tags=["Scheduled Services"])


@router.post("/plans/{plan_id}/scheduled-services", response_model=ScheduledServicePlanResponse,
             status_code=status.HTTP_201_CREATED)
async def create_scheduled_services(
    plan_id: str,
    data: ScheduledServicePlanCreate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    scheduled = await service_schedule_service.create(
        db, plan, current_user, [item.model_dump() for item in data.items]
    )
    await db.commit()
    return scheduled


@router.get("/plans/{plan_id}/scheduled-services", response_model=Optional[ScheduledServicePlanResponse])
async def get_scheduled_services(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    return await service_schedule_service.get_for_plan(db, plan.id)


@router.patch("/scheduled-services/{scheduled_plan_id}", response_model=ScheduledServicePlanResponse)
async def update_scheduled_services(
    scheduled_plan_id: str,
    data: ScheduledServicePlanUpdate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    scheduled = await service_schedule_service.get(db, scheduled_plan_id)
    await plan_service.get_accessible_plan(db, current_user, scheduled.plan_instance_id, write=True)
    changes = data.model_dump(exclude_unset=True)
    if data.items is not None:
        changes["items"] = [item.model_dump() for item in data.items]
    scheduled = await service_schedule_service.update(db, scheduled, current_user, changes)
    await db.commit()
    return scheduled


@router.get("/plans/{plan_id}/service-variance", response_model=ServiceVarianceResponse)
async def get_service_variance(
    plan_id: str,
    start: date = Query(..., description="YYYY-MM-DD"),
    end: date = Query(..., description="YYYY-MM-DD"),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    return await service_schedule_service.variance(db, plan.id, start, end)
