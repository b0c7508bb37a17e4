"""
Service Logs API

Endpoints:
- POST /plans/{plan_id}/services - Log delivered minutes
- GET /plans/{plan_id}/services - Logs with minute totals overall and per type
- PATCH/DELETE /services/{service_id}
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from collections import defaultdict

from myteacher.core.database import get_db
from myteacher.core.exceptions import ResourceNotFoundError
from myteacher.models.service_log import ServiceLog
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded
from myteacher.schemas.plan import (
    ServiceLogCreate,
    ServiceLogListResponse,
    ServiceLogResponse,
    ServiceLogSummary,
    ServiceLogUpdate,
)
from myteacher.services import plan_service

router = APIRouter(tags=["Service Logs"])


async def get_accessible_service(db: AsyncSession, user: AppUser, service_id: str) -> ServiceLog:
    entry = await db.get(ServiceLog, service_id)
    if entry is None:
        raise ResourceNotFoundError("Service log", service_id)
    await plan_service.get_accessible_plan(db, user, entry.plan_instance_id, write=True)
    return entry


@router.post("/plans/{plan_id}/services", response_model=ServiceLogResponse, status_code=status.HTTP_201_CREATED)
async def create_service_log(
    plan_id: str,
    data: ServiceLogCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    entry = ServiceLog(plan_instance_id=plan.id, provider_id=current_user.id, **data.model_dump())
    db.add(entry)
    await db.commit()
    return entry


@router.get("/plans/{plan_id}/services", response_model=ServiceLogListResponse)
async def list_service_logs(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    entries = await plan_service.list_services(db, plan.id)

    by_type = defaultdict(int)
    for entry in entries:
        by_type[entry.service_type.value] += entry.minutes

    return ServiceLogListResponse(
        services=[ServiceLogResponse.model_validate(e) for e in entries],
        summary=ServiceLogSummary(total_minutes=sum(by_type.values()), by_type=dict(by_type)),
    )


@router.patch("/services/{service_id}", response_model=ServiceLogResponse)
async def update_service_log(
    service_id: str,
    data: ServiceLogUpdate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    entry = await get_accessible_service(db, current_user, service_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(entry, key, value)
    await db.commit()
    return entry


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service_log(
    service_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    entry = await get_accessible_service(db, current_user, service_id)
    await db.delete(entry)
    await db.commit()
