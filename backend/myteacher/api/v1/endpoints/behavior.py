"""
Behavior API - targets and observed events on behavior plans

Endpoints:
- GET /plans/{plan_id}/behavior-targets - Active targets with their latest events
- POST /plans/{plan_id}/behavior-targets - Define a target
- PATCH /behavior-targets/{target_id} - Update a target
- DELETE /behavior-targets/{target_id} - Deactivate a target
- POST /behavior-targets/{target_id}/events - Record an event
- GET /behavior-targets/{target_id}/events - Events with totals, optionally between two dates
- DELETE /behavior-events/{event_id}
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.database import get_db
from myteacher.core.exceptions import BehaviorEventNotFoundError, BehaviorTargetNotFoundError
from myteacher.models.behavior import BehaviorEvent, BehaviorTarget
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded
from myteacher.schemas import to_naive_utc
from myteacher.schemas.behavior import (
    BehaviorEventCreate,
    BehaviorEventListResponse,
    BehaviorEventResponse,
    BehaviorEventSummary,
    BehaviorTargetCreate,
    BehaviorTargetResponse,
    BehaviorTargetUpdate,
    BehaviorTargetWithEvents,
)
from myteacher.services import plan_service
from myteacher.services.behavior_service import behavior_service, summarize_events

router = APIRouter(tags=["Behavior"])

RECENT_EVENTS = 5


async def get_accessible_target(db: AsyncSession, user: AppUser, target_id: str,
                                write: bool = False) -> BehaviorTarget:
    target = await db.get(BehaviorTarget, target_id)
    if target is None:
        raise BehaviorTargetNotFoundError(target_id)
    await plan_service.get_accessible_plan(db, user, target.plan_instance_id, write=write)
    return target


@router.get("/plans/{plan_id}/behavior-targets", response_model=List[BehaviorTargetWithEvents])
async def list_behavior_targets(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    targets = await behavior_service.list_targets(db, plan.id)
    return [
        BehaviorTargetWithEvents(
            **BehaviorTargetResponse.model_validate(t).model_dump(),
            recent_events=[BehaviorEventResponse.model_validate(e) for e in t.events[:RECENT_EVENTS]],
        )
        for t in targets
    ]


@router.post("/plans/{plan_id}/behavior-targets", response_model=BehaviorTargetResponse,
             status_code=status.HTTP_201_CREATED)
async def create_behavior_target(
    plan_id: str,
    data: BehaviorTargetCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    target = await behavior_service.create_target(db, plan, data.model_dump())
    await db.commit()
    return target


@router.patch("/behavior-targets/{target_id}", response_model=BehaviorTargetResponse)
async def update_behavior_target(
    target_id: str,
    data: BehaviorTargetUpdate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    target = await get_accessible_target(db, current_user, target_id, write=True)
    target = await behavior_service.update_target(db, target, data.model_dump(exclude_unset=True))
    await db.commit()
    return target


@router.delete("/behavior-targets/{target_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_behavior_target(
    target_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    target = await get_accessible_target(db, current_user, target_id, write=True)
    await behavior_service.deactivate_target(db, target)
    await db.commit()


@router.post("/behavior-targets/{target_id}/events", response_model=BehaviorEventResponse,
             status_code=status.HTTP_201_CREATED)
async def record_behavior_event(
    target_id: str,
    data: BehaviorEventCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    target = await get_accessible_target(db, current_user, target_id, write=True)
    event = await behavior_service.record_event(db, target, current_user, data.model_dump())
    await db.commit()
    return event


@router.get("/behavior-targets/{target_id}/events", response_model=BehaviorEventListResponse)
async def list_behavior_events(
    target_id: str,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    target = await get_accessible_target(db, current_user, target_id)
    events = await behavior_service.list_events(
        db, target,
        date_from=to_naive_utc(date_from) if date_from else None,
        date_to=to_naive_utc(date_to) if date_to else None,
    )
    return BehaviorEventListResponse(
        events=[BehaviorEventResponse.model_validate(e) for e in events],
        summary=BehaviorEventSummary(**summarize_events(events)),
        measurement_type=target.measurement_type,
    )


@router.delete("/behavior-events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_behavior_event(
    event_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    event = await db.get(BehaviorEvent, event_id)
    if event is None:
        raise BehaviorEventNotFoundError(event_id)
    await get_accessible_target(db, current_user, event.target_id, write=True)
    await db.delete(event)
    await db.commit()
