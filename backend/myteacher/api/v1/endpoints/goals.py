"""
Goals API - goals, progress records and work samples

Endpoints:
- POST/GET /plans/{plan_id}/goals - Create / list goals
- GET/PATCH /goals/{goal_id} - Read / update a goal
- POST /goals/{goal_id}/progress/quick - Quick-select progress entry
- POST /goals/{goal_id}/progress/dictation - Dictated progress entry
- GET /goals/{goal_id}/progress - Progress history, newest first
- POST/GET /goals/{goal_id}/work-samples - Upload / list work samples
- PATCH/DELETE /work-samples/{sample_id} - Rate or remove a work sample
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import List, Optional

from myteacher.core.config import settings
from myteacher.core.database import get_db
from myteacher.core.exceptions import ConflictError, ResourceNotFoundError
from myteacher.models.goal import Goal, GoalProgress, WorkSample, WorkSampleRating
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded
from myteacher.schemas.plan import (
    DictationProgressCreate,
    GoalCreate,
    GoalResponse,
    GoalUpdate,
    ProgressResponse,
    QuickProgressCreate,
    WorkSampleResponse,
    WorkSampleUpdate,
)
from myteacher.services import plan_service
from myteacher.services.storage_service import get_upload_storage

router = APIRouter(tags=["Goals"])

RECENT_PROGRESS_LIMIT = 10


async def get_accessible_goal(db: AsyncSession, user: AppUser, goal_id: str, write: bool = False) -> Goal:
    goal = await db.get(Goal, goal_id)
    if goal is None:
        raise ResourceNotFoundError("Goal", goal_id, code="ERR_API_GOAL_NOT_FOUND")
    await plan_service.get_accessible_plan(db, user, goal.plan_instance_id, write=write)
    return goal


async def recent_progress(db: AsyncSession, goal_id: str, limit: Optional[int] = None) -> List[GoalProgress]:
    query = (
        select(GoalProgress)
        .where(GoalProgress.goal_id == goal_id)
        .order_by(GoalProgress.date.desc(), GoalProgress.created_at.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def goal_response(db: AsyncSession, goal: Goal) -> GoalResponse:
    response = GoalResponse.model_validate(goal)
    response.progress_records = [
        ProgressResponse.model_validate(p) for p in await recent_progress(db, goal.id, RECENT_PROGRESS_LIMIT)
    ]
    return response


# ==================== Goals ====================

@router.post("/plans/{plan_id}/goals", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(
    plan_id: str,
    data: GoalCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    existing = await db.execute(
        select(Goal.id).where(Goal.plan_instance_id == plan.id, Goal.goal_code == data.goal_code)
    )
    if existing.first():
        raise ConflictError(f"Goal code {data.goal_code} already exists on this plan",
                            details={"goal_code": data.goal_code})

    values = data.model_dump()
    if data.progress_schedule:
        values["progress_schedule"] = data.progress_schedule.value
    goal = Goal(plan_instance_id=plan.id, **values)
    db.add(goal)
    await db.commit()
    return GoalResponse.model_validate(goal)


@router.get("/plans/{plan_id}/goals", response_model=List[GoalResponse])
async def list_goals(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Goals ordered by code, each with its 10 most recent progress records"""
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    return [await goal_response(db, goal) for goal in await plan_service.list_goals(db, plan.id)]


@router.get("/goals/{goal_id}", response_model=GoalResponse)
async def get_goal(
    goal_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    goal = await get_accessible_goal(db, current_user, goal_id)
    return await goal_response(db, goal)


@router.patch("/goals/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: str,
    data: GoalUpdate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    goal = await get_accessible_goal(db, current_user, goal_id, write=True)
    values = data.model_dump(exclude_unset=True)
    if values.get("progress_schedule") is not None:
        values["progress_schedule"] = data.progress_schedule.value
    for key, value in values.items():
        setattr(goal, key, value)
    await db.commit()
    return await goal_response(db, goal)


# ==================== Progress ====================

@router.post("/goals/{goal_id}/progress/quick", response_model=ProgressResponse,
             status_code=status.HTTP_201_CREATED)
async def record_quick_progress(
    goal_id: str,
    data: QuickProgressCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    goal = await get_accessible_goal(db, current_user, goal_id, write=True)
    progress = GoalProgress(
        goal_id=goal.id,
        date=data.date or datetime.utcnow(),
        quick_select=data.quick_select,
        comment=data.comment,
        is_dictated=False,
        recorded_by_id=current_user.id,
    )
    db.add(progress)
    await db.commit()
    return progress


@router.post("/goals/{goal_id}/progress/dictation", response_model=ProgressResponse,
             status_code=status.HTTP_201_CREATED)
async def record_dictated_progress(
    goal_id: str,
    data: DictationProgressCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    goal = await get_accessible_goal(db, current_user, goal_id, write=True)
    progress = GoalProgress(
        goal_id=goal.id,
        date=data.date or datetime.utcnow(),
        quick_select=data.quick_select,
        comment=data.comment,
        measure_json=data.measure_json,
        is_dictated=True,
        recorded_by_id=current_user.id,
    )
    db.add(progress)
    await db.commit()
    return progress


@router.get("/goals/{goal_id}/progress", response_model=List[ProgressResponse])
async def list_progress(
    goal_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    goal = await get_accessible_goal(db, current_user, goal_id)
    return await recent_progress(db, goal.id)


# ==================== Work Samples ====================

@router.post("/goals/{goal_id}/work-samples", response_model=WorkSampleResponse,
             status_code=status.HTTP_201_CREATED)
async def upload_work_sample(
    goal_id: str,
    file: UploadFile = File(..., description="Student work sample"),
    rating: Optional[WorkSampleRating] = Form(None),
    comment: Optional[str] = Form(None),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    goal = await get_accessible_goal(db, current_user, goal_id, write=True)
    content = await file.read()
    stored = await get_upload_storage().save(
        f"work-samples/{goal.id}", file.filename or "", content, settings.WORK_SAMPLE_EXTENSIONS
    )

    sample = WorkSample(
        goal_id=goal.id,
        storage_key=stored["storage_key"],
        file_name=stored["file_name"],
        file_type=stored["mime_type"],
        file_size=stored["file_size"],
        rating=rating,
        comment=comment,
        uploaded_by_id=current_user.id,
    )
    db.add(sample)
    await db.commit()
    return sample


@router.get("/goals/{goal_id}/work-samples", response_model=List[WorkSampleResponse])
async def list_work_samples(
    goal_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    goal = await get_accessible_goal(db, current_user, goal_id)
    result = await db.execute(
        select(WorkSample).where(WorkSample.goal_id == goal.id).order_by(WorkSample.captured_at.desc())
    )
    return result.scalars().all()


async def get_accessible_sample(db: AsyncSession, user: AppUser, sample_id: str) -> WorkSample:
    sample = await db.get(WorkSample, sample_id)
    if sample is None:
        raise ResourceNotFoundError("Work sample", sample_id)
    await get_accessible_goal(db, user, sample.goal_id, write=True)
    return sample


@router.patch("/work-samples/{sample_id}", response_model=WorkSampleResponse)
async def update_work_sample(
    sample_id: str,
    data: WorkSampleUpdate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    sample = await get_accessible_sample(db, current_user, sample_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(sample, key, value)
    await db.commit()
    return sample


@router.delete("/work-samples/{sample_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_work_sample(
    sample_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Remove the row and the stored file"""
    sample = await get_accessible_sample(db, current_user, sample_id)
    storage_key = sample.storage_key
    await db.delete(sample)
    await db.commit()
    await get_upload_storage().delete(storage_key)
