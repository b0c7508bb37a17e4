"""
Meetings API - scheduling, evidence and the compliance workflow

Endpoints:
- GET /meetings/student/{student_id} - Student's meetings (filter by plan type, status)
- GET /meetings/{meeting_id} - Meeting with evidence and an enforcement preview
- POST /meetings - Schedule a meeting (alerts the student's teacher)
- PATCH /meetings/{meeting_id}
- POST /meetings/{meeting_id}/evidence - Upsert evidence by type key
- DELETE /meetings/{meeting_id}/evidence/{evidence_id}
- POST /meetings/{meeting_id}/mark-held | close | cancel
- POST /meetings/{meeting_id}/mark-pre-docs-sent | mark-post-docs-sent
- POST /plans/{plan_id}/implement - Activate a plan behind the consent gate
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from myteacher.core.database import get_db
from myteacher.core.logging_config import logger
from myteacher.models.meeting import MeetingStatus, PlanMeeting
from myteacher.models.rule_pack import RulePlanType
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded
from myteacher.modules.auth.permissions import require_permission
from myteacher.schemas.meeting import (
    DocsSentRequest,
    EnforcementResponse,
    EvidenceUpsert,
    MarkHeldRequest,
    MeetingCreate,
    MeetingDetailResponse,
    MeetingEvidenceResponse,
    MeetingResponse,
    MeetingUpdate,
)
from myteacher.schemas.plan import PlanFinalizeResponse
from myteacher.services import plan_service
from myteacher.services.meeting_service import meeting_service

router = APIRouter(tags=["Meetings"])


async def get_accessible_meeting(db: AsyncSession, user: AppUser, meeting_id: str,
                                 write: bool = False) -> PlanMeeting:
    meeting = await meeting_service.get_meeting(db, meeting_id)
    await plan_service.get_accessible_student(db, user, meeting.student_id)
    if write:
        require_permission(user, "can_update_plans")
    return meeting


async def meeting_detail(db: AsyncSession, meeting: PlanMeeting) -> MeetingDetailResponse:
    result = await meeting_service.evaluate(db, meeting)
    return MeetingDetailResponse(
        **MeetingResponse.model_validate(meeting).model_dump(),
        enforcement=EnforcementResponse(**result.to_dict()),
    )


# ==================== Meetings ====================

@router.get("/meetings/student/{student_id}", response_model=List[MeetingResponse])
async def list_student_meetings(
    student_id: str,
    plan_type: Optional[RulePlanType] = None,
    meeting_status: Optional[MeetingStatus] = Query(None, alias="status"),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    student = await plan_service.get_accessible_student(db, current_user, student_id)
    return await meeting_service.list_for_student(db, student.id, plan_type, meeting_status)


@router.get("/meetings/{meeting_id}", response_model=MeetingDetailResponse)
async def get_meeting(
    meeting_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    meeting = await get_accessible_meeting(db, current_user, meeting_id)
    return await meeting_detail(db, meeting)


@router.post("/meetings", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
async def create_meeting(
    data: MeetingCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    require_permission(current_user, "can_update_plans")
    student = await plan_service.get_accessible_student(db, current_user, data.student_id)
    meeting = await meeting_service.create_meeting(
        db, student, current_user, data.model_dump(exclude={"student_id"})
    )
    await db.commit()
    return meeting


@router.patch("/meetings/{meeting_id}", response_model=MeetingResponse)
async def update_meeting(
    meeting_id: str,
    data: MeetingUpdate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    await meeting_service.update_meeting(db, meeting, data.model_dump(exclude_unset=True))
    await db.commit()
    return meeting


# ==================== Evidence ====================

@router.post("/meetings/{meeting_id}/evidence", response_model=MeetingEvidenceResponse)
async def upsert_evidence(
    meeting_id: str,
    data: EvidenceUpsert,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    evidence = await meeting_service.upsert_evidence(
        db, meeting, current_user, data.evidence_type_key,
        data.model_dump(exclude={"evidence_type_key"}, exclude_unset=True),
    )
    await db.commit()
    return evidence


@router.delete("/meetings/{meeting_id}/evidence/{evidence_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_evidence(
    meeting_id: str,
    evidence_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    await meeting_service.delete_evidence(db, meeting, evidence_id)
    await db.commit()


# ==================== Workflow ====================

@router.post("/meetings/{meeting_id}/mark-held", response_model=MeetingResponse)
async def mark_meeting_held(
    meeting_id: str,
    data: Optional[MarkHeldRequest] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    await meeting_service.mark_held(db, meeting, data.held_at if data else None)
    await db.commit()
    return meeting


@router.post("/meetings/{meeting_id}/close", response_model=MeetingDetailResponse)
async def close_meeting(
    meeting_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """400 ERR_ENFORCEMENT_FAILED with the blocking errors when the meeting cannot close"""
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    meeting, result = await meeting_service.close(db, meeting)
    await db.commit()
    logger.info(f"[Meetings] Meeting {meeting.id} closed by {current_user.id}")
    return MeetingDetailResponse(
        **MeetingResponse.model_validate(meeting).model_dump(),
        enforcement=EnforcementResponse(**result.to_dict()),
    )


@router.post("/meetings/{meeting_id}/cancel", response_model=MeetingResponse)
async def cancel_meeting(
    meeting_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    await meeting_service.cancel(db, meeting)
    await db.commit()
    return meeting


@router.post("/meetings/{meeting_id}/mark-pre-docs-sent", response_model=MeetingResponse)
async def mark_pre_docs_sent(
    meeting_id: str,
    data: Optional[DocsSentRequest] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    data = data or DocsSentRequest()
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    await meeting_service.mark_docs_sent(db, meeting, current_user, "pre", data.delivery_method, data.delivered_at)
    await db.commit()
    return meeting


@router.post("/meetings/{meeting_id}/mark-post-docs-sent", response_model=MeetingResponse)
async def mark_post_docs_sent(
    meeting_id: str,
    data: Optional[DocsSentRequest] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    data = data or DocsSentRequest()
    meeting = await get_accessible_meeting(db, current_user, meeting_id, write=True)
    await meeting_service.mark_docs_sent(db, meeting, current_user, "post", data.delivery_method, data.delivered_at)
    await db.commit()
    return meeting


@router.post("/plans/{plan_id}/implement", response_model=PlanFinalizeResponse)
async def implement_plan(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """400 ERR_CONSENT_REQUIRED when the latest meeting fails the consent gate"""
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    await meeting_service.implement_plan(db, plan)
    await db.commit()
    return PlanFinalizeResponse(id=plan.id, status=plan.status)
