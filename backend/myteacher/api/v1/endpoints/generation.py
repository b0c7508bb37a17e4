"""
Generation API - Claude drafting backed by best-practice reference content

Endpoints:
- POST /plans/{plan_id}/generate-draft - Draft one plan field (rate limited)
- GET /plans/{plan_id}/generation-availability - Sections with reference content
- GET /generation/reference-preview - Reference chunks for a plan type and section
- POST /goals/validate - SMART review of a goal (rate limited)
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from myteacher.core.database import get_db
from myteacher.core.exceptions import MyTeacherError
from myteacher.core.rate_limiter import ai_operation_rate_limit
from myteacher.models.plan import PlanTypeCode
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded
from myteacher.schemas.generation import (
    GenerateDraftRequest,
    GenerateDraftResponse,
    GenerationAvailabilityResponse,
    ReferencePreviewChunk,
    SectionAvailability,
)
from myteacher.schemas.plan import GoalValidateRequest
from myteacher.services import plan_service
from myteacher.services.content_generation import (
    content_generation_service,
    generatable_sections,
    has_reference_content,
    query_chunks_for_generation,
)

router = APIRouter(tags=["Generation"])


@router.post("/plans/{plan_id}/generate-draft", response_model=GenerateDraftResponse)
@ai_operation_rate_limit()
async def generate_draft(
    request: Request,
    plan_id: str,
    data: GenerateDraftRequest,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id, write=True)
    draft = await content_generation_service.generate_draft_content(
        db, plan, data.section_key, data.field_key, data.student_context, data.user_prompt
    )
    if draft is None:
        raise MyTeacherError(
            "No reference content is available for this section. "
            "Upload best-practice documents for this plan type first.",
            code="ERR_NO_REFERENCE_CONTENT",
            details={"section_key": data.section_key, "field_key": data.field_key},
            status_code=status.HTTP_404_NOT_FOUND,
        )
    return draft


@router.get("/plans/{plan_id}/generation-availability", response_model=GenerationAvailabilityResponse)
async def generation_availability(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    plan_type = plan.plan_type.code
    return GenerationAvailabilityResponse(
        plan_id=plan.id,
        plan_type=plan_type.value,
        sections=[
            SectionAvailability(section_tag=tag, has_reference_content=await has_reference_content(db, plan_type, tag))
            for tag in generatable_sections(plan_type)
        ],
    )


@router.get("/generation/reference-preview", response_model=List[ReferencePreviewChunk])
async def reference_preview(
    plan_type: PlanTypeCode,
    section_tag: str,
    limit: int = Query(5, ge=1, le=20),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await query_chunks_for_generation(
        db, plan_type, section_tag, current_user.jurisdiction_id, limit=limit
    )


@router.post("/goals/validate")
@ai_operation_rate_limit()
async def validate_goal(
    request: Request,
    data: GoalValidateRequest,
    current_user: AppUser = Depends(require_onboarded),
):
    """Claude's JSON verdict: is_valid, score, issues, smart, suggestions, improved_goal"""
    return await content_generation_service.validate_goal(data.model_dump())
