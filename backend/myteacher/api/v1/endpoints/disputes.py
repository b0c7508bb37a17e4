"""
Disputes API - dispute cases, timeline events and attachments

Endpoints:
- POST /students/{student_id}/disputes - File a case (manager only)
- GET /students/{student_id}/disputes - Student's cases (filter by status, type)
- GET /disputes - All cases (filter by status, type, assignee)
- GET /disputes/dashboard - Counts by status and recent active cases
- GET/PATCH /disputes/{case_id}
- POST/GET /disputes/{case_id}/events
- POST/GET /disputes/{case_id}/attachments
- DELETE /disputes/attachments/{attachment_id}
- GET /disputes/{case_id}/export-pdf - Case timeline as PDF
- GET /case-types, GET /event-types
"""

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from myteacher.core.config import settings
from myteacher.core.database import get_db
from myteacher.models.dispute import DisputeAttachment, DisputeCase, DisputeCaseStatus, DisputeCaseType
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded, require_plan_manager
from myteacher.schemas.dispute import (
    DisputeAttachmentResponse,
    DisputeCaseCreate,
    DisputeCaseDetailResponse,
    DisputeCaseResponse,
    DisputeCaseUpdate,
    DisputeDashboardResponse,
    DisputeEventCreate,
    DisputeEventResponse,
)
from myteacher.services import plan_service
from myteacher.services.audit_service import AuditLogger
from myteacher.services.dispute_service import case_types, dispute_service, event_types
from myteacher.services.storage_service import get_upload_storage

router = APIRouter(tags=["Disputes"])


async def get_accessible_case(db: AsyncSession, user: AppUser, case_id: str) -> DisputeCase:
    case = await dispute_service.get_case(db, case_id)
    await plan_service.get_accessible_student(db, user, case.student_id)
    return case


async def with_event_counts(db: AsyncSession, cases: List[DisputeCase]) -> List[DisputeCaseResponse]:
    counts = await dispute_service.event_counts(db, [c.id for c in cases])
    responses = []
    for case in cases:
        response = DisputeCaseResponse.model_validate(case)
        response.event_count = counts.get(case.id, 0)
        responses.append(response)
    return responses


# ==================== Cases ====================

@router.post("/students/{student_id}/disputes", response_model=DisputeCaseResponse,
             status_code=status.HTTP_201_CREATED)
async def create_dispute_case(
    student_id: str,
    data: DisputeCaseCreate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    """Files the case and its INTAKE event together"""
    student = await plan_service.get_accessible_student(db, current_user, student_id)
    case = await dispute_service.create_case(db, student, current_user, data.model_dump())
    await db.commit()
    response = DisputeCaseResponse.model_validate(case)
    response.event_count = 1
    return response


@router.get("/students/{student_id}/disputes", response_model=List[DisputeCaseResponse])
async def list_student_disputes(
    student_id: str,
    case_status: Optional[DisputeCaseStatus] = Query(None, alias="status"),
    case_type: Optional[DisputeCaseType] = Query(None, alias="type"),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    student = await plan_service.get_accessible_student(db, current_user, student_id)
    cases = await dispute_service.list_cases(db, student.id, case_status, case_type)
    return await with_event_counts(db, cases)


@router.get("/disputes", response_model=List[DisputeCaseResponse])
async def list_disputes(
    case_status: Optional[DisputeCaseStatus] = Query(None, alias="status"),
    case_type: Optional[DisputeCaseType] = Query(None, alias="type"),
    assigned_to: Optional[str] = None,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    cases = await dispute_service.list_cases(db, None, case_status, case_type, assigned_to)
    return await with_event_counts(db, cases)


@router.get("/disputes/dashboard", response_model=DisputeDashboardResponse)
async def dispute_dashboard(
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    data = await dispute_service.dashboard(db)
    return DisputeDashboardResponse(
        summary=data["summary"],
        recent_cases=await with_event_counts(db, data["recent_cases"]),
    )


@router.delete("/disputes/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_dispute_attachment(
    attachment_id: str,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    attachment = await dispute_service.get_attachment(db, attachment_id)
    await get_accessible_case(db, current_user, attachment.dispute_case_id)
    storage_key = attachment.storage_key
    await db.delete(attachment)
    await db.commit()
    await get_upload_storage().delete(storage_key)


@router.get("/disputes/{case_id}", response_model=DisputeCaseDetailResponse)
async def get_dispute_case(
    case_id: str,
    request: Request,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    case = await get_accessible_case(db, current_user, case_id)
    events = await dispute_service.list_events(db, case.id)
    attachments = await dispute_service.list_attachments(db, case.id)
    await AuditLogger(db, current_user, request).case_viewed(case.id, case.student_id)
    await db.commit()

    response = DisputeCaseDetailResponse.model_validate(case)
    response.event_count = len(events)
    response.events = [DisputeEventResponse.model_validate(e) for e in events]
    response.attachments = [DisputeAttachmentResponse.model_validate(a) for a in attachments]
    return response


@router.patch("/disputes/{case_id}", response_model=DisputeCaseResponse)
async def update_dispute_case(
    case_id: str,
    data: DisputeCaseUpdate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    """A status change also records a STATUS_CHANGE (or RESOLUTION) event"""
    case = await get_accessible_case(db, current_user, case_id)
    await dispute_service.update_case(db, case, current_user, data.model_dump(exclude_unset=True))
    await db.commit()
    [response] = await with_event_counts(db, [case])
    return response


# ==================== Events ====================

@router.post("/disputes/{case_id}/events", response_model=DisputeEventResponse, status_code=status.HTTP_201_CREATED)
async def add_dispute_event(
    case_id: str,
    data: DisputeEventCreate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    case = await get_accessible_case(db, current_user, case_id)
    event = await dispute_service.add_event(db, case, current_user, data.model_dump())
    await db.commit()
    return event


@router.get("/disputes/{case_id}/events", response_model=List[DisputeEventResponse])
async def list_dispute_events(
    case_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    case = await get_accessible_case(db, current_user, case_id)
    return await dispute_service.list_events(db, case.id)


# ==================== Attachments ====================

@router.post("/disputes/{case_id}/attachments", response_model=DisputeAttachmentResponse,
             status_code=status.HTTP_201_CREATED)
async def upload_dispute_attachment(
    case_id: str,
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
    event_id: Optional[str] = Form(None),
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    case = await get_accessible_case(db, current_user, case_id)
    content = await file.read()
    stored = await get_upload_storage().save(
        f"disputes/{case.id}", file.filename or "", content, settings.DISPUTE_ATTACHMENT_EXTENSIONS
    )
    attachment = DisputeAttachment(
        dispute_case_id=case.id,
        event_id=event_id or None,
        file_name=stored["file_name"],
        storage_key=stored["storage_key"],
        mime_type=stored["mime_type"],
        file_size=stored["file_size"],
        description=description,
        uploaded_by_id=current_user.id,
    )
    db.add(attachment)
    await db.commit()
    return attachment


@router.get("/disputes/{case_id}/attachments", response_model=List[DisputeAttachmentResponse])
async def list_dispute_attachments(
    case_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    case = await get_accessible_case(db, current_user, case_id)
    return await dispute_service.list_attachments(db, case.id)


@router.get("/disputes/{case_id}/export-pdf")
async def export_dispute_pdf(
    case_id: str,
    request: Request,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    case = await get_accessible_case(db, current_user, case_id)
    content = await dispute_service.export_pdf(db, case)
    await AuditLogger(db, current_user, request).case_exported(case.id, case.student_id)
    await db.commit()
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{case.case_number}.pdf"'},
    )


@router.get("/case-types")
async def list_case_types():
    return case_types()


@router.get("/event-types")
async def list_event_types():
    return event_types()
