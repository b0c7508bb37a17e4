"""
Admin API - users, permissions, student access, audit logs and best-practice documents

Endpoints:
- GET /admin/users - List users (paginated, filter by role)
- PATCH /admin/users/{user_id} - Update role / active flag
- PUT /admin/users/{user_id}/permissions - Set permission flags
- POST /admin/student-access - Grant a user access to a student
- DELETE /admin/student-access/{access_id} - Revoke a grant
- GET /admin/jurisdictions - List jurisdictions
- GET /admin/audit-logs - List audit log entries (paginated)
- GET/POST /admin/best-practice-docs - List / upload exemplar documents
- PATCH /admin/best-practice-docs/{doc_id} - Update metadata
- POST /admin/best-practice-docs/{doc_id}/reingest - Re-run ingestion
- GET /admin/best-practice-docs/{doc_id}/chunks - Chunks with per-section stats
- GET /admin/best-practice-docs/{doc_id}/download - Download the original file
"""

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from myteacher.core.config import settings
from myteacher.core.database import get_db
from myteacher.core.exceptions import ResourceNotFoundError, StudentNotFoundError, ValidationFailedError
from myteacher.core.logging_config import logger
from myteacher.models.audit_log import AuditLog, AuditActionType, AuditEntityType
from myteacher.models.best_practice import BestPracticeDocument, IngestionStatus
from myteacher.models.plan import PlanTypeCode
from myteacher.models.student import Student
from myteacher.models.user import AppUser, Jurisdiction, StudentAccess, UserPermission, UserRole
from myteacher.modules.auth.dependencies import require_admin
from myteacher.schemas.admin import (
    AuditLogResponse,
    BestPracticeDocResponse,
    BestPracticeDocUpdate,
    ChunkListResponse,
    ChunkResponse,
    JurisdictionResponse,
    PermissionUpdate,
    StudentAccessGrant,
    StudentAccessResponse,
    UserUpdate,
)
from myteacher.schemas.auth import UserResponse
from myteacher.services.ingestion_service import get_document, ingest_document_background, ingestion_service
from myteacher.services.storage_service import get_upload_storage
from myteacher.api.v1.endpoints.auth import user_response
from myteacher.utils.pagination import Page, paginate

router = APIRouter(prefix="/admin", tags=["Admin"])


async def get_user_or_404(db: AsyncSession, user_id: str) -> AppUser:
    user = await db.get(AppUser, user_id)
    if user is None:
        raise ResourceNotFoundError("User", user_id)
    return user


# ==================== Users ====================

@router.get("/users", response_model=Page[UserResponse])
async def list_users(
    role: Optional[UserRole] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(AppUser)
    if role:
        query = query.where(AppUser.role == role)
    query = query.order_by(AppUser.created_at.desc())
    return await paginate(db, query, page, page_size, user_response)


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_or_404(db, user_id)
    if str(user.id) == str(admin.id) and data.is_active is False:
        raise ValidationFailedError("Administrators cannot deactivate themselves", field="is_active")

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    await db.commit()

    logger.info(f"[Admin] User {user.id} updated by {admin.id}: {data.model_dump(exclude_unset=True)}")
    return user_response(user)


@router.put("/users/{user_id}/permissions", response_model=UserResponse)
async def set_permissions(
    user_id: str,
    data: PermissionUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_or_404(db, user_id)
    if user.permission is None:
        user.permission = UserPermission(user_id=user.id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user.permission, key, bool(value))
    await db.commit()

    logger.info(f"[Admin] Permissions for {user.id} set by {admin.id}")
    return user_response(user)


@router.post("/student-access", response_model=StudentAccessResponse, status_code=status.HTTP_201_CREATED)
async def grant_student_access(
    data: StudentAccessGrant,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    if await db.get(Student, data.student_id) is None:
        raise StudentNotFoundError(data.student_id)
    await get_user_or_404(db, data.user_id)

    result = await db.execute(
        select(StudentAccess).where(
            StudentAccess.student_id == data.student_id,
            StudentAccess.user_id == data.user_id,
        )
    )
    grant = result.scalar_one_or_none()
    if grant is None:
        grant = StudentAccess(student_id=data.student_id, user_id=data.user_id)
        db.add(grant)
    grant.granted_by_id = admin.id
    grant.expires_at = data.expires_at
    await db.commit()
    return grant


@router.delete("/student-access/{access_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_student_access(
    access_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    grant = await db.get(StudentAccess, access_id)
    if grant is None:
        raise ResourceNotFoundError("Student access", access_id)
    await db.delete(grant)
    await db.commit()


@router.get("/jurisdictions", response_model=List[JurisdictionResponse])
async def list_jurisdictions(
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Jurisdiction).order_by(Jurisdiction.state_code, Jurisdiction.district_name)
    )
    return result.scalars().all()


# ==================== Audit Logs ====================

@router.get("/audit-logs", response_model=Page[AuditLogResponse])
async def list_audit_logs(
    action: Optional[AuditActionType] = None,
    entity_type: Optional[AuditEntityType] = None,
    user_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(AuditLog)
    if action:
        query = query.where(AuditLog.action == action)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if user_id:
        query = query.where(AuditLog.user_id == user_id)
    query = query.order_by(AuditLog.created_at.desc())
    return await paginate(db, query, page, page_size, AuditLogResponse.model_validate)


# ==================== Best Practice Documents ====================

@router.get("/best-practice-docs", response_model=List[BestPracticeDocResponse])
async def list_best_practice_docs(
    plan_type: Optional[PlanTypeCode] = None,
    active: Optional[bool] = None,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(BestPracticeDocument)
    if plan_type:
        query = query.where(BestPracticeDocument.plan_type == plan_type)
    if active is not None:
        query = query.where(BestPracticeDocument.is_active == active)
    result = await db.execute(query.order_by(BestPracticeDocument.created_at.desc()))
    return result.scalars().all()


@router.post("/best-practice-docs", response_model=BestPracticeDocResponse, status_code=status.HTTP_201_CREATED)
async def upload_best_practice_doc(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="Exemplar document (.txt, .pdf, .docx)"),
    title: str = Form(...),
    plan_type: PlanTypeCode = Form(...),
    grade_band: Optional[str] = Form(None),
    jurisdiction_id: Optional[str] = Form(None),
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Store the file and ingest it in the background"""
    content = await file.read()
    stored = await get_upload_storage().save(
        "best-practice", file.filename or "", content, settings.BEST_PRACTICE_EXTENSIONS
    )

    document = BestPracticeDocument(
        title=title,
        plan_type=plan_type,
        grade_band=grade_band,
        jurisdiction_id=jurisdiction_id or None,
        file_name=stored["file_name"],
        storage_key=stored["storage_key"],
        mime_type=stored["mime_type"],
        file_size=stored["file_size"],
        ingestion_status=IngestionStatus.PENDING,
        uploaded_by_id=admin.id,
    )
    db.add(document)
    await db.commit()

    background_tasks.add_task(ingest_document_background, document.id)
    logger.info(f"[Admin] Best practice document {document.id} uploaded by {admin.id}")
    return document


@router.patch("/best-practice-docs/{doc_id}", response_model=BestPracticeDocResponse)
async def update_best_practice_doc(
    doc_id: str,
    data: BestPracticeDocUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document(db, doc_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(document, key, value)
    await db.commit()
    return document


@router.post("/best-practice-docs/{doc_id}/reingest", response_model=BestPracticeDocResponse)
async def reingest_best_practice_doc(
    doc_id: str,
    background_tasks: BackgroundTasks,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document(db, doc_id)
    document.ingestion_status = IngestionStatus.PENDING
    document.ingestion_message = None
    await db.commit()
    background_tasks.add_task(ingest_document_background, document.id)
    return document


@router.get("/best-practice-docs/{doc_id}/chunks", response_model=ChunkListResponse)
async def list_document_chunks(
    doc_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document(db, doc_id)
    stats = await ingestion_service.chunk_stats(db, document.id)
    chunks = await ingestion_service.list_chunks(db, document.id)
    return ChunkListResponse(
        document_id=document.id,
        total_chunks=stats["total_chunks"],
        by_section=stats["by_section"],
        chunks=[ChunkResponse.model_validate(c) for c in chunks],
    )


@router.get("/best-practice-docs/{doc_id}/download")
async def download_best_practice_doc(
    doc_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document(db, doc_id)
    content = await get_upload_storage().read(document.storage_key)
    return Response(
        content=content,
        media_type=document.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{document.file_name}"'},
    )
