"""
Plan Versions API - finalization, distribution and exports

Endpoints:
- POST /plans/{plan_id}/versions/finalize - Snapshot into a FINAL version (manager only)
- GET /plans/{plan_id}/versions - Versions, newest first
- GET /plan-versions/{version_id} - Version with its snapshot
- POST /plan-versions/{version_id}/distribute - Mark DISTRIBUTED (manager only)
- POST/GET /plan-versions/{version_id}/exports - Render / list exports
- GET /plan-exports/{export_id}/download - Download an export file
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from myteacher.core.database import get_db
from myteacher.core.exceptions import ResourceNotFoundError, VersionNotFoundError
from myteacher.models.plan_version import PlanExport, PlanVersion
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded, require_plan_manager
from myteacher.schemas.plan_version import (
    ExportCreate,
    FinalizeVersionRequest,
    FinalizeVersionResponse,
    PlanExportResponse,
    PlanVersionDetailResponse,
    PlanVersionResponse,
)
from myteacher.services import plan_service
from myteacher.services.audit_service import AuditLogger
from myteacher.services.plan_version_service import generate_version_pdf, plan_version_service
from myteacher.services.storage_service import get_export_storage

router = APIRouter(tags=["Plan Versions"])


async def get_accessible_version(db: AsyncSession, user: AppUser, version_id: str):
    """Returns (version, plan) once the caller's access to the plan is checked"""
    version = await db.get(PlanVersion, version_id)
    if version is None:
        raise VersionNotFoundError(version_id)
    plan = await plan_service.get_accessible_plan(db, user, version.plan_instance_id)
    return version, plan


# ==================== Finalize ====================

@router.post("/plans/{plan_id}/versions/finalize", response_model=FinalizeVersionResponse,
             status_code=status.HTTP_201_CREATED)
async def finalize_version(
    plan_id: str,
    data: FinalizeVersionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    """
    Finalize a plan into a new FINAL version.

    The version, its decisions and its signature packet are committed together.
    The PDF is rendered after the commit in the background.
    """
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    version, packet = await plan_version_service.finalize(
        db,
        plan,
        current_user,
        version_notes=data.version_notes,
        decisions=[d.model_dump() for d in data.decisions],
        create_signature_packet=data.create_signature_packet,
        required_signature_roles=[r.value for r in data.required_signature_roles],
    )
    await AuditLogger(db, current_user, request).plan_finalized(plan.id, version.id, plan.student_id)
    await db.commit()

    background_tasks.add_task(generate_version_pdf, version.id, current_user.id)
    return FinalizeVersionResponse(
        version=PlanVersionResponse.model_validate(version),
        signature_packet_id=packet.id if packet else None,
        decisions_created=len(data.decisions),
    )


@router.get("/plans/{plan_id}/versions", response_model=List[PlanVersionResponse])
async def list_versions(
    plan_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    result = await db.execute(
        select(PlanVersion)
        .where(PlanVersion.plan_instance_id == plan.id)
        .order_by(PlanVersion.version_number.desc())
    )
    return result.scalars().all()


@router.get("/plan-versions/{version_id}", response_model=PlanVersionDetailResponse)
async def get_version(
    version_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    version, _ = await get_accessible_version(db, current_user, version_id)
    return version


@router.post("/plan-versions/{version_id}/distribute", response_model=PlanVersionResponse)
async def distribute_version(
    version_id: str,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    version, _ = await get_accessible_version(db, current_user, version_id)
    await plan_version_service.distribute(db, version, current_user)
    await db.commit()
    return version


# ==================== Exports ====================

@router.post("/plan-versions/{version_id}/exports", response_model=PlanExportResponse,
             status_code=status.HTTP_201_CREATED)
async def create_export(
    version_id: str,
    data: ExportCreate,
    request: Request,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    version, plan = await get_accessible_version(db, current_user, version_id)
    export = await plan_version_service.create_export(db, version, data.format, current_user.id)
    await AuditLogger(db, current_user, request).pdf_exported(export.id, version.id, plan.student_id, data.format.value)
    await db.commit()
    return export


@router.get("/plan-versions/{version_id}/exports", response_model=List[PlanExportResponse])
async def list_exports(
    version_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    version, _ = await get_accessible_version(db, current_user, version_id)
    result = await db.execute(
        select(PlanExport)
        .where(PlanExport.plan_version_id == version.id)
        .order_by(PlanExport.created_at.desc())
    )
    return result.scalars().all()


@router.get("/plan-exports/{export_id}/download")
async def download_export(
    export_id: str,
    request: Request,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    export = await db.get(PlanExport, export_id)
    if export is None:
        raise ResourceNotFoundError("Export", export_id, code="ERR_API_FILE_NOT_FOUND")
    version, plan = await get_accessible_version(db, current_user, export.plan_version_id)

    content = await get_export_storage().read(export.storage_key)
    await AuditLogger(db, current_user, request).pdf_downloaded(export.id, version.id, plan.student_id)
    await db.commit()

    return Response(
        content=content,
        media_type=export.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{export.file_name}"'},
    )
