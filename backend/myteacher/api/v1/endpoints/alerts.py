"""
Alerts API - the caller's in-app alerts

Endpoints:
- GET /alerts - Own alerts, newest first, with the unread count
- GET /alerts/unread-count
- POST /alerts/mark-all-read
- DELETE /alerts/clear-read - Delete all read alerts
- POST /alerts/{alert_id}/read
- DELETE /alerts/{alert_id}
- POST /alerts - Send an alert (admin or case manager)
- POST /alerts/bulk - Send one alert to many users (admin)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.database import get_db
from myteacher.core.logging_config import logger
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_admin, require_onboarded, require_plan_manager
from myteacher.schemas.alert import (
    AlertCreate,
    AlertListResponse,
    AlertResponse,
    BulkAlertCreate,
    UnreadCountResponse,
)
from myteacher.services.alert_service import alert_service

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    alerts = await alert_service.list_for_user(db, current_user, unread_only, limit)
    return AlertListResponse(
        alerts=[AlertResponse.model_validate(a) for a in alerts],
        unread_count=await alert_service.unread_count(db, current_user),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(unread_count=await alert_service.unread_count(db, current_user))


@router.post("/mark-all-read")
async def mark_all_read(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    updated = await alert_service.mark_all_read(db, current_user)
    await db.commit()
    return {"updated": updated}


@router.delete("/clear-read")
async def clear_read_alerts(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    deleted = await alert_service.clear_read(db, current_user)
    await db.commit()
    return {"deleted": deleted}


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def create_bulk_alerts(
    data: BulkAlertCreate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    created = await alert_service.bulk_create(
        db, data.user_ids, data.title, data.message, data.alert_type, data.link_url
    )
    await db.commit()
    logger.info(f"[Alerts] {created} alerts sent by {admin.id}")
    return {"created": created}


@router.post("", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
async def create_alert(
    data: AlertCreate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    alert = alert_service.create_alert(db, **data.model_dump())
    await db.commit()
    return alert


@router.post("/{alert_id}/read", response_model=AlertResponse)
async def mark_alert_read(
    alert_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    alert = await alert_service.mark_read(db, alert_id, current_user)
    await db.commit()
    return alert


@router.delete("/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_alert(
    alert_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    await alert_service.delete(db, alert_id, current_user)
    await db.commit()
