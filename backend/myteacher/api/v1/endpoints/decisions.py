"""
Decision Ledger API

Endpoints:
- POST /plans/{plan_id}/decisions - Record a decision (manager only, IEP plans)
- GET /plans/{plan_id}/decisions - List, filter by type / status / section
- GET /decisions/{decision_id}
- POST /decisions/{decision_id}/void - Void with a reason (manager only)
- GET /decision-types
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from myteacher.core.database import get_db
from myteacher.core.exceptions import DecisionNotFoundError
from myteacher.core.logging_config import logger
from myteacher.models.decision import DecisionLedgerEntry, DecisionStatus, DecisionType
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded, require_plan_manager
from myteacher.schemas.decision import DecisionCreate, DecisionResponse, DecisionVoidRequest
from myteacher.services import decision_service, plan_service

router = APIRouter(tags=["Decisions"])


async def get_accessible_decision(db: AsyncSession, user: AppUser, decision_id: str) -> DecisionLedgerEntry:
    entry = await db.get(DecisionLedgerEntry, decision_id)
    if entry is None:
        raise DecisionNotFoundError(decision_id)
    await plan_service.get_accessible_plan(db, user, entry.plan_instance_id)
    return entry


@router.post("/plans/{plan_id}/decisions", response_model=DecisionResponse, status_code=status.HTTP_201_CREATED)
async def create_decision(
    plan_id: str,
    data: DecisionCreate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    entry = await decision_service.create_decision(db, plan, current_user, data.model_dump())
    await db.commit()
    logger.info(f"[Decisions] {entry.decision_type.value} recorded on plan {plan.id} by {current_user.id}")
    return entry


@router.get("/plans/{plan_id}/decisions", response_model=List[DecisionResponse])
async def list_decisions(
    plan_id: str,
    decision_type: Optional[DecisionType] = Query(None, alias="type"),
    decision_status: Optional[DecisionStatus] = Query(None, alias="status"),
    section: Optional[str] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_service.get_accessible_plan(db, current_user, plan_id)
    query = select(DecisionLedgerEntry).where(DecisionLedgerEntry.plan_instance_id == plan.id)
    if decision_type:
        query = query.where(DecisionLedgerEntry.decision_type == decision_type)
    if decision_status:
        query = query.where(DecisionLedgerEntry.status == decision_status)
    if section:
        query = query.where(DecisionLedgerEntry.section_key == section)
    result = await db.execute(query.order_by(DecisionLedgerEntry.decided_at.desc()))
    return result.scalars().all()


@router.get("/decisions/{decision_id}", response_model=DecisionResponse)
async def get_decision(
    decision_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await get_accessible_decision(db, current_user, decision_id)


@router.post("/decisions/{decision_id}/void", response_model=DecisionResponse)
async def void_decision(
    decision_id: str,
    data: DecisionVoidRequest,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    entry = await get_accessible_decision(db, current_user, decision_id)
    decision_service.void_decision(entry, current_user, data.void_reason)
    await db.commit()
    logger.info(f"[Decisions] Decision {entry.id} voided by {current_user.id}")
    return entry


@router.get("/decision-types")
async def list_decision_types():
    return decision_service.decision_types()
