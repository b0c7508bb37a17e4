"""
Behavior target and event service

Targets belong to behavior plans. Each event must carry the measure its
target's measurement type calls for.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import BusinessRuleError, ValidationFailedError
from myteacher.core.logging_config import logger
from myteacher.models.behavior import BehaviorEvent, BehaviorMeasurementType, BehaviorTarget
from myteacher.models.plan import PlanInstance, PlanTypeCode
from myteacher.models.user import AppUser

# measurement type -> (event attribute, label used in the error)
REQUIRED_MEASURE = {
    BehaviorMeasurementType.FREQUENCY: ("count", "Count"),
    BehaviorMeasurementType.DURATION: ("duration_seconds", "Duration"),
    BehaviorMeasurementType.RATING: ("rating", "Rating"),
}


def summarize_events(events: List[BehaviorEvent]) -> Dict[str, Any]:
    ratings = [e.rating for e in events if e.rating is not None]
    return {
        "total_events": len(events),
        "total_count": sum(e.count or 0 for e in events),
        "total_duration_seconds": sum(e.duration_seconds or 0 for e in events),
        "average_rating": sum(ratings) / len(ratings) if ratings else 0.0,
    }


class BehaviorService:
    """Service for behavior targets and events"""

    async def list_targets(self, db: AsyncSession, plan_id: str) -> List[BehaviorTarget]:
        result = await db.execute(
            select(BehaviorTarget)
            .where(BehaviorTarget.plan_instance_id == plan_id, BehaviorTarget.is_active.is_(True))
            .order_by(BehaviorTarget.code)
        )
        return list(result.scalars().all())

    async def create_target(self, db: AsyncSession, plan: PlanInstance, data: Dict[str, Any]) -> BehaviorTarget:
        if plan.plan_type.code != PlanTypeCode.BEHAVIOR_PLAN:
            raise BusinessRuleError("Behavior targets belong to behavior plans", code="ERR_BEHAVIOR_PLAN_REQUIRED")
        target = BehaviorTarget(plan_instance_id=plan.id, **data)
        target.events = []
        db.add(target)
        await db.flush()
        logger.info(f"[Behavior] Target {target.code} added to plan {plan.id}")
        return target

    async def update_target(self, db: AsyncSession, target: BehaviorTarget, changes: Dict[str, Any]) -> BehaviorTarget:
        for key, value in changes.items():
            setattr(target, key, value)
        await db.flush()
        return target

    async def deactivate_target(self, db: AsyncSession, target: BehaviorTarget) -> None:
        target.is_active = False
        await db.flush()

    async def record_event(self, db: AsyncSession, target: BehaviorTarget, user: AppUser,
                           data: Dict[str, Any]) -> BehaviorEvent:
        required = REQUIRED_MEASURE.get(target.measurement_type)
        if required and data.get(required[0]) is None:
            attribute, label = required
            raise ValidationFailedError(
                f"{label} is required for {target.measurement_type.value.lower()} measurement", field=attribute
            )
        if data.get("context_json") is None:
            data["context_json"] = {}
        event = BehaviorEvent(target_id=target.id, recorded_by_id=user.id, **data)
        db.add(event)
        await db.flush()
        return event

    async def list_events(self, db: AsyncSession, target: BehaviorTarget, date_from: Optional[datetime] = None,
                          date_to: Optional[datetime] = None) -> List[BehaviorEvent]:
        query = select(BehaviorEvent).where(BehaviorEvent.target_id == target.id)
        if date_from:
            query = query.where(BehaviorEvent.event_date >= date_from)
        if date_to:
            query = query.where(BehaviorEvent.event_date <= date_to)
        result = await db.execute(query.order_by(BehaviorEvent.event_date.desc()))
        return list(result.scalars().all())


behavior_service = BehaviorService()
