"""
Scheduled services and delivery variance.

A plan has at most one scheduled service plan listing the minutes expected
per week for each service type. The variance report buckets delivered
service logs into Monday-Sunday weeks and compares them with what was
expected in each week.
"""

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import ConflictError, ScheduledServicePlanNotFoundError, ValidationFailedError
from myteacher.core.logging_config import logger
from myteacher.models.plan import PlanInstance
from myteacher.models.scheduled_service import ScheduledServiceItem, ScheduledServicePlan
from myteacher.models.service_log import ServiceLog
from myteacher.models.user import AppUser


def week_starts(start: date, end: date) -> List[date]:
    """Mondays of every week touching [start, end]"""
    monday = start - timedelta(days=start.weekday())
    weeks = []
    while monday <= end:
        weeks.append(monday)
        monday += timedelta(days=7)
    return weeks


def _day(value: Optional[datetime]) -> Optional[date]:
    return value.date() if isinstance(value, datetime) else value


def weekly_variance(items: List[ScheduledServiceItem], logs: List[ServiceLog], start: date,
                    end: date) -> Dict[str, Any]:
    """
    Expected against delivered minutes per week and service type.

    An item counts its full weekly minutes in every week it overlaps. Weeks
    with neither expected nor delivered service are left out. A log with zero
    minutes and a missed reason counts as a missed session.
    """
    weeks = []
    grand_expected = grand_delivered = 0
    for week_start in week_starts(start, end):
        week_end = min(week_start + timedelta(days=6), end)
        by_type: Dict[str, Dict[str, int]] = {}

        for item in items:
            item_end = _day(item.end_date)
            if _day(item.start_date) <= week_end and (item_end is None or item_end >= week_start):
                bucket = by_type.setdefault(item.service_type, {"expected": 0, "delivered": 0, "missed": 0})
                bucket["expected"] += item.expected_minutes_per_week

        for log in logs:
            if not week_start <= _day(log.date) <= week_end:
                continue
            bucket = by_type.setdefault(log.service_type, {"expected": 0, "delivered": 0, "missed": 0})
            bucket["delivered"] += log.minutes
            if log.minutes == 0 and log.missed_reason:
                bucket["missed"] += 1

        if not by_type:
            continue
        rows = [
            {
                "service_type": service_type,
                "expected_minutes": b["expected"],
                "delivered_minutes": b["delivered"],
                "variance_minutes": b["delivered"] - b["expected"],
                "missed_sessions": b["missed"],
            }
            for service_type, b in by_type.items()
        ]
        expected = sum(r["expected_minutes"] for r in rows)
        delivered = sum(r["delivered_minutes"] for r in rows)
        grand_expected += expected
        grand_delivered += delivered
        weeks.append({
            "week_of": week_start,
            "week_end": week_end,
            "by_service_type": rows,
            "total_expected": expected,
            "total_delivered": delivered,
            "total_variance": delivered - expected,
        })

    return {
        "variance": weeks,
        "summary": {
            "total_expected": grand_expected,
            "total_delivered": grand_delivered,
            "total_variance": grand_delivered - grand_expected,
        },
    }


class ServiceScheduleService:
    """Service for scheduled service plans"""

    async def get_for_plan(self, db: AsyncSession, plan_id: str) -> Optional[ScheduledServicePlan]:
        result = await db.execute(select(ScheduledServicePlan).where(ScheduledServicePlan.plan_instance_id == plan_id))
        return result.scalar_one_or_none()

    async def get(self, db: AsyncSession, scheduled_plan_id: str) -> ScheduledServicePlan:
        scheduled = await db.get(ScheduledServicePlan, scheduled_plan_id)
        if scheduled is None:
            raise ScheduledServicePlanNotFoundError(scheduled_plan_id)
        return scheduled

    async def create(self, db: AsyncSession, plan: PlanInstance, user: AppUser,
                     items: List[Dict[str, Any]]) -> ScheduledServicePlan:
        if await self.get_for_plan(db, plan.id):
            raise ConflictError("This plan already has scheduled services", code="ERR_SCHEDULED_PLAN_EXISTS")
        scheduled = ScheduledServicePlan(plan_instance_id=plan.id, created_by_id=user.id)
        scheduled.items = [ScheduledServiceItem(**item) for item in items]
        db.add(scheduled)
        await db.flush()
        logger.info(f"[Services] Scheduled {len(items)} service item(s) for plan {plan.id}")
        return scheduled

    async def update(self, db: AsyncSession, scheduled: ScheduledServicePlan, user: AppUser,
                     changes: Dict[str, Any]) -> ScheduledServicePlan:
        """Items, when given, replace the existing ones"""
        scheduled.updated_by_id = user.id
        if changes.get("status") is not None:
            scheduled.status = changes["status"]
        if changes.get("items") is not None:
            scheduled.items = [ScheduledServiceItem(**item) for item in changes["items"]]
        await db.flush()
        await db.refresh(scheduled, attribute_names=["items"])
        return scheduled

    async def variance(self, db: AsyncSession, plan_id: str, start: date, end: date) -> Dict[str, Any]:
        if end < start:
            raise ValidationFailedError("end must not be before start", field="end")
        scheduled = await self.get_for_plan(db, plan_id)
        if scheduled is None:
            return weekly_variance([], [], start, end)
        result = await db.execute(
            select(ServiceLog)
            .where(
                ServiceLog.plan_instance_id == plan_id,
                ServiceLog.date >= datetime.combine(start, datetime.min.time()),
                ServiceLog.date < datetime.combine(end + timedelta(days=1), datetime.min.time()),
            )
            .order_by(ServiceLog.date)
        )
        return weekly_variance(scheduled.items, list(result.scalars().all()), start, end)


service_schedule_service = ServiceScheduleService()
