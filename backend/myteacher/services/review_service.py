"""
Review Schedule & Compliance Task Service

Handles:
- Review schedules (annual review, reevaluation, periodic reviews) per plan
- Compliance tasks raised from schedules or created by managers
- The compliance sweep that flags overdue and due-soon reviews
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.config import settings
from myteacher.core.exceptions import (
    ComplianceTaskAlreadyCompleteError,
    ComplianceTaskNotFoundError,
    ReviewScheduleAlreadyCompleteError,
    ReviewScheduleNotFoundError,
)
from myteacher.core.logging_config import logger
from myteacher.models.alert import AlertType
from myteacher.models.plan import PlanInstance
from myteacher.models.review import (
    ComplianceTask,
    ComplianceTaskStatus,
    ComplianceTaskType,
    ReviewSchedule,
    ReviewScheduleStatus,
    ScheduleType,
)
from myteacher.models.user import AppUser
from myteacher.services.alert_service import alert_service

SCHEDULE_TYPE_INFO = {
    ScheduleType.IEP_ANNUAL_REVIEW: ("IEP Annual Review", "Annual review of IEP goals and services"),
    ScheduleType.IEP_REEVALUATION: ("IEP Reevaluation", "Three-year comprehensive reevaluation"),
    ScheduleType.PLAN_AMENDMENT_REVIEW: ("Plan Amendment Review", "Review of plan amendments"),
    ScheduleType.SECTION504_PERIODIC_REVIEW: ("Section 504 Periodic Review", "Periodic review of 504 accommodations"),
    ScheduleType.BIP_REVIEW: ("BIP Review", "Behavior Intervention Plan review"),
}

TASK_TYPE_INFO = {
    ComplianceTaskType.REVIEW_DUE_SOON: ("Review Due Soon", "A plan review is due within the lead window"),
    ComplianceTaskType.REVIEW_OVERDUE: ("Review Overdue", "A plan review is past its due date"),
    ComplianceTaskType.DOCUMENT_REQUIRED: ("Document Required", "A required document needs to be uploaded or completed"),
    ComplianceTaskType.SIGNATURE_NEEDED: ("Signature Needed", "A signature is required on a document or plan"),
    ComplianceTaskType.MEETING_REQUIRED: ("Meeting Required", "A meeting needs to be scheduled or held"),
}

ACTIVE_TASK_STATUSES = (ComplianceTaskStatus.OPEN, ComplianceTaskStatus.IN_PROGRESS)


def schedule_type_label(schedule_type: ScheduleType) -> str:
    return SCHEDULE_TYPE_INFO[schedule_type][0]


def schedule_types() -> List[Dict[str, str]]:
    return [{"value": t.value, "label": label, "description": desc} for t, (label, desc) in SCHEDULE_TYPE_INFO.items()]


def task_types() -> List[Dict[str, str]]:
    return [{"value": t.value, "label": label, "description": desc} for t, (label, desc) in TASK_TYPE_INFO.items()]


def in_lead_window(due_date: datetime, lead_days: int, now: Optional[datetime] = None) -> bool:
    """True once the review is within `lead_days` of its due date"""
    now = now or datetime.utcnow()
    return due_date - timedelta(days=lead_days) <= now


class ReviewService:
    """Service for review schedules and compliance tasks"""

    # ----------------------------------------
    # Review schedules
    # ----------------------------------------

    def _due_soon_task(self, schedule: ReviewSchedule, plan: PlanInstance, created_by_id: Optional[str]) -> ComplianceTask:
        return ComplianceTask(
            task_type=ComplianceTaskType.REVIEW_DUE_SOON,
            status=ComplianceTaskStatus.OPEN,
            title=f"{schedule_type_label(schedule.schedule_type)} due soon",
            description=f"Review for {plan.student.full_name} is due on {schedule.due_date:%m/%d/%Y}",
            due_date=schedule.due_date,
            priority=2,
            assigned_to_id=schedule.assigned_to_id,
            review_schedule_id=schedule.id,
            plan_instance_id=plan.id,
            student_id=plan.student_id,
            created_by_id=created_by_id,
        )

    async def create_schedule(self, db: AsyncSession, plan: PlanInstance, user: AppUser,
                              data: Dict[str, Any]) -> ReviewSchedule:
        schedule = ReviewSchedule(
            plan_instance_id=plan.id,
            schedule_type=data["schedule_type"],
            due_date=data["due_date"],
            lead_days=data.get("lead_days") or settings.DEFAULT_REVIEW_LEAD_DAYS,
            notes=data.get("notes"),
            assigned_to_id=data.get("assigned_to_id"),
            created_by_id=user.id,
        )
        db.add(schedule)
        await db.flush()

        if in_lead_window(schedule.due_date, schedule.lead_days):
            task = self._due_soon_task(schedule, plan, user.id)
            db.add(task)
            if schedule.assigned_to_id:
                alert_service.create_alert(
                    db,
                    schedule.assigned_to_id,
                    task.title,
                    task.description,
                    AlertType.REVIEW_DUE_SOON,
                    link_url=f"/plans/{plan.id}",
                    related_entity_type="REVIEW_SCHEDULE",
                    related_entity_id=schedule.id,
                )
            await db.flush()

        logger.info(f"[Reviews] Schedule {schedule.id} ({schedule.schedule_type.value}) created for plan {plan.id}")
        return schedule

    async def list_schedules(self, db: AsyncSession, plan_id: str, status: Optional[ReviewScheduleStatus] = None,
                             schedule_type: Optional[ScheduleType] = None) -> List[ReviewSchedule]:
        query = select(ReviewSchedule).where(ReviewSchedule.plan_instance_id == plan_id)
        if status:
            query = query.where(ReviewSchedule.status == status)
        if schedule_type:
            query = query.where(ReviewSchedule.schedule_type == schedule_type)
        result = await db.execute(query.order_by(ReviewSchedule.due_date.asc()))
        return list(result.scalars().all())

    async def get_schedule(self, db: AsyncSession, schedule_id: str) -> ReviewSchedule:
        schedule = await db.get(ReviewSchedule, schedule_id)
        if schedule is None:
            raise ReviewScheduleNotFoundError(schedule_id)
        return schedule

    async def tasks_for_schedule(self, db: AsyncSession, schedule_id: str) -> List[ComplianceTask]:
        result = await db.execute(
            select(ComplianceTask)
            .where(ComplianceTask.review_schedule_id == schedule_id)
            .order_by(ComplianceTask.created_at.asc())
        )
        return list(result.scalars().all())

    async def update_schedule(self, db: AsyncSession, schedule: ReviewSchedule, data: Dict[str, Any]) -> ReviewSchedule:
        if schedule.status == ReviewScheduleStatus.COMPLETE:
            raise ReviewScheduleAlreadyCompleteError(schedule.id)
        for key, value in data.items():
            setattr(schedule, key, value)
        await db.flush()
        return schedule

    async def complete_schedule(self, db: AsyncSession, schedule: ReviewSchedule, user: AppUser,
                                notes: Optional[str] = None) -> ReviewSchedule:
        if schedule.status == ReviewScheduleStatus.COMPLETE:
            raise ReviewScheduleAlreadyCompleteError(schedule.id)

        now = datetime.utcnow()
        schedule.status = ReviewScheduleStatus.COMPLETE
        schedule.completed_at = now
        schedule.completed_by_id = user.id
        if notes:
            schedule.notes = f"{schedule.notes or ''}\n\nCompletion notes: {notes}".strip()

        for task in await self.tasks_for_schedule(db, schedule.id):
            if task.status in ACTIVE_TASK_STATUSES:
                task.status = ComplianceTaskStatus.COMPLETE
                task.completed_at = now
                task.completed_by_id = user.id

        await db.flush()
        return schedule

    async def delete_schedule(self, db: AsyncSession, schedule: ReviewSchedule) -> None:
        for task in await self.tasks_for_schedule(db, schedule.id):
            await db.delete(task)
        await db.delete(schedule)
        await db.flush()

    async def dashboard(self, db: AsyncSession, days: Optional[int] = None) -> Dict[str, Any]:
        now = datetime.utcnow()
        horizon = now + timedelta(days=days or settings.REVIEW_DASHBOARD_DAYS)
        result = await db.execute(
            select(ReviewSchedule)
            .where(
                ReviewSchedule.status.in_([ReviewScheduleStatus.OPEN, ReviewScheduleStatus.OVERDUE]),
                ReviewSchedule.due_date <= horizon,
            )
            .order_by(ReviewSchedule.due_date.asc())
        )
        schedules = list(result.scalars().all())
        overdue = [s for s in schedules if s.due_date < now or s.status == ReviewScheduleStatus.OVERDUE]
        upcoming = [s for s in schedules if s not in overdue]
        thirty_days = now + timedelta(days=30)
        return {
            "overdue": overdue,
            "upcoming": upcoming,
            "summary": {
                "overdue_count": len(overdue),
                "upcoming_count": len(upcoming),
                "total_due_within_30_days": len([s for s in schedules if s.due_date <= thirty_days]),
            },
        }

    async def sweep(self, db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Flag OPEN schedules that are past due or inside their lead window.

        Past due schedules become OVERDUE with a REVIEW_OVERDUE task; schedules
        inside the lead window get a REVIEW_DUE_SOON task unless one exists.
        """
        now = now or datetime.utcnow()
        result = await db.execute(select(ReviewSchedule).where(ReviewSchedule.status == ReviewScheduleStatus.OPEN))
        counts = {"marked_overdue": 0, "due_soon_tasks": 0}

        for schedule in result.scalars().all():
            plan = await db.get(PlanInstance, schedule.plan_instance_id)
            if plan is None:
                continue
            existing = {t.task_type for t in await self.tasks_for_schedule(db, schedule.id)}
            label = schedule_type_label(schedule.schedule_type)

            if schedule.due_date < now:
                schedule.status = ReviewScheduleStatus.OVERDUE
                task = ComplianceTask(
                    task_type=ComplianceTaskType.REVIEW_OVERDUE,
                    title=f"{label} overdue",
                    description=f"Review for {plan.student.full_name} was due on {schedule.due_date:%m/%d/%Y}",
                    due_date=schedule.due_date,
                    priority=1,
                    assigned_to_id=schedule.assigned_to_id,
                    review_schedule_id=schedule.id,
                    plan_instance_id=plan.id,
                    student_id=plan.student_id,
                )
                db.add(task)
                if schedule.assigned_to_id:
                    alert_service.create_alert(
                        db, schedule.assigned_to_id, task.title, task.description, AlertType.REVIEW_OVERDUE,
                        link_url=f"/plans/{plan.id}", related_entity_type="REVIEW_SCHEDULE",
                        related_entity_id=schedule.id,
                    )
                counts["marked_overdue"] += 1
            elif in_lead_window(schedule.due_date, schedule.lead_days, now) \
                    and ComplianceTaskType.REVIEW_DUE_SOON not in existing:
                task = self._due_soon_task(schedule, plan, None)
                db.add(task)
                if schedule.assigned_to_id:
                    alert_service.create_alert(
                        db, schedule.assigned_to_id, task.title, task.description, AlertType.REVIEW_DUE_SOON,
                        link_url=f"/plans/{plan.id}", related_entity_type="REVIEW_SCHEDULE",
                        related_entity_id=schedule.id,
                    )
                counts["due_soon_tasks"] += 1

        await db.flush()
        logger.info(f"[Reviews] Sweep complete: {counts}")
        return counts

    # ----------------------------------------
    # Compliance tasks
    # ----------------------------------------

    async def create_task(self, db: AsyncSession, user: AppUser, data: Dict[str, Any]) -> ComplianceTask:
        task = ComplianceTask(created_by_id=user.id, **data)
        db.add(task)
        await db.flush()
        if task.assigned_to_id and task.assigned_to_id != user.id:
            alert_service.create_alert(
                db, task.assigned_to_id, task.title, task.description or task.title, AlertType.COMPLIANCE_TASK,
                related_entity_type="COMPLIANCE_TASK", related_entity_id=task.id,
            )
            await db.flush()
        return task

    async def list_tasks(self, db: AsyncSession, status: Optional[ComplianceTaskStatus] = None,
                         task_type: Optional[ComplianceTaskType] = None,
                         assigned_to: Optional[str] = None) -> List[ComplianceTask]:
        query = select(ComplianceTask)
        if status:
            query = query.where(ComplianceTask.status == status)
        if task_type:
            query = query.where(ComplianceTask.task_type == task_type)
        if assigned_to:
            query = query.where(ComplianceTask.assigned_to_id == assigned_to)
        result = await db.execute(
            query.order_by(ComplianceTask.priority.asc(), ComplianceTask.due_date.asc(), ComplianceTask.created_at.desc())
        )
        return list(result.scalars().all())

    async def my_tasks(self, db: AsyncSession, user: AppUser) -> List[ComplianceTask]:
        result = await db.execute(
            select(ComplianceTask)
            .where(ComplianceTask.assigned_to_id == user.id, ComplianceTask.status.in_(ACTIVE_TASK_STATUSES))
            .order_by(ComplianceTask.priority.asc(), ComplianceTask.due_date.asc())
        )
        return list(result.scalars().all())

    async def task_dashboard(self, db: AsyncSession, user: Optional[AppUser] = None) -> Dict[str, Any]:
        query = select(ComplianceTask.status, func.count(ComplianceTask.id)).group_by(ComplianceTask.status)
        if user is not None:
            query = query.where(ComplianceTask.assigned_to_id == user.id)
        rows = (await db.execute(query)).all()
        by_status = {s.value: 0 for s in ComplianceTaskStatus}
        for status, count in rows:
            by_status[status.value] = count

        overdue_query = select(func.count(ComplianceTask.id)).where(
            ComplianceTask.status.in_(ACTIVE_TASK_STATUSES),
            ComplianceTask.due_date < datetime.utcnow(),
        )
        if user is not None:
            overdue_query = overdue_query.where(ComplianceTask.assigned_to_id == user.id)
        overdue = (await db.execute(overdue_query)).scalar() or 0
        return {"by_status": by_status, "overdue": overdue, "total": sum(by_status.values())}

    async def get_task(self, db: AsyncSession, task_id: str) -> ComplianceTask:
        task = await db.get(ComplianceTask, task_id)
        if task is None:
            raise ComplianceTaskNotFoundError(task_id)
        return task

    async def update_task(self, db: AsyncSession, task: ComplianceTask, data: Dict[str, Any]) -> ComplianceTask:
        for key, value in data.items():
            setattr(task, key, value)
        await db.flush()
        return task

    async def complete_task(self, db: AsyncSession, task: ComplianceTask, user: AppUser) -> ComplianceTask:
        if task.status == ComplianceTaskStatus.COMPLETE:
            raise ComplianceTaskAlreadyCompleteError(task.id)
        task.status = ComplianceTaskStatus.COMPLETE
        task.completed_at = datetime.utcnow()
        task.completed_by_id = user.id
        await db.flush()
        return task

    async def dismiss_task(self, db: AsyncSession, task: ComplianceTask, user: AppUser,
                           reason: Optional[str] = None) -> ComplianceTask:
        if task.status == ComplianceTaskStatus.COMPLETE:
            raise ComplianceTaskAlreadyCompleteError(task.id)
        task.status = ComplianceTaskStatus.DISMISSED
        task.dismissed_reason = reason
        task.completed_at = datetime.utcnow()
        task.completed_by_id = user.id
        await db.flush()
        return task


review_service = ReviewService()
