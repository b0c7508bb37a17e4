"""
Dispute case service: intake, timeline events, attachments and export
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import (
    DisputeAttachmentNotFoundError,
    DisputeCaseNotFoundError,
    PlanNotFoundError,
)
from myteacher.core.logging_config import logger
from myteacher.models.dispute import (
    DisputeAttachment,
    DisputeCase,
    DisputeCaseStatus,
    DisputeCaseType,
    DisputeEvent,
    DisputeEventType,
)
from myteacher.models.plan import PlanInstance
from myteacher.models.student import Student
from myteacher.models.user import AppUser
from myteacher.utils.pdf_generator import render_dispute_pdf

CASE_TYPE_INFO = {
    DisputeCaseType.SECTION504_COMPLAINT: ("Section 504 Complaint", "Complaint related to Section 504 accommodations or services"),
    DisputeCaseType.IEP_DISPUTE: ("IEP Dispute", "Dispute regarding IEP services, goals, or placement"),
    DisputeCaseType.RECORDS_REQUEST: ("Records Request", "Request for educational records or documentation"),
    DisputeCaseType.OTHER: ("Other", "Other dispute or complaint type"),
}

EVENT_TYPE_INFO = {
    DisputeEventType.INTAKE: ("Intake", "Initial case filing or intake"),
    DisputeEventType.MEETING: ("Meeting", "Meeting held regarding the case"),
    DisputeEventType.RESPONSE_SENT: ("Response Sent", "Response or communication sent"),
    DisputeEventType.DOCUMENT_RECEIVED: ("Document Received", "Document or evidence received"),
    DisputeEventType.RESOLUTION: ("Resolution", "Case resolution or settlement"),
    DisputeEventType.STATUS_CHANGE: ("Status Change", "Case status changed"),
    DisputeEventType.NOTE: ("Note", "General note or comment"),
}

RESOLVED_STATUSES = (DisputeCaseStatus.RESOLVED, DisputeCaseStatus.CLOSED)


def case_types() -> List[Dict[str, str]]:
    return [{"value": t.value, "label": label, "description": desc} for t, (label, desc) in CASE_TYPE_INFO.items()]


def event_types() -> List[Dict[str, str]]:
    return [{"value": t.value, "label": label, "description": desc} for t, (label, desc) in EVENT_TYPE_INFO.items()]


def format_case_number(year: int, sequence: int) -> str:
    return f"DC-{year}-{sequence:04d}"


class DisputeService:
    """Service for dispute cases"""

    async def generate_case_number(self, db: AsyncSession, year: Optional[int] = None) -> str:
        """Next DC-<year>-NNNN, skipping numbers already taken"""
        year = year or datetime.utcnow().year
        prefix = f"DC-{year}-"
        result = await db.execute(
            select(func.count(DisputeCase.id)).where(DisputeCase.case_number.like(f"{prefix}%"))
        )
        sequence = (result.scalar() or 0) + 1
        while True:
            candidate = format_case_number(year, sequence)
            taken = await db.execute(select(DisputeCase.id).where(DisputeCase.case_number == candidate))
            if taken.scalar_one_or_none() is None:
                return candidate
            sequence += 1

    async def create_case(self, db: AsyncSession, student: Student, user: AppUser,
                          data: Dict[str, Any]) -> DisputeCase:
        plan_id = data.get("plan_instance_id")
        if plan_id:
            plan = await db.get(PlanInstance, plan_id)
            if plan is None or plan.student_id != student.id:
                raise PlanNotFoundError(plan_id)

        case = DisputeCase(
            case_number=await self.generate_case_number(db),
            student_id=student.id,
            plan_instance_id=plan_id,
            case_type=data["case_type"],
            summary=data["summary"],
            filed_date=data.get("filed_date") or datetime.utcnow(),
            external_reference=data.get("external_reference"),
            assigned_to_id=data.get("assigned_to_id"),
            created_by_id=user.id,
        )
        case.student = student
        db.add(case)
        await db.flush()

        db.add(DisputeEvent(
            dispute_case_id=case.id,
            event_type=DisputeEventType.INTAKE,
            event_date=case.filed_date,
            summary="Case filed",
            details=case.summary,
            created_by_id=user.id,
        ))
        await db.flush()
        logger.info(f"[Disputes] Case {case.case_number} filed for student {student.id}")
        return case

    async def list_cases(self, db: AsyncSession, student_id: Optional[str] = None,
                         status: Optional[DisputeCaseStatus] = None, case_type: Optional[DisputeCaseType] = None,
                         assigned_to: Optional[str] = None) -> List[DisputeCase]:
        query = select(DisputeCase)
        if student_id:
            query = query.where(DisputeCase.student_id == student_id)
        if status:
            query = query.where(DisputeCase.status == status)
        if case_type:
            query = query.where(DisputeCase.case_type == case_type)
        if assigned_to:
            query = query.where(DisputeCase.assigned_to_id == assigned_to)
        result = await db.execute(query.order_by(DisputeCase.filed_date.desc()))
        return list(result.scalars().all())

    async def event_counts(self, db: AsyncSession, case_ids: List[str]) -> Dict[str, int]:
        if not case_ids:
            return {}
        result = await db.execute(
            select(DisputeEvent.dispute_case_id, func.count(DisputeEvent.id))
            .where(DisputeEvent.dispute_case_id.in_(case_ids))
            .group_by(DisputeEvent.dispute_case_id)
        )
        return {case_id: count for case_id, count in result.all()}

    async def get_case(self, db: AsyncSession, case_id: str) -> DisputeCase:
        case = await db.get(DisputeCase, case_id)
        if case is None:
            raise DisputeCaseNotFoundError(case_id)
        return case

    async def update_case(self, db: AsyncSession, case: DisputeCase, user: AppUser,
                          data: Dict[str, Any]) -> DisputeCase:
        new_status = data.pop("status", None)
        for key, value in data.items():
            setattr(case, key, value)

        if new_status is not None and new_status != case.status:
            old_status = case.status
            case.status = new_status
            if new_status in RESOLVED_STATUSES and case.resolved_date is None:
                case.resolved_date = datetime.utcnow()
            db.add(DisputeEvent(
                dispute_case_id=case.id,
                event_type=DisputeEventType.RESOLUTION if new_status == DisputeCaseStatus.RESOLVED
                else DisputeEventType.STATUS_CHANGE,
                summary=f"Status changed from {old_status.value} to {new_status.value}",
                details=data.get("resolution_notes"),
                created_by_id=user.id,
            ))

        await db.flush()
        return case

    async def add_event(self, db: AsyncSession, case: DisputeCase, user: AppUser,
                        data: Dict[str, Any]) -> DisputeEvent:
        event = DisputeEvent(
            dispute_case_id=case.id,
            event_type=data["event_type"],
            event_date=data.get("event_date") or datetime.utcnow(),
            summary=data["summary"],
            details=data.get("details"),
            created_by_id=user.id,
        )
        db.add(event)
        await db.flush()
        return event

    async def list_events(self, db: AsyncSession, case_id: str) -> List[DisputeEvent]:
        result = await db.execute(
            select(DisputeEvent)
            .where(DisputeEvent.dispute_case_id == case_id)
            .order_by(DisputeEvent.event_date.asc(), DisputeEvent.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_attachments(self, db: AsyncSession, case_id: str) -> List[DisputeAttachment]:
        result = await db.execute(
            select(DisputeAttachment)
            .where(DisputeAttachment.dispute_case_id == case_id)
            .order_by(DisputeAttachment.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_attachment(self, db: AsyncSession, attachment_id: str) -> DisputeAttachment:
        attachment = await db.get(DisputeAttachment, attachment_id)
        if attachment is None:
            raise DisputeAttachmentNotFoundError(attachment_id)
        return attachment

    async def dashboard(self, db: AsyncSession) -> Dict[str, Any]:
        rows = (await db.execute(
            select(DisputeCase.status, func.count(DisputeCase.id)).group_by(DisputeCase.status)
        )).all()
        counts = {s: 0 for s in DisputeCaseStatus}
        for status, count in rows:
            counts[status] = count

        recent = await db.execute(
            select(DisputeCase)
            .where(DisputeCase.status.in_([DisputeCaseStatus.OPEN, DisputeCaseStatus.IN_REVIEW]))
            .order_by(DisputeCase.filed_date.desc())
            .limit(10)
        )
        return {
            "summary": {
                "open": counts[DisputeCaseStatus.OPEN],
                "in_review": counts[DisputeCaseStatus.IN_REVIEW],
                "resolved": counts[DisputeCaseStatus.RESOLVED],
                "closed": counts[DisputeCaseStatus.CLOSED],
                "active": counts[DisputeCaseStatus.OPEN] + counts[DisputeCaseStatus.IN_REVIEW],
            },
            "recent_cases": list(recent.scalars().all()),
        }

    async def export_pdf(self, db: AsyncSession, case: DisputeCase) -> bytes:
        events = await self.list_events(db, case.id)
        case_dict = {
            "case_number": case.case_number,
            "student_name": case.student.full_name if case.student else "",
            "case_type": case.case_type.value,
            "status": case.status.value,
            "filed_date": case.filed_date.isoformat() if case.filed_date else None,
            "resolved_date": case.resolved_date.isoformat() if case.resolved_date else None,
            "summary": case.summary,
            "resolution_notes": case.resolution_notes,
        }
        event_rows = [
            {
                "event_type": e.event_type.value,
                "event_date": e.event_date.isoformat() if e.event_date else None,
                "summary": e.summary,
                "details": e.details,
            }
            for e in events
        ]
        return render_dispute_pdf(case_dict, event_rows)


dispute_service = DisputeService()
