"""
Meeting workflow: scheduling, evidence, held/close/cancel transitions and
the consent gate for implementing a plan.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.config import settings
from myteacher.core.exceptions import (
    EnforcementFailedError,
    MeetingNotFoundError,
    PlanNotFoundError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from myteacher.core.logging_config import logger
from myteacher.models.alert import AlertType
from myteacher.models.meeting import (
    MeetingEvidence,
    MeetingStatus,
    MeetingType,
    PlanMeeting,
)
from myteacher.models.plan import PlanInstance, PlanStatus, PlanTypeCode
from myteacher.models.rule_pack import RuleEvidenceType, RulePlanType, RuleScopeType
from myteacher.models.student import Student
from myteacher.models.user import AppUser
from myteacher.services import rules_evaluator
from myteacher.services.alert_service import alert_service

PLAN_TYPE_TO_RULE_PLAN_TYPE = {
    PlanTypeCode.IEP: RulePlanType.IEP,
    PlanTypeCode.FIVE_OH_FOUR: RulePlanType.PLAN504,
    PlanTypeCode.BEHAVIOR_PLAN: RulePlanType.BIP,
}


def enforcement_scope(student: Optional[Student]) -> Tuple[str, str, str]:
    """(scope type, scope id, state code) used to resolve a student's rule pack"""
    jurisdiction = student.jurisdiction if student is not None else None
    if jurisdiction is None:
        state = settings.DEFAULT_STATE_CODE.upper()
        return RuleScopeType.STATE.value, state, state
    return RuleScopeType.DISTRICT.value, jurisdiction.district_code, jurisdiction.state_code


class MeetingService:
    """Service for plan meetings"""

    async def get_meeting(self, db: AsyncSession, meeting_id: str) -> PlanMeeting:
        meeting = await db.get(PlanMeeting, meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(meeting_id)
        return meeting

    async def list_for_student(self, db: AsyncSession, student_id: str, plan_type: Optional[RulePlanType] = None,
                               status: Optional[MeetingStatus] = None) -> List[PlanMeeting]:
        query = select(PlanMeeting).where(PlanMeeting.student_id == student_id)
        if plan_type:
            query = query.where(PlanMeeting.plan_type == plan_type)
        if status:
            query = query.where(PlanMeeting.status == status)
        result = await db.execute(query.order_by(PlanMeeting.scheduled_at.desc()))
        return list(result.scalars().all())

    async def evaluate(self, db: AsyncSession, meeting: PlanMeeting) -> rules_evaluator.EnforcementResult:
        student = await db.get(Student, meeting.student_id)
        scope_type, scope_id, state_code = enforcement_scope(student)
        pack = await rules_evaluator.get_active_rule_pack(
            db, scope_type, scope_id, meeting.plan_type.value, state_code
        )
        return await rules_evaluator.evaluate_meeting(db, meeting, pack)

    async def create_meeting(self, db: AsyncSession, student: Student, user: AppUser,
                             data: Dict[str, Any]) -> PlanMeeting:
        result = await db.execute(select(MeetingType).where(MeetingType.code == data.pop("meeting_type")))
        meeting_type = result.scalar_one_or_none()
        if meeting_type is None:
            raise ValidationFailedError("Unknown meeting type", field="meeting_type")

        plan_id = data.get("plan_instance_id")
        if plan_id:
            plan = await db.get(PlanInstance, plan_id)
            if plan is None or plan.student_id != student.id:
                raise PlanNotFoundError(plan_id)

        continued_from = data.get("continued_from_meeting_id")
        if continued_from:
            original = await db.get(PlanMeeting, continued_from)
            if original is None or original.student_id != student.id:
                raise ValidationFailedError("Original meeting not found for this student",
                                            field="continued_from_meeting_id")
            data["is_continued"] = True

        meeting = PlanMeeting(student_id=student.id, meeting_type_id=meeting_type.id, created_by_id=user.id, **data)
        meeting.meeting_type = meeting_type
        meeting.evidence = []
        db.add(meeting)
        await db.flush()

        if student.teacher_id:
            alert_service.create_alert(
                db,
                student.teacher_id,
                f"{meeting_type.name} scheduled",
                f"{meeting_type.name} for {student.full_name} on {meeting.scheduled_at:%m/%d/%Y}",
                AlertType.MEETING_SCHEDULED,
                link_url=f"/students/{student.id}/meetings/{meeting.id}",
                related_entity_type="MEETING",
                related_entity_id=meeting.id,
            )
            await db.flush()

        logger.info(f"[Meetings] Meeting {meeting.id} scheduled for student {student.id}")
        return meeting

    async def update_meeting(self, db: AsyncSession, meeting: PlanMeeting, data: Dict[str, Any]) -> PlanMeeting:
        for key, value in data.items():
            setattr(meeting, key, value)
        await db.flush()
        return meeting

    async def upsert_evidence(self, db: AsyncSession, meeting: PlanMeeting, user: AppUser,
                              evidence_type_key: str, data: Optional[Dict[str, Any]] = None) -> MeetingEvidence:
        result = await db.execute(select(RuleEvidenceType).where(RuleEvidenceType.key == evidence_type_key))
        evidence_type = result.scalar_one_or_none()
        if evidence_type is None:
            raise ValidationFailedError(f"Unknown evidence type: {evidence_type_key}", field="evidence_type_key")

        data = data or {}
        evidence = next((e for e in meeting.evidence if e.evidence_type_id == evidence_type.id), None)
        if evidence is None:
            evidence = MeetingEvidence(meeting_id=meeting.id, evidence_type_id=evidence_type.id, created_by_id=user.id)
            evidence.evidence_type = evidence_type
            meeting.evidence.append(evidence)

        evidence.note = data.get("note", evidence.note)
        evidence.evidence_date = data.get("evidence_date") or evidence.evidence_date or datetime.utcnow()
        evidence.delivery_method = data.get("delivery_method", evidence.delivery_method)
        evidence.file_storage_key = data.get("file_storage_key", evidence.file_storage_key)
        await db.flush()
        return evidence

    async def delete_evidence(self, db: AsyncSession, meeting: PlanMeeting, evidence_id: str) -> None:
        evidence = next((e for e in meeting.evidence if e.id == evidence_id), None)
        if evidence is None:
            raise ResourceNotFoundError("Meeting evidence", evidence_id)
        meeting.evidence.remove(evidence)
        await db.flush()

    async def mark_held(self, db: AsyncSession, meeting: PlanMeeting, held_at: Optional[datetime] = None) -> PlanMeeting:
        if meeting.status != MeetingStatus.SCHEDULED:
            raise ValidationFailedError(f"Only scheduled meetings can be marked held (current: {meeting.status.value})",
                                        field="status")
        meeting.status = MeetingStatus.HELD
        meeting.held_at = held_at or datetime.utcnow()
        await db.flush()
        return meeting

    async def close(self, db: AsyncSession, meeting: PlanMeeting) -> Tuple[PlanMeeting, rules_evaluator.EnforcementResult]:
        if meeting.status in (MeetingStatus.CLOSED, MeetingStatus.CANCELED):
            raise ValidationFailedError(f"Meeting is already {meeting.status.value.lower()}", field="status")
        result = await self.evaluate(db, meeting)
        if not result.can_close:
            logger.log_enforcement(meeting.id, "close", result.errors)
            raise EnforcementFailedError("Meeting cannot be closed until compliance requirements are met", result.errors)
        meeting.status = MeetingStatus.CLOSED
        meeting.closed_at = datetime.utcnow()
        await db.flush()
        return meeting, result

    async def cancel(self, db: AsyncSession, meeting: PlanMeeting) -> PlanMeeting:
        if meeting.status == MeetingStatus.CLOSED:
            raise ValidationFailedError("Closed meetings cannot be canceled", field="status")
        meeting.status = MeetingStatus.CANCELED
        await db.flush()
        return meeting

    async def mark_docs_sent(self, db: AsyncSession, meeting: PlanMeeting, user: AppUser, stage: str,
                             delivery_method=None, delivered_at: Optional[datetime] = None) -> PlanMeeting:
        """stage is 'pre' or 'post'; also records the matching evidence"""
        delivered_at = delivered_at or datetime.utcnow()
        method = delivery_method or meeting.parent_delivery_method
        if stage == "pre":
            meeting.pre_docs_delivered_at = delivered_at
            meeting.pre_docs_delivery_method = method
            evidence_key = "PARENT_DOCS_SENT"
        else:
            meeting.post_docs_delivered_at = delivered_at
            meeting.post_docs_delivery_method = method
            evidence_key = "FINAL_DOC_SENT"
        await self.upsert_evidence(db, meeting, user, evidence_key,
                                   {"evidence_date": delivered_at, "delivery_method": method})
        return meeting

    async def implement_plan(self, db: AsyncSession, plan: PlanInstance) -> PlanInstance:
        """
        Activate a plan once the consent gate of its latest meeting passes.
        Plans without a meeting are activated directly.
        """
        result = await db.execute(
            select(PlanMeeting)
            .where(PlanMeeting.plan_instance_id == plan.id, PlanMeeting.status != MeetingStatus.CANCELED)
            .order_by(PlanMeeting.scheduled_at.desc())
            .limit(1)
        )
        meeting = result.scalar_one_or_none()
        if meeting is not None:
            enforcement = await self.evaluate(db, meeting)
            if not enforcement.can_implement:
                errors = [e for e in enforcement.errors if e["rule_key"] == rules_evaluator.CONSENT_GATE_RULE]
                logger.log_enforcement(meeting.id, "implement", errors)
                raise EnforcementFailedError(
                    "Parent consent is required before this plan can be implemented",
                    errors,
                    code="ERR_CONSENT_REQUIRED",
                )
        if plan.status == PlanStatus.DRAFT:
            plan.status = PlanStatus.ACTIVE
        await db.flush()
        return plan


meeting_service = MeetingService()
