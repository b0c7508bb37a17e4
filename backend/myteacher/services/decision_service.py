"""
Decision ledger - recorded IEP team decisions.

Only IEP plans carry a ledger. Entries are never edited or deleted; a wrong
entry is voided with a reason.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import (
    DecisionAlreadyVoidedError,
    DecisionCreateForNonIepError,
    DecisionVoidRequiresReasonError,
    ValidationFailedError,
)
from myteacher.models.decision import DecisionLedgerEntry, DecisionStatus, DecisionType
from myteacher.models.meeting import PlanMeeting
from myteacher.models.plan import PlanInstance, PlanTypeCode
from myteacher.models.plan_version import PlanVersion
from myteacher.models.user import AppUser

DECISION_TYPE_INFO = {
    DecisionType.ELIGIBILITY_CATEGORY: ("Eligibility Category", "Determination of disability category"),
    DecisionType.PLACEMENT_LRE: ("Placement / LRE", "Least Restrictive Environment decision"),
    DecisionType.SERVICES_CHANGE: ("Services Change", "Changes to special education or related services"),
    DecisionType.GOALS_CHANGE: ("Goals Change", "Modifications to annual goals or objectives"),
    DecisionType.ACCOMMODATIONS_CHANGE: ("Accommodations Change", "Changes to accommodations or modifications"),
    DecisionType.ESY_DECISION: ("ESY Decision", "Extended School Year eligibility determination"),
    DecisionType.ASSESSMENT_PARTICIPATION: ("Assessment Participation", "State and district assessment participation decisions"),
    DecisionType.BEHAVIOR_SUPPORTS: ("Behavior Supports", "Behavioral intervention or support decisions"),
    DecisionType.TRANSITION_SERVICES: ("Transition Services", "Post-secondary transition planning decisions"),
    DecisionType.OTHER: ("Other", "Other plan-related decisions"),
}


def decision_types() -> list:
    return [
        {"value": t.value, "label": label, "description": description}
        for t, (label, description) in DECISION_TYPE_INFO.items()
    ]


def ensure_iep(plan: PlanInstance) -> None:
    if plan.plan_type.code != PlanTypeCode.IEP:
        raise DecisionCreateForNonIepError(plan.plan_type.code.value)


async def validate_references(db: AsyncSession, plan: PlanInstance,
                              meeting_id: Optional[str], plan_version_id: Optional[str]) -> None:
    """Referenced meeting and version must belong to the plan"""
    if meeting_id:
        meeting = await db.get(PlanMeeting, meeting_id)
        if meeting is None or meeting.plan_instance_id != plan.id:
            raise ValidationFailedError("Meeting not found or does not belong to this plan", field="meeting_id")
    if plan_version_id:
        version = await db.get(PlanVersion, plan_version_id)
        if version is None or version.plan_instance_id != plan.id:
            raise ValidationFailedError("Plan version not found or does not belong to this plan",
                                        field="plan_version_id")


def build_entry(plan: PlanInstance, user: AppUser, data: Dict[str, Any],
                plan_version_id: Optional[str] = None) -> DecisionLedgerEntry:
    return DecisionLedgerEntry(
        plan_instance_id=plan.id,
        plan_version_id=data.get("plan_version_id") or plan_version_id,
        meeting_id=data.get("meeting_id"),
        decision_type=DecisionType(data["decision_type"]),
        section_key=data.get("section_key"),
        summary=data["summary"],
        rationale=data["rationale"],
        options_considered=data.get("options_considered"),
        participants=data.get("participants"),
        decided_at=data.get("decided_at") or datetime.utcnow(),
        decided_by_id=user.id,
        status=DecisionStatus.ACTIVE,
    )


async def create_decision(db: AsyncSession, plan: PlanInstance, user: AppUser,
                          data: Dict[str, Any]) -> DecisionLedgerEntry:
    ensure_iep(plan)
    await validate_references(db, plan, data.get("meeting_id"), data.get("plan_version_id"))
    entry = build_entry(plan, user, data)
    db.add(entry)
    await db.flush()
    return entry


def void_decision(entry: DecisionLedgerEntry, user: AppUser, reason: Optional[str]) -> DecisionLedgerEntry:
    if not reason or not reason.strip():
        raise DecisionVoidRequiresReasonError()
    if entry.status == DecisionStatus.VOID:
        raise DecisionAlreadyVoidedError(entry.id)
    entry.status = DecisionStatus.VOID
    entry.voided_at = datetime.utcnow()
    entry.voided_by_id = user.id
    entry.void_reason = reason.strip()
    return entry
