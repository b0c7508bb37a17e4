"""
Rules Evaluator - compliance rule resolution and meeting enforcement

Handles:
- Resolving the active rule pack for a scope (SCHOOL -> DISTRICT -> STATE)
- Business-day deadline calculation for parent document delivery
- Evaluating whether a meeting may be closed and a plan implemented
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.logging_config import logger
from myteacher.models.meeting import PlanMeeting, MeetingStatus, MeetingTypeCode, ConsentStatus
from myteacher.models.rule_pack import RulePack, RulePlanType, RuleScopeType, RuleEvidenceType

CONSENT_GATE_RULE = "INITIAL_IEP_CONSENT_GATE"

EVIDENCE_FALLBACK_NAMES = {
    "CONFERENCE_NOTES": "Conference Notes",
    "CONSENT_FORM": "Parent Consent Form",
    "NOTICE_WAIVER": "Notice Waiver",
    "RECORDING_ACK": "Recording Acknowledgment",
    "PARENT_DOCS_SENT": "Pre-Meeting Documents Sent",
    "FINAL_DOC_SENT": "Final Document Sent",
}


@dataclass
class ResolvedRulePack:
    id: str
    name: str
    version: int
    scope_type: str
    scope_id: str
    plan_type: str
    # rule key -> {"config": dict | None, "is_enabled": bool}
    rules: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    # rule key -> [{"evidence_type_key": str, "is_required": bool}]
    evidence_requirements: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def rule(self, key: str) -> Optional[Dict[str, Any]]:
        """Enabled rule entry or None"""
        entry = self.rules.get(key)
        if entry and entry.get("is_enabled"):
            return entry
        return None

    def config(self, key: str) -> Dict[str, Any]:
        entry = self.rule(key)
        return (entry or {}).get("config") or {}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DueDates:
    pre_docs_deadline: Optional[datetime] = None
    post_docs_deadline: Optional[datetime] = None
    us_mail_pre_docs_deadline: Optional[datetime] = None
    us_mail_post_docs_deadline: Optional[datetime] = None


@dataclass
class EnforcementResult:
    can_close: bool = True
    can_implement: bool = True
    errors: List[Dict[str, str]] = field(default_factory=list)
    warnings: List[Dict[str, str]] = field(default_factory=list)
    required_evidence: List[Dict[str, Any]] = field(default_factory=list)
    due_dates: DueDates = field(default_factory=DueDates)

    def error(self, code: str, message: str, rule_key: str = "") -> None:
        self.errors.append({"code": code, "message": message, "rule_key": rule_key})

    def warning(self, code: str, message: str, rule_key: str = "") -> None:
        self.warnings.append({"code": code, "message": message, "rule_key": rule_key})

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["due_dates"] = {
            k: v.isoformat() if v else None for k, v in asdict(self.due_dates).items()
        }
        return data


# ==================== RULE PACK RESOLUTION ====================

def scope_fallback_chain(scope_type: str, scope_id: str,
                         state_code: Optional[str] = None) -> List[Tuple[RuleScopeType, str]]:
    """
    Ordered (scope type, scope id) candidates starting at the requested level.

    The state candidate is the explicit state_code when given, otherwise the
    first two characters of scope_id.
    """
    scope_type = RuleScopeType(scope_type)
    chain: List[Tuple[RuleScopeType, str]] = []
    if scope_type == RuleScopeType.SCHOOL:
        chain.append((RuleScopeType.SCHOOL, scope_id))
    if scope_type in (RuleScopeType.SCHOOL, RuleScopeType.DISTRICT):
        chain.append((RuleScopeType.DISTRICT, scope_id))
    state = (state_code or scope_id[:2]).upper()
    chain.append((RuleScopeType.STATE, state))
    return chain


def resolve_pack(pack: RulePack) -> ResolvedRulePack:
    resolved = ResolvedRulePack(
        id=pack.id,
        name=pack.name,
        version=pack.version,
        scope_type=pack.scope_type.value,
        scope_id=pack.scope_id,
        plan_type=pack.plan_type.value,
    )
    for rule in sorted(pack.rules, key=lambda r: r.sort_order):
        if not rule.is_enabled:
            continue
        key = rule.rule_definition.key
        resolved.rules[key] = {"config": rule.config, "is_enabled": rule.is_enabled}
        if rule.evidence_requirements:
            resolved.evidence_requirements[key] = [
                {"evidence_type_key": req.evidence_type.key, "is_required": req.is_required}
                for req in rule.evidence_requirements
            ]
    return resolved


async def get_active_rule_pack(
    db: AsyncSession,
    scope_type: str,
    scope_id: str,
    plan_type: str,
    state_code: Optional[str] = None,
) -> Optional[ResolvedRulePack]:
    """
    Find the active, currently effective pack for a scope.

    Candidates must match the plan type or ALL; the highest version wins at
    the first scope level that has any candidate.
    """
    now = datetime.utcnow()
    plan_type = RulePlanType(plan_type)

    for candidate_type, candidate_id in scope_fallback_chain(scope_type, scope_id, state_code):
        result = await db.execute(
            select(RulePack)
            .where(
                RulePack.scope_type == candidate_type,
                RulePack.scope_id == candidate_id,
                RulePack.is_active.is_(True),
                RulePack.effective_from <= now,
                or_(RulePack.effective_to.is_(None), RulePack.effective_to >= now),
                RulePack.plan_type.in_([plan_type, RulePlanType.ALL]),
            )
            .order_by(RulePack.version.desc())
            .limit(1)
        )
        pack = result.scalar_one_or_none()
        if pack:
            logger.debug(f"[Rules] Resolved {candidate_type.value}:{candidate_id} -> {pack.name} v{pack.version}")
            return resolve_pack(pack)

    return None


# ==================== DEADLINES ====================

def add_business_days(start: datetime, days: int) -> datetime:
    """Step one calendar day at a time, counting only Monday to Friday"""
    result = start
    step = timedelta(days=1 if days >= 0 else -1)
    added = 0
    while added < abs(days):
        result = result + step
        if result.weekday() < 5:
            added += 1
    return result


def calculate_due_dates(meeting_date: datetime, pack: Optional[ResolvedRulePack]) -> DueDates:
    due = DueDates()
    if pack is None:
        return due

    pre = pack.rule("PRE_MEETING_DOCS_DAYS")
    if pre and pre.get("config"):
        due.pre_docs_deadline = add_business_days(meeting_date, -(pre["config"].get("days") or 5))

    post = pack.rule("POST_MEETING_DOCS_DAYS")
    if post and post.get("config"):
        due.post_docs_deadline = add_business_days(meeting_date, post["config"].get("days") or 5)

    mail_pre = pack.rule("US_MAIL_PRE_MEETING_DAYS")
    if mail_pre and mail_pre.get("config") and due.pre_docs_deadline:
        due.us_mail_pre_docs_deadline = add_business_days(
            due.pre_docs_deadline, -(mail_pre["config"].get("days") or 3)
        )

    mail_post = pack.rule("US_MAIL_POST_MEETING_DAYS")
    if mail_post and mail_post.get("config") and due.post_docs_deadline:
        due.us_mail_post_docs_deadline = add_business_days(
            due.post_docs_deadline, -(mail_post["config"].get("days") or 3)
        )

    return due


# ==================== ENFORCEMENT ====================

def _require(result: EnforcementResult, names: Dict[str, str], key: str, provided: bool, rule_key: str) -> None:
    result.required_evidence.append({
        "evidence_type_key": key,
        "evidence_type_name": names.get(key) or EVIDENCE_FALLBACK_NAMES.get(key, key),
        "is_required": True,
        "is_provided": bool(provided),
        "rule_key": rule_key,
    })


async def evaluate_meeting(
    db: AsyncSession,
    meeting: Optional[PlanMeeting],
    pack: Optional[ResolvedRulePack],
) -> EnforcementResult:
    result = EnforcementResult()

    if meeting is None:
        result.can_close = False
        result.can_implement = False
        result.error("MEETING_NOT_FOUND", "Meeting not found")
        return result

    result.due_dates = calculate_due_dates(meeting.scheduled_at, pack)

    if pack is None:
        result.warning("NO_RULE_PACK", "No active rule pack found for this scope and plan type")
        return result

    types = (await db.execute(select(RuleEvidenceType))).scalars().all()
    names = {t.key: t.name for t in types}
    provided = {e.evidence_type.key for e in meeting.evidence}

    # Conference notes
    if pack.config("CONFERENCE_NOTES_REQUIRED").get("required"):
        has_notes = "CONFERENCE_NOTES" in provided
        _require(result, names, "CONFERENCE_NOTES", has_notes, "CONFERENCE_NOTES_REQUIRED")
        if not has_notes:
            result.can_close = False
            result.error(
                "MISSING_CONFERENCE_NOTES",
                "Conference notes are required before closing this meeting",
                "CONFERENCE_NOTES_REQUIRED",
            )

    # Initial IEP consent gate
    if (
        pack.rule(CONSENT_GATE_RULE)
        and meeting.meeting_type.code == MeetingTypeCode.INITIAL
        and pack.config(CONSENT_GATE_RULE).get("enabled")
    ):
        has_consent = "CONSENT_FORM" in provided or meeting.consent_status == ConsentStatus.OBTAINED
        _require(result, names, "CONSENT_FORM", has_consent, CONSENT_GATE_RULE)
        if not has_consent:
            result.can_implement = False
            result.error(
                "MISSING_CONSENT",
                "Parent consent is required before implementing an initial IEP",
                CONSENT_GATE_RULE,
            )

    # Continued meetings
    if meeting.is_continued and pack.rule("CONTINUED_MEETING_NOTICE_DAYS"):
        notice_days = pack.config("CONTINUED_MEETING_NOTICE_DAYS").get("days") or 10
        if meeting.continued_from_meeting_id:
            original = await db.get(PlanMeeting, meeting.continued_from_meeting_id)
            if original is not None:
                gap_days = (meeting.scheduled_at - original.scheduled_at).days
                if gap_days < notice_days:
                    has_waiver = "NOTICE_WAIVER" in provided or meeting.notice_waiver_signed
                    _require(result, names, "NOTICE_WAIVER", has_waiver, "CONTINUED_MEETING_NOTICE_DAYS")
                    if not has_waiver:
                        result.can_close = False
                        result.error(
                            "MISSING_NOTICE_WAIVER",
                            f"Continued meeting scheduled with less than {notice_days} days notice requires a waiver",
                            "CONTINUED_MEETING_NOTICE_DAYS",
                        )

        if (
            pack.config("CONTINUED_MEETING_MUTUAL_AGREEMENT").get("required")
            and meeting.mutual_agreement_for_continued_date is None
        ):
            result.can_close = False
            result.error(
                "MISSING_MUTUAL_AGREEMENT",
                "Mutual agreement for continued meeting date must be recorded",
                "CONTINUED_MEETING_MUTUAL_AGREEMENT",
            )

    # Audio recording
    if pack.config("AUDIO_RECORDING_RULE").get("staffMustRecordIfParentRecords") and meeting.parent_recording:
        if not meeting.staff_recording:
            result.can_close = False
            result.error(
                "STAFF_RECORDING_REQUIRED",
                "Staff recording is required when parent is recording",
                "AUDIO_RECORDING_RULE",
            )
        has_ack = "RECORDING_ACK" in provided
        _require(result, names, "RECORDING_ACK", has_ack, "AUDIO_RECORDING_RULE")
        if not has_ack:
            result.can_close = False
            result.error(
                "MISSING_RECORDING_ACK",
                "Recording acknowledgment is required when recording occurs",
                "AUDIO_RECORDING_RULE",
            )

    # Document delivery (warnings only)
    if pack.rule("PRE_MEETING_DOCS_DAYS"):
        sent = "PARENT_DOCS_SENT" in provided or meeting.pre_docs_delivered_at is not None
        _require(result, names, "PARENT_DOCS_SENT", sent, "PRE_MEETING_DOCS_DAYS")
        if not sent:
            result.warning(
                "PRE_DOCS_NOT_SENT",
                "Pre-meeting documents have not been marked as sent",
                "PRE_MEETING_DOCS_DAYS",
            )

    if pack.rule("POST_MEETING_DOCS_DAYS") and meeting.status == MeetingStatus.HELD:
        sent = "FINAL_DOC_SENT" in provided or meeting.post_docs_delivered_at is not None
        _require(result, names, "FINAL_DOC_SENT", sent, "POST_MEETING_DOCS_DAYS")
        if not sent:
            result.warning(
                "POST_DOCS_NOT_SENT",
                "Post-meeting documents have not been marked as sent",
                "POST_MEETING_DOCS_DAYS",
            )

    return result


async def evaluate_meeting_enforcement(
    db: AsyncSession,
    meeting_id: str,
    scope_type: str,
    scope_id: str,
    plan_type: str,
    state_code: Optional[str] = None,
) -> EnforcementResult:
    pack = await get_active_rule_pack(db, scope_type, scope_id, plan_type, state_code)
    meeting = await db.get(PlanMeeting, meeting_id)
    return await evaluate_meeting(db, meeting, pack)


async def can_close_meeting(db: AsyncSession, meeting_id: str, scope_type: str, scope_id: str,
                            plan_type: str, state_code: Optional[str] = None) -> Tuple[bool, List[Dict[str, str]]]:
    result = await evaluate_meeting_enforcement(db, meeting_id, scope_type, scope_id, plan_type, state_code)
    return result.can_close, result.errors


async def can_implement_plan(db: AsyncSession, meeting_id: str, scope_type: str, scope_id: str,
                             plan_type: str, state_code: Optional[str] = None) -> Tuple[bool, List[Dict[str, str]]]:
    result = await evaluate_meeting_enforcement(db, meeting_id, scope_type, scope_id, plan_type, state_code)
    return result.can_implement, [e for e in result.errors if e["rule_key"] == CONSENT_GATE_RULE]
