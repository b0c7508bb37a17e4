"""
Reference catalog seeding.

Idempotent: each entry is inserted only when its natural key is missing, so
running at every startup is safe.
"""

from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.logging_config import logger
from myteacher.models.form_field import ControlType, FormFieldDefinition, FormFieldOption, FormType
from myteacher.models.meeting import MeetingType, MeetingTypeCode
from myteacher.models.plan import PlanSchema, PlanType, PlanTypeCode
from myteacher.models.rule_pack import RuleDefinition, RuleEvidenceType, RulePlanType
from myteacher.models.user import Jurisdiction


def _field(key: str, label: str, type_: str = "textarea", required: bool = False) -> Dict[str, Any]:
    return {"key": key, "label": label, "type": type_, "required": required}


PLAN_TYPES = [
    (PlanTypeCode.IEP, "Individualized Education Program", "Special education plan under IDEA"),
    (PlanTypeCode.FIVE_OH_FOUR, "504 Plan", "Accommodation plan under Section 504"),
    (PlanTypeCode.BEHAVIOR_PLAN, "Behavior Intervention Plan", "Plan addressing target behaviors"),
]

PLAN_SCHEMAS: Dict[PlanTypeCode, Dict[str, Any]] = {
    PlanTypeCode.IEP: {
        "name": "IEP Standard Form",
        "fields": {"sections": [
            {"key": "student_information", "title": "Student Information", "fields": [
                _field("primary_disability", "Primary Disability Category", "text", True),
                _field("iep_meeting_date", "IEP Meeting Date", "date", True),
                _field("annual_review_date", "Annual Review Date", "date", True),
                _field("parent_guardian_name", "Parent/Guardian Name", "text", True),
                _field("case_manager", "Case Manager", "text", True),
            ]},
            {"key": "present_levels", "title": "Present Levels", "fields": [
                _field("student_strengths", "Student Strengths", required=True),
                _field("parent_concerns", "Parent/Guardian Concerns for Enhancing Education", required=True),
                _field("academic_performance", "Present Level of Academic Performance", required=True),
                _field("functional_performance", "Present Level of Functional Performance", required=True),
                _field("disability_impact", "How Disability Affects Progress in General Curriculum"),
            ]},
            {"key": "goals", "title": "Goals", "fields": [
                _field("goals_list", "Annual Goals", "goals"),
            ]},
            {"key": "services", "title": "Services", "fields": [
                _field("special_education_services", "Special Education Services", "services_table"),
                _field("related_services", "Related Services", "services_table"),
                _field("supplementary_aids", "Supplementary Aids and Services"),
            ]},
            {"key": "lre_placement", "title": "Least Restrictive Environment", "fields": [
                _field("placement_decision", "Placement Decision"),
                _field("lre_justification", "Placement Justification"),
            ]},
            {"key": "transition", "title": "Transition", "fields": [
                _field("transition", "Transition Services and Activities"),
            ]},
            {"key": "esy", "title": "Extended School Year", "fields": [
                _field("extended_school_year", "ESY Services Required", "boolean"),
                _field("esy_justification", "ESY Justification"),
            ]},
        ]},
    },
    PlanTypeCode.FIVE_OH_FOUR: {
        "name": "504 Plan Standard Form",
        "fields": {"sections": [
            {"key": "eligibility", "title": "Eligibility", "fields": [
                _field("disability_description", "Disability Description", required=True),
                _field("major_life_activities", "Major Life Activities Affected", required=True),
            ]},
            {"key": "accommodations", "title": "Accommodations", "fields": [
                _field("classroom_accommodations", "Classroom Accommodations", required=True),
                _field("testing_accommodations", "Testing Accommodations"),
                _field("physical_accommodations", "Physical/Environmental Accommodations"),
            ]},
            {"key": "health", "title": "Health", "fields": [
                _field("health_plan", "Health Plan"),
                _field("emergency_plan", "Emergency Plan"),
                _field("medication", "Medication"),
            ]},
            {"key": "review", "title": "Review", "fields": [
                _field("plan_review_date", "Plan Review Date", "date", True),
            ]},
        ]},
    },
    PlanTypeCode.BEHAVIOR_PLAN: {
        "name": "Behavior Intervention Plan Form",
        "fields": {"sections": [
            {"key": "behavior", "title": "Target Behavior", "fields": [
                _field("target_behavior", "Target Behavior", required=True),
                _field("function_of_behavior", "Function of Behavior", required=True),
                _field("antecedents", "Antecedents / Triggers"),
                _field("consequences", "Consequences"),
            ]},
            {"key": "strategies", "title": "Strategies", "fields": [
                _field("replacement_behavior", "Replacement Behavior", required=True),
                _field("prevention_strategies", "Prevention Strategies"),
                _field("teaching_strategies", "Teaching Strategies"),
                _field("reinforcement_strategies", "Reinforcement Strategies"),
                _field("response_plan", "Response Plan"),
                _field("deescalation_strategies", "De-escalation Strategies"),
                _field("crisis_plan", "Crisis Plan"),
            ]},
            {"key": "monitoring", "title": "Monitoring", "fields": [
                _field("data_collection", "Data Collection"),
                _field("progress_monitoring", "Progress Monitoring"),
            ]},
        ]},
    },
}

RULE_DEFINITIONS = [
    ("PRE_MEETING_DOCS_DAYS", "Pre-meeting documents",
     "Business days before the meeting that draft documents must reach the parent", {"days": 5}),
    ("POST_MEETING_DOCS_DAYS", "Post-meeting documents",
     "Business days after the meeting that the final document must reach the parent", {"days": 5}),
    ("US_MAIL_PRE_MEETING_DAYS", "US mail allowance (pre-meeting)",
     "Extra business days when pre-meeting documents go by US mail", {"days": 3}),
    ("US_MAIL_POST_MEETING_DAYS", "US mail allowance (post-meeting)",
     "Extra business days when the final document goes by US mail", {"days": 3}),
    ("CONFERENCE_NOTES_REQUIRED", "Conference notes required",
     "Conference notes must be recorded before a meeting can be closed", {"required": True}),
    ("INITIAL_IEP_CONSENT_GATE", "Initial IEP consent gate",
     "Parent consent is required before an initial IEP is implemented", {"enabled": True}),
    ("CONTINUED_MEETING_NOTICE_DAYS", "Continued meeting notice",
     "Minimum days of notice before a continued meeting unless waived", {"days": 10}),
    ("CONTINUED_MEETING_MUTUAL_AGREEMENT", "Continued meeting mutual agreement",
     "Parent and school must agree on the continued meeting date", {"required": True}),
    ("AUDIO_RECORDING_RULE", "Audio recording",
     "Staff must also record when the parent records the meeting", {"staffMustRecordIfParentRecords": True}),
]

EVIDENCE_TYPES = [
    ("CONFERENCE_NOTES", "Conference Notes", RulePlanType.ALL),
    ("CONSENT_FORM", "Parent Consent Form", RulePlanType.IEP),
    ("NOTICE_WAIVER", "Notice Waiver", RulePlanType.ALL),
    ("RECORDING_ACK", "Recording Acknowledgment", RulePlanType.ALL),
    ("PARENT_DOCS_SENT", "Pre-Meeting Documents Sent", RulePlanType.ALL),
    ("FINAL_DOC_SENT", "Final Document Sent", RulePlanType.ALL),
]

MEETING_TYPES = [
    (MeetingTypeCode.INITIAL, "Initial Meeting", "Initial eligibility or plan development meeting"),
    (MeetingTypeCode.ANNUAL, "Annual Review", "Annual review of the plan"),
    (MeetingTypeCode.REVIEW, "Review Meeting", "Periodic or requested review"),
    (MeetingTypeCode.AMENDMENT, "Amendment Meeting", "Meeting to amend an existing plan"),
    (MeetingTypeCode.CONTINUED, "Continued Meeting", "Continuation of an earlier meeting"),
]

JURISDICTIONS = [
    ("MD", "Maryland", "HCPSS", "Howard County Public School System"),
    ("MD", "Maryland", "AACPS", "Anne Arundel County Public Schools"),
    ("MD", "Maryland", "BCPS", "Baltimore County Public Schools"),
    ("MD", "Maryland", "MCPS", "Montgomery County Public Schools"),
    ("MD", "Maryland", "PGCPS", "Prince George's County Public Schools"),
    ("VA", "Virginia", "FCPS", "Fairfax County Public Schools"),
    ("VA", "Virginia", "LCPS", "Loudoun County Public Schools"),
    ("DC", "District of Columbia", "DCPS", "District of Columbia Public Schools"),
]

# (form_type, key, label, section, section_order, control, required, sort_order, options)
FORM_FIELDS = [
    (FormType.IEP, "student_strengths", "Student Strengths", "Present Levels", 1,
     ControlType.TEXTAREA, True, 1, None),
    (FormType.IEP, "parent_concerns", "Parent Concerns", "Present Levels", 1,
     ControlType.TEXTAREA, False, 2, None),
    (FormType.IEP, "primary_disability", "Primary Disability", "Eligibility", 2,
     ControlType.DROPDOWN, True, 1, [
         ("SLD", "Specific Learning Disability"),
         ("SLI", "Speech or Language Impairment"),
         ("OHI", "Other Health Impairment"),
         ("AUT", "Autism"),
         ("ED", "Emotional Disability"),
     ]),
    (FormType.IEP, "lre_placement", "Least Restrictive Environment", "Placement", 3,
     ControlType.RADIO, True, 1, [
         ("GEN_ED_80", "General education 80% or more"),
         ("GEN_ED_40_79", "General education 40-79%"),
         ("GEN_ED_UNDER_40", "General education less than 40%"),
     ]),
    (FormType.FIVE_OH_FOUR, "qualifying_condition", "Qualifying Condition", "Eligibility", 1,
     ControlType.TEXT, True, 1, None),
    (FormType.FIVE_OH_FOUR, "major_life_activities", "Major Life Activities Affected", "Eligibility", 1,
     ControlType.CHECKBOX_GROUP, False, 2, None),
    (FormType.BIP, "target_behavior_summary", "Target Behavior Summary", "Behavior", 1,
     ControlType.TEXTAREA, True, 1, None),
]


async def _existing(db: AsyncSession, column) -> set:
    result = await db.execute(select(column))
    return set(result.scalars().all())


async def seed_reference_data(db: AsyncSession) -> Dict[str, int]:
    """Insert missing catalog rows; returns how many of each kind were added"""
    added = {"plan_types": 0, "plan_schemas": 0, "rule_definitions": 0,
             "evidence_types": 0, "meeting_types": 0, "jurisdictions": 0, "form_fields": 0}

    known_types = await _existing(db, PlanType.code)
    for code, name, description in PLAN_TYPES:
        if code not in known_types:
            db.add(PlanType(code=code, name=name, description=description))
            added["plan_types"] += 1
    await db.flush()

    result = await db.execute(select(PlanType))
    plan_types = {pt.code: pt for pt in result.scalars().all()}
    schema_owners = await _existing(db, PlanSchema.plan_type_id)
    for code, schema in PLAN_SCHEMAS.items():
        plan_type = plan_types[code]
        if plan_type.id not in schema_owners:
            db.add(PlanSchema(plan_type_id=plan_type.id, name=schema["name"], version=1, fields=schema["fields"]))
            added["plan_schemas"] += 1

    known_rules = await _existing(db, RuleDefinition.key)
    for key, name, description, default_config in RULE_DEFINITIONS:
        if key not in known_rules:
            db.add(RuleDefinition(key=key, name=name, description=description, default_config=default_config))
            added["rule_definitions"] += 1

    known_evidence = await _existing(db, RuleEvidenceType.key)
    for key, name, plan_type in EVIDENCE_TYPES:
        if key not in known_evidence:
            db.add(RuleEvidenceType(key=key, name=name, plan_type=plan_type))
            added["evidence_types"] += 1

    known_meetings = await _existing(db, MeetingType.code)
    for code, name, description in MEETING_TYPES:
        if code not in known_meetings:
            db.add(MeetingType(code=code, name=name, description=description))
            added["meeting_types"] += 1

    result = await db.execute(select(Jurisdiction.state_code, Jurisdiction.district_code))
    known_jurisdictions = set(result.all())
    for state_code, state_name, district_code, district_name in JURISDICTIONS:
        if (state_code, district_code) not in known_jurisdictions:
            db.add(Jurisdiction(state_code=state_code, state_name=state_name,
                                district_code=district_code, district_name=district_name))
            added["jurisdictions"] += 1

    result = await db.execute(select(FormFieldDefinition.form_type, FormFieldDefinition.field_key))
    known_fields = set(result.all())
    for form_type, key, label, section, section_order, control, required, sort_order, options in FORM_FIELDS:
        if (form_type, key) not in known_fields:
            field = FormFieldDefinition(
                form_type=form_type, field_key=key, field_label=label, section=section,
                section_order=section_order, control_type=control, is_required=required, sort_order=sort_order,
            )
            field.options = [
                FormFieldOption(value=value, label=option_label, sort_order=i)
                for i, (value, option_label) in enumerate(options or [], start=1)
            ]
            db.add(field)
            added["form_fields"] += 1

    await db.flush()
    if any(added.values()):
        logger.info(f"[Catalog] Seeded reference data: {added}")
    return added
