"""
Draft content generation from best-practice reference chunks.

Reference chunks are selected by plan type and section tag (narrowed by
jurisdiction and grade band when possible) and passed to Claude as style
examples for the requested plan field.
"""

import re
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.config import settings
from myteacher.core.logging_config import logger
from myteacher.models.best_practice import BestPracticeChunk, BestPracticeDocument, IngestionStatus
from myteacher.models.plan import PlanInstance, PlanTypeCode
from myteacher.services.ingestion_service import section_tags_for
from myteacher.utils.claude_client import get_claude_client

SECTION_TO_FIELDS: Dict[PlanTypeCode, Dict[str, List[str]]] = {
    PlanTypeCode.IEP: {
        "present_levels": ["academic_performance", "functional_performance"],
        "present_levels_academic": ["academic_performance"],
        "present_levels_functional": ["functional_performance"],
        "goals": ["goals_list"],
        "goals_reading": ["goals_list"],
        "goals_math": ["goals_list"],
        "goals_writing": ["goals_list"],
        "goals_communication": ["goals_list"],
        "goals_social_emotional": ["goals_list"],
        "goals_behavior": ["goals_list"],
        "objectives": ["goals_list"],
        "accommodations": ["supplementary_aids"],
        "modifications": ["supplementary_aids"],
        "services": ["special_education_services"],
        "services_related": ["related_services"],
        "supplementary_aids": ["supplementary_aids"],
        "placement": ["placement_decision"],
        "placement_lre": ["lre_justification"],
        "transition": ["transition"],
        "esy": ["extended_school_year", "esy_justification"],
        "parent_concerns": ["parent_concerns"],
    },
    PlanTypeCode.FIVE_OH_FOUR: {
        "disability": ["disability_description"],
        "major_life_activities": ["major_life_activities"],
        "accommodations": ["accommodations"],
        "accommodations_classroom": ["classroom_accommodations"],
        "accommodations_testing": ["testing_accommodations"],
        "accommodations_physical": ["physical_accommodations"],
        "health_plan": ["health_plan"],
        "emergency_plan": ["emergency_plan"],
        "medication": ["medication"],
    },
    PlanTypeCode.BEHAVIOR_PLAN: {
        "target_behavior": ["target_behavior", "behavior_description"],
        "function_analysis": ["function_of_behavior"],
        "antecedents": ["antecedents", "triggers"],
        "consequences": ["consequences"],
        "replacement_behavior": ["replacement_behavior"],
        "prevention_strategies": ["prevention_strategies"],
        "teaching_strategies": ["teaching_strategies"],
        "response_strategies": ["response_plan"],
        "reinforcement": ["reinforcement_strategies"],
        "crisis_plan": ["crisis_plan"],
        "deescalation": ["deescalation_strategies"],
        "data_collection": ["data_collection"],
        "progress_monitoring": ["progress_monitoring"],
    },
}

PLAN_TYPE_NAMES = {
    PlanTypeCode.IEP: "IEP (Individualized Education Program)",
    PlanTypeCode.FIVE_OH_FOUR: "504 Plan",
    PlanTypeCode.BEHAVIOR_PLAN: "Behavior Intervention Plan",
}

SYSTEM_PROMPT = (
    "You are an expert special education plan writer. You write clear, "
    "professional, compliant plan content for teachers to review and edit."
)

GOAL_VALIDATION_PROMPT = """Assess the following annual IEP goal for SMART quality
(specific, measurable, achievable, relevant, time-bound).

Goal area: {area}
Student grade: {grade}
Baseline: {baseline}
Annual goal: {goal_text}
Short-term objectives:
{objectives}

Respond with ONLY a JSON object of this shape:
{{
  "is_valid": true,
  "score": 0,
  "issues": [{{"type": "error|warning|suggestion", "code": "SHORT_CODE", "message": "..."}}],
  "smart": {{"specific": true, "measurable": true, "achievable": true, "relevant": true, "time_bound": true}},
  "suggestions": ["..."],
  "improved_goal": "..."
}}"""


def title_case(key: str) -> str:
    return key.replace("_", " ").title()


def section_tag_for_field(plan_type: PlanTypeCode, field_key: str) -> Optional[str]:
    for tag, fields in SECTION_TO_FIELDS.get(plan_type, {}).items():
        if field_key in fields:
            return tag
    return None


def grade_band(grade: Optional[str]) -> Optional[str]:
    """Map a grade ('K', '3', 'Grade 10') to K-2, 3-5, 6-8 or 9-12"""
    if not grade:
        return None
    value = re.sub(r"[^0-9k]", "", grade.lower())
    if value in ("k", "0", "1", "2"):
        return "K-2"
    if value in ("3", "4", "5"):
        return "3-5"
    if value in ("6", "7", "8"):
        return "6-8"
    if value in ("9", "10", "11", "12"):
        return "9-12"
    return None


def build_content_prompt(
    plan_type: PlanTypeCode,
    section_tag: str,
    field_key: str,
    chunks: List[BestPracticeChunk],
    student_context: Optional[Dict[str, Any]] = None,
    user_prompt: Optional[str] = None,
) -> str:
    lines = [
        f"Generate professional, compliant content for a {PLAN_TYPE_NAMES.get(plan_type, plan_type.value)}.",
        "",
    ]

    student_context = {k: v for k, v in (student_context or {}).items() if v}
    if student_context:
        lines.append("## Student Information")
        if student_context.get("first_name"):
            lines.append(f"- Student: {student_context['first_name']}")
        if student_context.get("grade"):
            lines.append(f"- Grade: {student_context['grade']}")
        if student_context.get("need_description"):
            lines.append(f"- Need: {student_context['need_description']}")
        lines.append("")

    lines += [f"## Section: {title_case(section_tag)}", f"Field: {title_case(field_key)}", ""]

    if chunks:
        lines += [
            "## Reference Examples from Best Practice Documents",
            "Use these examples as reference for style, format, and level of detail:",
            "",
        ]
        for index, chunk in enumerate(chunks, start=1):
            header = f"### Example {index}"
            if chunk.grade_band:
                header += f" (Grade Band: {chunk.grade_band})"
            lines += [header, chunk.text, ""]

    if user_prompt:
        lines += ["## Specific Request", user_prompt, ""]

    lines += [
        "## Instructions",
        f"Generate appropriate content for the {field_key.replace('_', ' ')} field.",
        "- Use professional, clear language appropriate for special education documentation",
        "- Follow the style and format of the reference examples",
        "- Make the content specific to the student's grade level and needs",
        "- Ensure compliance with IDEA and best practices",
        "- Keep the response focused and actionable",
        "",
        "Generate only the content for this field. Do not include explanations or headers.",
    ]
    return "\n".join(lines)


async def query_chunks_for_generation(
    db: AsyncSession,
    plan_type: PlanTypeCode,
    section_tag: str,
    jurisdiction_id: Optional[str] = None,
    band: Optional[str] = None,
    limit: int = 5,
) -> List[BestPracticeChunk]:
    """Newest matching chunks, relaxing jurisdiction then grade band when empty"""

    async def run(jurisdiction: Optional[str], grade: Optional[str]) -> List[BestPracticeChunk]:
        query = (
            select(BestPracticeChunk)
            .join(BestPracticeDocument, BestPracticeChunk.document_id == BestPracticeDocument.id)
            .where(
                BestPracticeChunk.plan_type == plan_type,
                BestPracticeChunk.section_tag == section_tag,
                BestPracticeDocument.is_active == True,  # noqa: E712
                BestPracticeDocument.ingestion_status == IngestionStatus.COMPLETE,
            )
        )
        if jurisdiction:
            query = query.where(BestPracticeChunk.jurisdiction_id == jurisdiction)
        if grade:
            query = query.where(BestPracticeChunk.grade_band == grade)
        result = await db.execute(query.order_by(BestPracticeChunk.created_at.desc()).limit(limit))
        return list(result.scalars().all())

    chunks = await run(jurisdiction_id, band)
    if not chunks and jurisdiction_id:
        chunks = await run(None, band)
    if not chunks and band:
        chunks = await run(None, None)
    return chunks


async def has_reference_content(db: AsyncSession, plan_type: PlanTypeCode, section_tag: str) -> bool:
    result = await db.execute(
        select(func.count(BestPracticeChunk.id))
        .join(BestPracticeDocument, BestPracticeChunk.document_id == BestPracticeDocument.id)
        .where(
            BestPracticeChunk.plan_type == plan_type,
            BestPracticeChunk.section_tag == section_tag,
            BestPracticeDocument.is_active == True,  # noqa: E712
            BestPracticeDocument.ingestion_status == IngestionStatus.COMPLETE,
        )
    )
    return (result.scalar() or 0) > 0


def generatable_sections(plan_type: PlanTypeCode) -> List[str]:
    return section_tags_for(plan_type)


class ContentGenerationService:
    """Claude-backed drafting and goal review"""

    async def generate_draft_content(
        self,
        db: AsyncSession,
        plan: PlanInstance,
        section_key: str,
        field_key: str,
        student_context: Optional[Dict[str, Any]] = None,
        user_prompt: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Draft text for one plan field.

        Returns None when no reference material exists for the section, so the
        caller can tell the user to upload best-practice documents first.
        """
        plan_type = plan.plan_type.code
        student = plan.student
        section_tag = section_tag_for_field(plan_type, field_key) or section_key

        chunks = await query_chunks_for_generation(
            db, plan_type, section_tag, student.jurisdiction_id, grade_band(student.grade), limit=3
        )
        if not chunks:
            generic_tag = section_tag.split("_")[0] or section_tag
            chunks = await query_chunks_for_generation(db, plan_type, generic_tag, limit=3)
            if not chunks:
                return None

        context = {"first_name": student.first_name, "grade": student.grade}
        context.update(student_context or {})
        prompt = build_content_prompt(plan_type, section_tag, field_key, chunks, context, user_prompt)

        result = await get_claude_client().generate(
            prompt,
            system_prompt=SYSTEM_PROMPT,
            max_tokens=settings.CLAUDE_MAX_TOKENS,
        )
        logger.info(
            f"[Generation] Draft for plan {plan.id} field {field_key}: "
            f"{len(chunks)} chunks, {result['total_tokens']} tokens"
        )
        return {
            "text": result["content"].strip(),
            "source_chunk_ids": [c.id for c in chunks],
            "section_tag": section_tag,
            "tokens_used": result["total_tokens"],
        }

    async def validate_goal(self, goal: Dict[str, Any]) -> Dict[str, Any]:
        objectives = goal.get("short_term_objectives") or []
        prompt = GOAL_VALIDATION_PROMPT.format(
            area=goal.get("area") or "unspecified",
            grade=goal.get("student_grade") or "unspecified",
            baseline=goal.get("baseline") or "not provided",
            goal_text=goal["annual_goal_text"],
            objectives="\n".join(f"- {o}" for o in objectives) or "- none",
        )
        verdict = await get_claude_client().generate_json(prompt, system_prompt=SYSTEM_PROMPT, temperature=0.2)
        verdict.setdefault("issues", [])
        verdict.setdefault("suggestions", [])
        return verdict


content_generation_service = ContentGenerationService()
