"""
Rule Packs API - compliance rule catalog and per-scope rule packs

Endpoints:
- GET /rule-packs/definitions - Rule catalog
- GET /rule-packs/evidence-types - Evidence type catalog
- GET /rule-packs/meeting-types - Meeting type catalog
- GET /rule-packs - List packs (filter by scope, plan type, active)
- GET /rule-packs/active - Resolve the effective pack for a scope
- GET /rule-packs/{pack_id} - Pack with rules and evidence requirements

Admin only:
- POST /rule-packs, PATCH /rule-packs/{pack_id}, DELETE /rule-packs/{pack_id} (soft)
- PUT /rule-packs/{pack_id}/rules - Replace all rules
- POST /rule-packs/{pack_id}/rules - Add one rule
- PATCH/DELETE /rule-packs/{pack_id}/rules/{rule_id}
- PUT /rule-packs/{pack_id}/rules/{rule_id}/evidence - Replace evidence requirements
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional

from myteacher.core.database import get_db
from myteacher.core.exceptions import (
    ConflictError,
    ResourceNotFoundError,
    RulePackNotFoundError,
    ValidationFailedError,
)
from myteacher.core.logging_config import logger
from myteacher.models.meeting import MeetingType
from myteacher.models.rule_pack import (
    RuleDefinition,
    RuleEvidenceType,
    RulePack,
    RulePackEvidenceRequirement,
    RulePackRule,
    RulePlanType,
    RuleScopeType,
)
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_admin, require_onboarded
from myteacher.schemas.rule_pack import (
    EvidenceRequirementInput,
    EvidenceTypeResponse,
    MeetingTypeResponse,
    ResolvedRulePackResponse,
    RuleDefinitionResponse,
    RulePackCreate,
    RulePackDetailResponse,
    RulePackResponse,
    RulePackRuleInput,
    RulePackRuleResponse,
    RulePackRuleUpdate,
    RulePackUpdate,
)
from myteacher.services import rules_evaluator

router = APIRouter(prefix="/rule-packs", tags=["Rule Packs"])


async def get_pack_or_404(db: AsyncSession, pack_id: str) -> RulePack:
    pack = await db.get(RulePack, pack_id)
    if pack is None:
        raise RulePackNotFoundError(pack_id)
    return pack


def find_rule(pack: RulePack, rule_id: str) -> RulePackRule:
    for rule in pack.rules:
        if rule.id == rule_id:
            return rule
    raise ResourceNotFoundError("Rule pack rule", rule_id)


async def definitions_by_key(db: AsyncSession, keys: List[str]) -> Dict[str, RuleDefinition]:
    result = await db.execute(select(RuleDefinition).where(RuleDefinition.key.in_(keys)))
    found = {d.key: d for d in result.scalars().all()}
    unknown = sorted(set(keys) - set(found))
    if unknown:
        raise ValidationFailedError(f"Unknown rule keys: {', '.join(unknown)}", field="rule_key")
    return found


async def evidence_requirements(db: AsyncSession,
                                items: List[EvidenceRequirementInput]) -> List[RulePackEvidenceRequirement]:
    if not items:
        return []
    keys = [item.evidence_type_key for item in items]
    result = await db.execute(select(RuleEvidenceType).where(RuleEvidenceType.key.in_(keys)))
    found = {t.key: t for t in result.scalars().all()}
    unknown = sorted(set(keys) - set(found))
    if unknown:
        raise ValidationFailedError(f"Unknown evidence types: {', '.join(unknown)}", field="evidence_type_key")

    requirements = []
    for item in items:
        requirement = RulePackEvidenceRequirement(
            evidence_type_id=found[item.evidence_type_key].id,
            is_required=item.is_required,
        )
        requirement.evidence_type = found[item.evidence_type_key]
        requirements.append(requirement)
    return requirements


async def build_rules(db: AsyncSession, items: List[RulePackRuleInput]) -> List[RulePackRule]:
    keys = [item.rule_key for item in items]
    if len(keys) != len(set(keys)):
        raise ValidationFailedError("Each rule key may appear only once per pack", field="rules")
    definitions = await definitions_by_key(db, keys) if keys else {}

    rules = []
    for item in items:
        definition = definitions[item.rule_key]
        rule = RulePackRule(
            rule_definition_id=definition.id,
            is_enabled=item.is_enabled,
            config=item.config if item.config is not None else definition.default_config,
            sort_order=item.sort_order,
        )
        rule.rule_definition = definition
        rule.evidence_requirements = await evidence_requirements(db, item.evidence_requirements)
        rules.append(rule)
    return rules


# ==================== Catalog ====================

@router.get("/definitions", response_model=List[RuleDefinitionResponse])
async def list_rule_definitions(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(RuleDefinition).order_by(RuleDefinition.key))
    return result.scalars().all()


@router.get("/evidence-types", response_model=List[EvidenceTypeResponse])
async def list_evidence_types(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(RuleEvidenceType).order_by(RuleEvidenceType.key))
    return result.scalars().all()


@router.get("/meeting-types", response_model=List[MeetingTypeResponse])
async def list_meeting_types(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(MeetingType).order_by(MeetingType.code))
    return result.scalars().all()


# ==================== Packs ====================

@router.get("", response_model=List[RulePackResponse])
async def list_rule_packs(
    scope_type: Optional[RuleScopeType] = None,
    scope_id: Optional[str] = None,
    plan_type: Optional[RulePlanType] = None,
    active: Optional[bool] = None,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    query = select(RulePack)
    if scope_type:
        query = query.where(RulePack.scope_type == scope_type)
    if scope_id:
        query = query.where(RulePack.scope_id == scope_id)
    if plan_type:
        query = query.where(RulePack.plan_type == plan_type)
    if active is not None:
        query = query.where(RulePack.is_active == active)
    result = await db.execute(
        query.order_by(RulePack.scope_type, RulePack.scope_id, RulePack.version.desc())
    )
    return result.scalars().all()


@router.get("/active", response_model=ResolvedRulePackResponse)
async def get_active_rule_pack(
    scope_type: RuleScopeType,
    scope_id: str,
    plan_type: RulePlanType = RulePlanType.IEP,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Walk SCHOOL -> DISTRICT -> STATE from the requested scope"""
    resolved = await rules_evaluator.get_active_rule_pack(db, scope_type.value, scope_id, plan_type.value)
    if resolved is None:
        raise RulePackNotFoundError()
    return resolved.to_dict()


@router.get("/{pack_id}", response_model=RulePackDetailResponse)
async def get_rule_pack(
    pack_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await get_pack_or_404(db, pack_id)


@router.post("", response_model=RulePackDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_rule_pack(
    data: RulePackCreate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    values = data.model_dump(exclude={"rules"}, exclude_none=True)
    pack = RulePack(**values)
    pack.rules = await build_rules(db, data.rules)
    db.add(pack)
    await db.commit()

    logger.info(f"[RulePacks] {pack.scope_type.value}:{pack.scope_id} {pack.name} v{pack.version} "
                f"created by {admin.id}")
    return pack


@router.patch("/{pack_id}", response_model=RulePackDetailResponse)
async def update_rule_pack(
    pack_id: str,
    data: RulePackUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    pack = await get_pack_or_404(db, pack_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(pack, key, value)
    await db.commit()
    return pack


@router.delete("/{pack_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_rule_pack(
    pack_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete"""
    pack = await get_pack_or_404(db, pack_id)
    pack.is_active = False
    await db.commit()
    logger.info(f"[RulePacks] Pack {pack.id} deactivated by {admin.id}")


# ==================== Rules ====================

@router.put("/{pack_id}/rules", response_model=RulePackDetailResponse)
async def replace_rules(
    pack_id: str,
    data: List[RulePackRuleInput],
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    pack = await get_pack_or_404(db, pack_id)
    new_rules = await build_rules(db, data)
    pack.rules = []
    await db.flush()
    pack.rules = new_rules
    await db.commit()
    return pack


@router.post("/{pack_id}/rules", response_model=RulePackRuleResponse, status_code=status.HTTP_201_CREATED)
async def add_rule(
    pack_id: str,
    data: RulePackRuleInput,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    pack = await get_pack_or_404(db, pack_id)
    if any(r.rule_definition.key == data.rule_key for r in pack.rules):
        raise ConflictError(f"Rule {data.rule_key} is already in this pack", details={"rule_key": data.rule_key})

    [rule] = await build_rules(db, [data])
    pack.rules.append(rule)
    await db.commit()
    return rule


@router.patch("/{pack_id}/rules/{rule_id}", response_model=RulePackRuleResponse)
async def update_rule(
    pack_id: str,
    rule_id: str,
    data: RulePackRuleUpdate,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rule = find_rule(await get_pack_or_404(db, pack_id), rule_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(rule, key, value)
    await db.commit()
    return rule


@router.delete("/{pack_id}/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    pack_id: str,
    rule_id: str,
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    pack = await get_pack_or_404(db, pack_id)
    pack.rules.remove(find_rule(pack, rule_id))
    await db.commit()


@router.put("/{pack_id}/rules/{rule_id}/evidence", response_model=RulePackRuleResponse)
async def replace_rule_evidence(
    pack_id: str,
    rule_id: str,
    data: List[EvidenceRequirementInput],
    admin: AppUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rule = find_rule(await get_pack_or_404(db, pack_id), rule_id)
    requirements = await evidence_requirements(db, data)
    rule.evidence_requirements = []
    await db.flush()
    rule.evidence_requirements = requirements
    await db.commit()
    return rule
