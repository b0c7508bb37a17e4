"""
Rule Pack Schemas - catalog entries, packs and their rules
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

from myteacher.models.rule_pack import RuleScopeType, RulePlanType
from myteacher.models.meeting import MeetingTypeCode


# ==================== Catalog Schemas ====================

class RuleDefinitionResponse(BaseModel):
    id: str
    key: str
    name: str
    description: Optional[str] = None
    default_config: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class EvidenceTypeResponse(BaseModel):
    id: str
    key: str
    name: str
    plan_type: Optional[RulePlanType] = None

    class Config:
        from_attributes = True


class MeetingTypeResponse(BaseModel):
    id: str
    code: MeetingTypeCode
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


# ==================== Rule Pack Schemas ====================

class EvidenceRequirementInput(BaseModel):
    evidence_type_key: str
    is_required: bool = True


class RulePackRuleInput(BaseModel):
    rule_key: str
    is_enabled: bool = True
    config: Optional[Dict[str, Any]] = None
    sort_order: int = 0
    evidence_requirements: List[EvidenceRequirementInput] = []


class RulePackRuleUpdate(BaseModel):
    is_enabled: Optional[bool] = None
    config: Optional[Dict[str, Any]] = None
    sort_order: Optional[int] = None


class RulePackCreate(BaseModel):
    scope_type: RuleScopeType
    scope_id: str = Field(..., min_length=1, max_length=100)
    plan_type: RulePlanType = RulePlanType.ALL
    name: str = Field(..., min_length=1, max_length=255)
    version: int = Field(1, ge=1)
    is_active: bool = True
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    rules: List[RulePackRuleInput] = []


class RulePackUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    version: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None


class EvidenceRequirementResponse(BaseModel):
    id: str
    evidence_type: EvidenceTypeResponse
    is_required: bool

    class Config:
        from_attributes = True


class RulePackRuleResponse(BaseModel):
    id: str
    rule_definition: RuleDefinitionResponse
    is_enabled: bool
    config: Optional[Dict[str, Any]] = None
    sort_order: int
    evidence_requirements: List[EvidenceRequirementResponse] = []

    class Config:
        from_attributes = True


class RulePackResponse(BaseModel):
    id: str
    scope_type: RuleScopeType
    scope_id: str
    plan_type: RulePlanType
    name: str
    version: int
    is_active: bool
    effective_from: datetime
    effective_to: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RulePackDetailResponse(RulePackResponse):
    rules: List[RulePackRuleResponse] = []


class ResolvedRulePackResponse(BaseModel):
    id: str
    name: str
    version: int
    scope_type: str
    scope_id: str
    plan_type: str
    rules: Dict[str, Dict[str, Any]]
    evidence_requirements: Dict[str, List[Dict[str, Any]]]
