from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Text, JSON,
    Enum as SQLEnum, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from myteacher.core.database import Base, GUID, generate_uuid


class RuleScopeType(str, enum.Enum):
    STATE = "STATE"
    DISTRICT = "DISTRICT"
    SCHOOL = "SCHOOL"


class RulePlanType(str, enum.Enum):
    IEP = "IEP"
    PLAN504 = "PLAN504"
    BIP = "BIP"
    ALL = "ALL"


class RuleDefinition(Base):
    """Catalog entry for a compliance rule (e.g. PRE_MEETING_DOCS_DAYS)"""
    __tablename__ = "rule_definitions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    key = Column(String(100), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    default_config = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class RuleEvidenceType(Base):
    __tablename__ = "rule_evidence_types"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    key = Column(String(100), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    plan_type = Column(SQLEnum(RulePlanType), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class RulePack(Base):
    """Set of configured rules for a state, district or school"""
    __tablename__ = "rule_packs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    scope_type = Column(SQLEnum(RuleScopeType), nullable=False)
    scope_id = Column(String(100), nullable=False)
    plan_type = Column(SQLEnum(RulePlanType), default=RulePlanType.ALL, nullable=False)
    name = Column(String(255), nullable=False)
    version = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    effective_from = Column(DateTime, default=datetime.utcnow, nullable=False)
    effective_to = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    rules = relationship(
        "RulePackRule",
        back_populates="rule_pack",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="RulePackRule.sort_order",
    )

    def __repr__(self):
        return f"<RulePack {self.scope_type}:{self.scope_id} {self.plan_type} v{self.version}>"


class RulePackRule(Base):
    __tablename__ = "rule_pack_rules"
    __table_args__ = (UniqueConstraint("rule_pack_id", "rule_definition_id", name="uq_rule_pack_rule"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    rule_pack_id = Column(GUID, ForeignKey("rule_packs.id", ondelete="CASCADE"), nullable=False, index=True)
    rule_definition_id = Column(GUID, ForeignKey("rule_definitions.id"), nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    config = Column(JSON, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)

    rule_pack = relationship("RulePack", back_populates="rules")
    rule_definition = relationship("RuleDefinition", lazy="selectin")
    evidence_requirements = relationship(
        "RulePackEvidenceRequirement",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class RulePackEvidenceRequirement(Base):
    __tablename__ = "rule_pack_evidence_requirements"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    rule_pack_rule_id = Column(GUID, ForeignKey("rule_pack_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    evidence_type_id = Column(GUID, ForeignKey("rule_evidence_types.id"), nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)

    evidence_type = relationship("RuleEvidenceType", lazy="selectin")
