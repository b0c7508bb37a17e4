# Re-export all models for convenient imports
from myteacher.models.user import AppUser, UserRole, UserPermission, StudentAccess, Jurisdiction
from myteacher.models.student import Student, StudentStatus, StatusScope, StatusCode
from myteacher.models.plan import PlanType, PlanTypeCode, PlanSchema, PlanInstance, PlanStatus, PlanFieldValue
from myteacher.models.goal import Goal, GoalArea, GoalProgress, ProgressLevel, WorkSample, WorkSampleRating
from myteacher.models.service_log import ServiceLog, ServiceType, ServiceSetting
from myteacher.models.scheduled_service import ScheduledServicePlan, ScheduledServiceItem, ScheduledServiceStatus
from myteacher.models.behavior import BehaviorTarget, BehaviorEvent, BehaviorMeasurementType
from myteacher.models.plan_version import PlanVersion, PlanVersionStatus, PlanExport, ExportFormat
from myteacher.models.decision import DecisionLedgerEntry, DecisionType, DecisionStatus
from myteacher.models.signature import (
    SignaturePacket, SignaturePacketStatus, SignatureRecord,
    SignatureRole, SignatureMethod, SignatureStatus,
)
from myteacher.models.rule_pack import (
    RuleScopeType, RulePlanType, RuleDefinition, RuleEvidenceType,
    RulePack, RulePackRule, RulePackEvidenceRequirement,
)
from myteacher.models.meeting import (
    MeetingType, MeetingTypeCode, PlanMeeting, MeetingStatus,
    MeetingEvidence, ParentDeliveryMethod, ConsentStatus,
)
from myteacher.models.review import (
    ReviewSchedule, ScheduleType, ReviewScheduleStatus,
    ComplianceTask, ComplianceTaskType, ComplianceTaskStatus,
)
from myteacher.models.alert import InAppAlert, AlertType
from myteacher.models.dispute import (
    DisputeCase, DisputeCaseType, DisputeCaseStatus,
    DisputeEvent, DisputeEventType, DisputeAttachment,
)
from myteacher.models.audit_log import AuditLog, AuditActionType, AuditEntityType
from myteacher.models.best_practice import BestPracticeDocument, BestPracticeChunk, IngestionStatus
from myteacher.models.form_field import (
    FormType, ControlType, OptionsEditableBy,
    FormFieldDefinition, FormFieldOption, StudentFieldValue, School,
)

__all__ = [
    # Users
    "AppUser",
    "UserRole",
    "UserPermission",
    "StudentAccess",
    "Jurisdiction",
    # Students
    "Student",
    "StudentStatus",
    "StatusScope",
    "StatusCode",
    # Plans
    "PlanType",
    "PlanTypeCode",
    "PlanSchema",
    "PlanInstance",
    "PlanStatus",
    "PlanFieldValue",
    # Goals
    "Goal",
    "GoalArea",
    "GoalProgress",
    "ProgressLevel",
    "WorkSample",
    "WorkSampleRating",
    # Services
    "ServiceLog",
    "ServiceType",
    "ServiceSetting",
    "ScheduledServicePlan",
    "ScheduledServiceItem",
    "ScheduledServiceStatus",
    # Behavior
    "BehaviorTarget",
    "BehaviorEvent",
    "BehaviorMeasurementType",
    # Versions
    "PlanVersion",
    "PlanVersionStatus",
    "PlanExport",
    "ExportFormat",
    # Decisions
    "DecisionLedgerEntry",
    "DecisionType",
    "DecisionStatus",
    # Signatures
    "SignaturePacket",
    "SignaturePacketStatus",
    "SignatureRecord",
    "SignatureRole",
    "SignatureMethod",
    "SignatureStatus",
    # Rules
    "RuleScopeType",
    "RulePlanType",
    "RuleDefinition",
    "RuleEvidenceType",
    "RulePack",
    "RulePackRule",
    "RulePackEvidenceRequirement",
    # Meetings
    "MeetingType",
    "MeetingTypeCode",
    "PlanMeeting",
    "MeetingStatus",
    "MeetingEvidence",
    "ParentDeliveryMethod",
    "ConsentStatus",
    # Reviews / compliance
    "ReviewSchedule",
    "ScheduleType",
    "ReviewScheduleStatus",
    "ComplianceTask",
    "ComplianceTaskType",
    "ComplianceTaskStatus",
    # Alerts
    "InAppAlert",
    "AlertType",
    # Disputes
    "DisputeCase",
    "DisputeCaseType",
    "DisputeCaseStatus",
    "DisputeEvent",
    "DisputeEventType",
    "DisputeAttachment",
    # Audit
    "AuditLog",
    "AuditActionType",
    "AuditEntityType",
    # Best practice
    "BestPracticeDocument",
    "BestPracticeChunk",
    "IngestionStatus",
    # Form fields
    "FormType",
    "ControlType",
    "OptionsEditableBy",
    "FormFieldDefinition",
    "FormFieldOption",
    "StudentFieldValue",
    "School",
]
