"""
Custom Exceptions for MyTeacher
===============================

Every error the API returns carries an application error code. Raise these
from services and endpoints instead of HTTPException; the handlers installed
in main.py turn them into

    {"error": {"code": "...", "message": "...", "details": {...}}}

Usage:
    from myteacher.core.exceptions import StudentNotFoundError

    if not student:
        raise StudentNotFoundError(student_id)
"""

from typing import Optional, Any, Dict, List


class MyTeacherError(Exception):
    """Base exception for all MyTeacher errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "ERR_API_INTERNAL",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class InternalError(MyTeacherError):
    """Unexpected failure, message is safe to show"""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, code="ERR_API_INTERNAL", status_code=500)


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationRequiredError(MyTeacherError):
    """Missing or invalid credentials"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="ERR_API_AUTH_REQUIRED", status_code=401)


class ForbiddenError(MyTeacherError):
    """User not allowed to perform this action"""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, code="ERR_API_FORBIDDEN", status_code=403)


class OnboardingRequiredError(ForbiddenError):
    def __init__(self):
        super().__init__("Onboarding must be completed first")
        self.code = "ERR_API_ONBOARDING_REQUIRED"


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(MyTeacherError):
    """Base class for not found errors"""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None,
                 code: str = "ERR_API_NOT_FOUND"):
        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = str(resource_id)
        super().__init__(f"{resource_type} not found", code=code, details=details, status_code=404)


class StudentNotFoundError(ResourceNotFoundError):
    def __init__(self, student_id: Optional[str] = None):
        super().__init__("Student", student_id, code="ERR_API_STUDENT_NOT_FOUND")


class PlanNotFoundError(ResourceNotFoundError):
    def __init__(self, plan_id: Optional[str] = None):
        super().__init__("Plan", plan_id, code="ERR_API_PLAN_NOT_FOUND")


class VersionNotFoundError(ResourceNotFoundError):
    def __init__(self, version_id: Optional[str] = None):
        super().__init__("Plan version", version_id, code="ERR_VERSION_NOT_FOUND")


class DecisionNotFoundError(ResourceNotFoundError):
    def __init__(self, decision_id: Optional[str] = None):
        super().__init__("Decision", decision_id, code="ERR_DECISION_NOT_FOUND")


class SignaturePacketNotFoundError(ResourceNotFoundError):
    def __init__(self, packet_id: Optional[str] = None):
        super().__init__("Signature packet", packet_id, code="ERR_SIGN_PACKET_NOT_FOUND")


class ReviewScheduleNotFoundError(ResourceNotFoundError):
    def __init__(self, schedule_id: Optional[str] = None):
        super().__init__("Review schedule", schedule_id, code="ERR_REVIEW_SCHEDULE_NOT_FOUND")


class ComplianceTaskNotFoundError(ResourceNotFoundError):
    def __init__(self, task_id: Optional[str] = None):
        super().__init__("Compliance task", task_id, code="ERR_COMPLIANCE_TASK_NOT_FOUND")


class DisputeCaseNotFoundError(ResourceNotFoundError):
    def __init__(self, case_id: Optional[str] = None):
        super().__init__("Dispute case", case_id, code="ERR_DISPUTE_CASE_NOT_FOUND")


class DisputeEventNotFoundError(ResourceNotFoundError):
    def __init__(self, event_id: Optional[str] = None):
        super().__init__("Dispute event", event_id, code="ERR_DISPUTE_EVENT_NOT_FOUND")


class DisputeAttachmentNotFoundError(ResourceNotFoundError):
    def __init__(self, attachment_id: Optional[str] = None):
        super().__init__("Dispute attachment", attachment_id, code="ERR_DISPUTE_ATTACHMENT_NOT_FOUND")


class AlertNotFoundError(ResourceNotFoundError):
    def __init__(self, alert_id: Optional[str] = None):
        super().__init__("Alert", alert_id, code="ERR_ALERT_NOT_FOUND")


class FormFieldNotFoundError(ResourceNotFoundError):
    def __init__(self, field_id: Optional[str] = None):
        super().__init__("Form field", field_id, code="ERR_FORM_FIELD_NOT_FOUND")


class FormFieldOptionNotFoundError(ResourceNotFoundError):
    def __init__(self, option_id: Optional[str] = None):
        super().__init__("Form field option", option_id, code="ERR_FORM_OPTION_NOT_FOUND")


class SchoolNotFoundError(ResourceNotFoundError):
    def __init__(self, school_id: Optional[str] = None):
        super().__init__("School", school_id, code="ERR_SCHOOL_NOT_FOUND")


class BehaviorTargetNotFoundError(ResourceNotFoundError):
    def __init__(self, target_id: Optional[str] = None):
        super().__init__("Behavior target", target_id, code="ERR_BEHAVIOR_TARGET_NOT_FOUND")


class BehaviorEventNotFoundError(ResourceNotFoundError):
    def __init__(self, event_id: Optional[str] = None):
        super().__init__("Behavior event", event_id, code="ERR_BEHAVIOR_EVENT_NOT_FOUND")


class ScheduledServicePlanNotFoundError(ResourceNotFoundError):
    def __init__(self, scheduled_plan_id: Optional[str] = None):
        super().__init__("Scheduled service plan", scheduled_plan_id, code="ERR_SCHEDULED_PLAN_NOT_FOUND")


class RulePackNotFoundError(ResourceNotFoundError):
    def __init__(self, pack_id: Optional[str] = None):
        super().__init__("Rule pack", pack_id, code="ERR_RULE_PACK_NOT_FOUND")


class MeetingNotFoundError(ResourceNotFoundError):
    def __init__(self, meeting_id: Optional[str] = None):
        super().__init__("Meeting", meeting_id, code="ERR_MEETING_NOT_FOUND")


class StoredFileNotFoundError(ResourceNotFoundError):
    """File record exists but the stored bytes are gone"""

    def __init__(self, storage_key: Optional[str] = None):
        super().__init__("File", storage_key, code="ERR_API_FILE_NOT_FOUND")
        self.message = "File not found. It may have been deleted."


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationFailedError(MyTeacherError):
    """Input validation failed"""

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Any]] = None,
                 field: Optional[str] = None):
        details: Dict[str, Any] = {}
        if errors:
            details["errors"] = errors
        if field:
            details["field"] = field
        super().__init__(message, code="ERR_API_VALIDATION_FAILED", details=details, status_code=400)


class ConflictError(MyTeacherError):
    """Resource already exists"""

    def __init__(self, message: str, code: str = "ERR_API_CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details, status_code=409)


class InvalidFileTypeError(ValidationFailedError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}"
        )
        self.code = "ERR_API_INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class FileTooLargeError(ValidationFailedError):
    def __init__(self, size: int, max_size: int):
        super().__init__(f"File exceeds maximum size of {max_size} bytes")
        self.code = "ERR_API_FILE_TOO_LARGE"
        self.details = {"size": size, "max_size": max_size}


class BusinessRuleError(MyTeacherError):
    """A workflow rule rejected the request"""

    def __init__(self, message: str, code: str, details: Optional[Dict[str, Any]] = None,
                 status_code: int = 400):
        super().__init__(message, code=code, details=details, status_code=status_code)


# ============================================
# Decision Ledger Errors
# ============================================

class DecisionCreateForNonIepError(BusinessRuleError):
    def __init__(self, plan_type: Optional[str] = None):
        super().__init__(
            "Decision ledger entries can only be created for IEP plans",
            code="ERR_DECISION_CREATE_FOR_NON_IEP",
            details={"plan_type": plan_type} if plan_type else None,
        )


class DecisionVoidRequiresReasonError(BusinessRuleError):
    def __init__(self):
        super().__init__("A reason is required to void a decision", code="ERR_DECISION_VOID_REQUIRES_REASON")


class DecisionAlreadyVoidedError(BusinessRuleError):
    def __init__(self, decision_id: Optional[str] = None):
        super().__init__(
            "This decision has already been voided",
            code="ERR_DECISION_ALREADY_VOIDED",
            details={"decision_id": decision_id} if decision_id else None,
        )


# ============================================
# Signature Errors
# ============================================

class SignaturePacketExistsError(BusinessRuleError):
    def __init__(self, version_id: Optional[str] = None):
        super().__init__(
            "A signature packet already exists for this version",
            code="ERR_SIGN_PACKET_EXISTS",
            details={"version_id": version_id} if version_id else None,
        )


class SignatureAlreadySignedError(BusinessRuleError):
    def __init__(self, record_id: Optional[str] = None):
        super().__init__(
            "This signature has already been recorded",
            code="ERR_SIGN_ALREADY_SIGNED",
            details={"record_id": record_id} if record_id else None,
        )


class SignatureUnauthorizedRoleError(BusinessRuleError):
    def __init__(self, required_role: Optional[str] = None):
        super().__init__(
            "You are not authorized to sign for this role",
            code="ERR_SIGN_UNAUTHORIZED_ROLE",
            details={"required_role": required_role} if required_role else None,
            status_code=403,
        )


class SignaturePacketCompleteError(BusinessRuleError):
    def __init__(self):
        super().__init__("This signature packet is already complete", code="ERR_SIGN_PACKET_COMPLETE")


class SignaturePacketExpiredError(BusinessRuleError):
    def __init__(self):
        super().__init__("This signature packet has expired", code="ERR_SIGN_PACKET_EXPIRED")


# ============================================
# Plan Version Errors
# ============================================

class VersionAlreadyDistributedError(BusinessRuleError):
    def __init__(self, version_id: Optional[str] = None):
        super().__init__(
            "This version has already been distributed",
            code="ERR_VERSION_ALREADY_DISTRIBUTED",
            details={"version_id": version_id} if version_id else None,
        )


class VersionRequiresCmSignatureError(BusinessRuleError):
    def __init__(self):
        super().__init__(
            "Case manager signature is required before distribution",
            code="ERR_VERSION_REQUIRES_CM_SIGNATURE",
        )


class VersionStatusInvalidError(BusinessRuleError):
    def __init__(self, current_status: str, required_status: str):
        super().__init__(
            f"Version must be in {required_status} status (current: {current_status})",
            code="ERR_VERSION_STATUS_INVALID",
            details={"current_status": current_status, "required_status": required_status},
        )


# ============================================
# Review / Compliance Errors
# ============================================

class ReviewScheduleAlreadyCompleteError(BusinessRuleError):
    def __init__(self, schedule_id: Optional[str] = None):
        super().__init__(
            "This review schedule has already been completed",
            code="ERR_REVIEW_SCHEDULE_ALREADY_COMPLETE",
            details={"schedule_id": schedule_id} if schedule_id else None,
        )


class ComplianceTaskAlreadyCompleteError(BusinessRuleError):
    def __init__(self, task_id: Optional[str] = None):
        super().__init__(
            "This compliance task has already been completed",
            code="ERR_COMPLIANCE_TASK_ALREADY_COMPLETE",
            details={"task_id": task_id} if task_id else None,
        )


class EnforcementFailedError(BusinessRuleError):
    """Meeting rule enforcement blocked the transition"""

    def __init__(self, message: str, errors: List[Dict[str, Any]], code: str = "ERR_ENFORCEMENT_FAILED"):
        super().__init__(message, code=code, details={"errors": errors})


# ============================================
# AI Errors
# ============================================

class AIServiceError(MyTeacherError):
    """AI service (Claude) error"""

    def __init__(self, message: str):
        super().__init__(message, code="ERR_AI_SERVICE", status_code=502)


class AINotConfiguredError(AIServiceError):
    def __init__(self):
        super().__init__("Content generation is not configured")
        self.code = "ERR_AI_NOT_CONFIGURED"
        self.status_code = 503


class AIResponseParseError(AIServiceError):
    """Failed to parse AI response"""

    def __init__(self, message: str = "Failed to parse AI response"):
        super().__init__(message)
        self.code = "ERR_AI_PARSE"


# ============================================
# Storage / Ingestion Errors
# ============================================

class StorageError(MyTeacherError):
    """Storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="ERR_STORAGE", status_code=500)


class IngestionError(MyTeacherError):
    """Text extraction or chunking failed"""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(
            message,
            code="ERR_INGESTION_FAILED",
            details={"document_id": document_id} if document_id else None,
            status_code=400,
        )


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Response envelope for errors raised outside MyTeacherError (validation, rate limits, framework 404s)"""
    return {"error": {"code": code, "message": message, "details": details or {}}}


def error_response(error: MyTeacherError) -> Dict[str, Any]:
    return {"error": error.to_dict()}
