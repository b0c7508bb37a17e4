"""
Audit trail for access to and changes of student records.

Entries are written inside a savepoint of the caller's session and commit with
the request. A failed write is rolled back to the savepoint and logged; it
never raises into the request.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.logging_config import logger
from myteacher.models.audit_log import AuditLog, AuditActionType, AuditEntityType
from myteacher.models.user import AppUser


def request_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class AuditLogger:
    """Helpers for each audited action"""

    def __init__(self, db: AsyncSession, user: Optional[AppUser], request: Optional[Request] = None):
        self.db = db
        self.user = user
        self.request = request

    async def log(
        self,
        action: AuditActionType,
        entity_type: AuditEntityType,
        entity_id: Optional[str],
        student_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        entry = AuditLog(
            user_id=self.user.id if self.user else None,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            student_id=student_id,
            metadata_json=metadata or None,
            ip_address=request_ip(self.request),
            user_agent=self.request.headers.get("user-agent") if self.request else None,
        )
        # the request's own pending changes flush outside the savepoint
        await self.db.flush()
        try:
            async with self.db.begin_nested():
                self.db.add(entry)
        except SQLAlchemyError as e:
            logger.error(f"[Audit] Failed to record {action.value}: {e}", exc_info=True)
            return None

        logger.log_audit_event(
            action.value,
            entity_type.value,
            str(entity_id) if entity_id else None,
            actor_id=str(self.user.id) if self.user else None,
            student_id=str(student_id) if student_id else None,
        )
        return entry

    async def plan_viewed(self, plan_id: str, student_id: str):
        return await self.log(AuditActionType.PLAN_VIEWED, AuditEntityType.PLAN, plan_id, student_id)

    async def plan_updated(self, plan_id: str, student_id: str, field_keys):
        return await self.log(AuditActionType.PLAN_UPDATED, AuditEntityType.PLAN, plan_id, student_id,
                              {"field_keys": list(field_keys)})

    async def plan_finalized(self, plan_id: str, version_id: str, student_id: str):
        return await self.log(AuditActionType.PLAN_FINALIZED, AuditEntityType.PLAN_VERSION, version_id, student_id,
                              {"plan_id": plan_id})

    async def pdf_exported(self, export_id: str, version_id: str, student_id: str, fmt: str):
        return await self.log(AuditActionType.PDF_EXPORTED, AuditEntityType.PLAN_EXPORT, export_id, student_id,
                              {"plan_version_id": version_id, "format": fmt})

    async def pdf_downloaded(self, export_id: str, version_id: str, student_id: str):
        return await self.log(AuditActionType.PDF_DOWNLOADED, AuditEntityType.PLAN_EXPORT, export_id, student_id,
                              {"plan_version_id": version_id})

    async def signature_added(self, record_id: str, packet_id: str, student_id: str, role: str):
        return await self.log(AuditActionType.SIGNATURE_ADDED, AuditEntityType.SIGNATURE_RECORD, record_id, student_id,
                              {"packet_id": packet_id, "role": role})

    async def review_schedule_created(self, schedule_id: str, student_id: str, schedule_type: str):
        return await self.log(AuditActionType.REVIEW_SCHEDULE_CREATED, AuditEntityType.REVIEW_SCHEDULE, schedule_id,
                              student_id, {"schedule_type": schedule_type})

    async def case_viewed(self, case_id: str, student_id: str):
        return await self.log(AuditActionType.CASE_VIEWED, AuditEntityType.DISPUTE_CASE, case_id, student_id)

    async def case_exported(self, case_id: str, student_id: str):
        return await self.log(AuditActionType.CASE_EXPORTED, AuditEntityType.DISPUTE_CASE, case_id, student_id)

    async def permission_denied(self, entity_type: AuditEntityType, entity_id: str, reason: str):
        return await self.log(AuditActionType.PERMISSION_DENIED, entity_type, entity_id, metadata={"reason": reason})
