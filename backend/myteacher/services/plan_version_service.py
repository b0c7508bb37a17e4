"""
Plan Version Service - finalization, distribution and document exports

Handles:
- Finalizing a plan into an immutable FINAL version (with optional decisions
  and signature packet, all in one transaction)
- The distribution gate (case manager signature required when a packet exists)
- Rendering PDF / HTML exports from the version snapshot
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.database import session_scope
from myteacher.core.exceptions import (
    VersionAlreadyDistributedError,
    VersionRequiresCmSignatureError,
    VersionStatusInvalidError,
)
from myteacher.core.logging_config import logger
from myteacher.models.plan import PlanInstance, PlanStatus
from myteacher.models.plan_version import ExportFormat, PlanExport, PlanVersion, PlanVersionStatus
from myteacher.models.signature import SignaturePacket, SignatureRole, SignatureStatus
from myteacher.models.user import AppUser
from myteacher.services import decision_service
from myteacher.services.plan_service import build_snapshot
from myteacher.services.signature_service import signature_service
from myteacher.services.storage_service import get_export_storage
from myteacher.utils.pdf_generator import PlanDocumentRenderer

FINALIZABLE_STATUSES = (PlanStatus.DRAFT, PlanStatus.ACTIVE)

EXPORT_MIME_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.HTML: "text/html",
}


def signature_rows(packet: Optional[SignaturePacket]) -> List[Dict[str, Any]]:
    if packet is None:
        return []
    return [
        {
            "role": r.role.value,
            "signer_name": r.signer_name,
            "status": r.status.value,
            "signed_at": r.signed_at.isoformat() if r.signed_at else None,
        }
        for r in packet.records
    ]


def has_signed_case_manager(packet: SignaturePacket) -> bool:
    return any(
        r.role == SignatureRole.CASE_MANAGER and r.status == SignatureStatus.SIGNED
        for r in packet.records
    )


class PlanVersionService:
    """Service for plan versions and exports"""

    async def next_version_number(self, db: AsyncSession, plan_id: str) -> int:
        result = await db.execute(
            select(func.max(PlanVersion.version_number)).where(PlanVersion.plan_instance_id == plan_id)
        )
        return (result.scalar() or 0) + 1

    async def finalize(
        self,
        db: AsyncSession,
        plan: PlanInstance,
        user: AppUser,
        version_notes: Optional[str] = None,
        decisions: Optional[List[Dict[str, Any]]] = None,
        create_signature_packet: bool = True,
        required_signature_roles: Optional[List[str]] = None,
    ) -> Tuple[PlanVersion, Optional[SignaturePacket]]:
        """
        Snapshot the plan as a new FINAL version.

        Everything is flushed on the caller's session; the caller commits once
        so the version, decisions and packet land together or not at all.
        """
        if plan.status not in FINALIZABLE_STATUSES:
            raise VersionStatusInvalidError(plan.status.value, "DRAFT or ACTIVE")

        decisions = decisions or []
        if decisions:
            decision_service.ensure_iep(plan)
            for data in decisions:
                await decision_service.validate_references(db, plan, data.get("meeting_id"), None)

        version_number = await self.next_version_number(db, plan.id)
        snapshot = await build_snapshot(db, plan, version_number)

        previous = await db.execute(
            select(PlanVersion).where(
                PlanVersion.plan_instance_id == plan.id,
                PlanVersion.status == PlanVersionStatus.FINAL,
            )
        )
        for old in previous.scalars().all():
            old.status = PlanVersionStatus.SUPERSEDED

        version = PlanVersion(
            plan_instance_id=plan.id,
            version_number=version_number,
            status=PlanVersionStatus.FINAL,
            snapshot_json=snapshot,
            version_notes=version_notes,
            finalized_at=datetime.utcnow(),
            finalized_by_id=user.id,
        )
        db.add(version)
        await db.flush()

        for data in decisions:
            db.add(decision_service.build_entry(plan, user, data, plan_version_id=version.id))

        packet = None
        if create_signature_packet:
            packet = await signature_service.create_packet(
                db, version.id, user, required_signature_roles or [SignatureRole.CASE_MANAGER.value]
            )

        if plan.status == PlanStatus.DRAFT:
            plan.status = PlanStatus.ACTIVE

        await db.flush()
        logger.info(f"[Versions] Plan {plan.id} finalized as v{version_number} by {user.id}")
        return version, packet

    async def distribute(self, db: AsyncSession, version: PlanVersion, user: AppUser) -> PlanVersion:
        if version.status == PlanVersionStatus.DISTRIBUTED:
            raise VersionAlreadyDistributedError(version.id)
        if version.status != PlanVersionStatus.FINAL:
            raise VersionStatusInvalidError(version.status.value, PlanVersionStatus.FINAL.value)

        packet = await signature_service.get_packet_for_version(db, version.id)
        if packet is not None and not has_signed_case_manager(packet):
            raise VersionRequiresCmSignatureError()

        version.status = PlanVersionStatus.DISTRIBUTED
        version.distributed_at = datetime.utcnow()
        version.distributed_by_id = user.id
        await db.flush()
        logger.info(f"[Versions] Version {version.id} distributed by {user.id}")
        return version

    async def create_export(self, db: AsyncSession, version: PlanVersion, fmt: ExportFormat,
                            user_id: Optional[str]) -> PlanExport:
        """Render the snapshot, store the file and record a PlanExport row"""
        packet = await signature_service.get_packet_for_version(db, version.id)
        renderer = PlanDocumentRenderer()
        snapshot = version.snapshot_json or {}
        if fmt == ExportFormat.PDF:
            content = renderer.render_pdf(snapshot, signature_rows(packet))
        else:
            content = renderer.render_html(snapshot, signature_rows(packet)).encode("utf-8")

        student = snapshot.get("student") or {}
        ext = fmt.value.lower()
        file_name = f"{student.get('record_id') or 'plan'}_v{version.version_number}.{ext}"
        stored = await get_export_storage().save(f"plan-versions/{version.id}", file_name, content)

        export = PlanExport(
            plan_version_id=version.id,
            format=fmt,
            storage_key=stored["storage_key"],
            file_name=file_name,
            file_size_bytes=len(content),
            mime_type=EXPORT_MIME_TYPES[fmt],
            exported_by_id=user_id,
        )
        export.plan_version = version
        db.add(export)
        await db.flush()
        return export


plan_version_service = PlanVersionService()


async def generate_version_pdf(version_id: str, user_id: Optional[str]) -> None:
    """Background task run after finalize commits; failures are only logged"""
    try:
        async with session_scope() as db:
            version = await db.get(PlanVersion, version_id)
            if version is None:
                logger.warning(f"[Versions] PDF skipped, version {version_id} not found")
                return
            export = await plan_version_service.create_export(db, version, ExportFormat.PDF, user_id)
        logger.info(f"[Versions] PDF {export.id} generated for version {version_id}")
    except Exception as e:
        logger.log_error_with_context(e, context=f"generate_version_pdf({version_id})")
