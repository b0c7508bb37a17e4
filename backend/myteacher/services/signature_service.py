"""
Signature Service - packet creation and the per-record signing state machine

A packet belongs to exactly one plan version. Each record is PENDING until it
is SIGNED or DECLINED; the packet flips to COMPLETE once every required role
has at least one SIGNED record.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import (
    BusinessRuleError,
    SignatureAlreadySignedError,
    SignaturePacketCompleteError,
    SignaturePacketExistsError,
    SignaturePacketExpiredError,
    SignatureUnauthorizedRoleError,
    ValidationFailedError,
)
from myteacher.core.logging_config import logger
from myteacher.models.signature import (
    SignatureMethod,
    SignaturePacket,
    SignaturePacketStatus,
    SignatureRecord,
    SignatureRole,
    SignatureStatus,
)
from myteacher.models.user import AppUser, UserRole

ELECTRONIC_ATTESTATION = (
    "By typing my name below, I confirm that I am the person named above, "
    "I have reviewed the document, and I agree to sign this document electronically. "
    "I understand that my electronic signature has the same legal effect as a handwritten signature."
)

SIGNATURE_ROLE_LABELS = {
    SignatureRole.PARENT_GUARDIAN: "Parent/Guardian",
    SignatureRole.CASE_MANAGER: "Case Manager",
    SignatureRole.SPECIAL_ED_TEACHER: "Special Education Teacher",
    SignatureRole.GENERAL_ED_TEACHER: "General Education Teacher",
    SignatureRole.RELATED_SERVICE_PROVIDER: "Related Service Provider",
    SignatureRole.ADMINISTRATOR: "Administrator",
    SignatureRole.STUDENT: "Student",
    SignatureRole.OTHER: "Other",
}


def can_manage_packets(user: AppUser) -> bool:
    return user.role in (UserRole.ADMIN, UserRole.CASE_MANAGER)


def client_ip(headers: Dict[str, str], fallback: Optional[str]) -> str:
    """First X-Forwarded-For hop, else the socket peer"""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return fallback or "unknown"


def all_required_signed(packet: SignaturePacket) -> bool:
    signed = {r.role.value for r in packet.records if r.status == SignatureStatus.SIGNED}
    return all(role in signed for role in (packet.required_roles or []))


def roles_summary(packet: SignaturePacket) -> List[Dict[str, Any]]:
    summary = []
    for role in packet.required_roles or []:
        records = [r for r in packet.records if r.role.value == role]
        summary.append({
            "role": role,
            "label": SIGNATURE_ROLE_LABELS.get(SignatureRole(role), role),
            "signed": any(r.status == SignatureStatus.SIGNED for r in records),
            "pending": sum(1 for r in records if r.status == SignatureStatus.PENDING),
            "total": len(records),
        })
    return summary


class SignatureService:
    """Service for signature packets and records"""

    async def get_packet_for_version(self, db: AsyncSession, version_id: str) -> Optional[SignaturePacket]:
        result = await db.execute(
            select(SignaturePacket).where(SignaturePacket.plan_version_id == version_id)
        )
        return result.scalar_one_or_none()

    async def create_packet(
        self,
        db: AsyncSession,
        version_id: str,
        created_by: AppUser,
        required_roles: List[str],
        signers: Optional[List[Dict[str, Any]]] = None,
        expires_at: Optional[datetime] = None,
    ) -> SignaturePacket:
        """
        Create the packet and its PENDING records (flush only).

        Records come from `signers` when given, otherwise one blank record per
        required role.
        """
        if not required_roles:
            raise ValidationFailedError("At least one required role is needed", field="required_roles")
        if await self.get_packet_for_version(db, version_id):
            raise SignaturePacketExistsError(version_id)

        roles = [SignatureRole(r).value for r in required_roles]
        packet = SignaturePacket(
            plan_version_id=version_id,
            status=SignaturePacketStatus.OPEN,
            required_roles=roles,
            expires_at=expires_at,
            created_by_id=created_by.id,
        )
        entries = signers or [{"role": role} for role in roles]
        packet.records = [
            SignatureRecord(
                role=SignatureRole(entry["role"]),
                signer_name=entry.get("signer_name") or "",
                signer_email=entry.get("signer_email"),
                signer_title=entry.get("signer_title"),
                signer_user_id=entry.get("signer_user_id"),
                status=SignatureStatus.PENDING,
            )
            for entry in entries
        ]
        db.add(packet)
        await db.flush()

        logger.info(f"[Signatures] Packet {packet.id} created for version {version_id} roles={roles}")
        return packet

    async def add_record(self, db: AsyncSession, packet: SignaturePacket, data: Dict[str, Any]) -> SignatureRecord:
        if packet.status != SignaturePacketStatus.OPEN:
            raise BusinessRuleError("Can only add records to open packets", code="ERR_SIGN_PACKET_NOT_OPEN")
        record = SignatureRecord(
            role=SignatureRole(data["role"]),
            signer_name=data.get("signer_name") or "",
            signer_email=data.get("signer_email"),
            signer_title=data.get("signer_title"),
            signer_user_id=data.get("signer_user_id"),
            status=SignatureStatus.PENDING,
        )
        packet.records.append(record)
        await db.flush()
        return record

    def _check_packet_open(self, packet: SignaturePacket) -> None:
        if packet.status == SignaturePacketStatus.COMPLETE:
            raise SignaturePacketCompleteError()
        if packet.status == SignaturePacketStatus.EXPIRED:
            raise SignaturePacketExpiredError()
        if packet.expires_at and packet.expires_at < datetime.utcnow():
            raise SignaturePacketExpiredError()

    def _check_can_act(self, user: AppUser, record: SignatureRecord) -> None:
        if can_manage_packets(user):
            return
        if record.signer_user_id and str(record.signer_user_id) == str(user.id):
            return
        raise SignatureUnauthorizedRoleError(record.role.value)

    async def sign(
        self,
        db: AsyncSession,
        packet: SignaturePacket,
        record: SignatureRecord,
        user: AppUser,
        method: SignatureMethod,
        signer_name: str,
        attestation: bool,
        ip_address: str,
    ) -> Tuple[SignatureRecord, bool]:
        """Sign a record; returns (record, packet_complete)"""
        self._check_packet_open(packet)
        if record.status == SignatureStatus.SIGNED:
            raise SignatureAlreadySignedError(record.id)
        if method == SignatureMethod.ELECTRONIC and not attestation:
            raise ValidationFailedError("Attestation is required for electronic signatures", field="attestation")
        self._check_can_act(user, record)

        now = datetime.utcnow()
        record.status = SignatureStatus.SIGNED
        record.method = method
        record.signer_name = signer_name
        record.signer_user_id = user.id
        record.signed_at = now
        record.declined_at = None
        record.decline_reason = None
        record.attestation_text = ELECTRONIC_ATTESTATION if method == SignatureMethod.ELECTRONIC else None
        record.ip_address = ip_address

        complete = all_required_signed(packet)
        if complete:
            packet.status = SignaturePacketStatus.COMPLETE
            packet.completed_at = now
            logger.info(f"[Signatures] Packet {packet.id} complete")

        await db.flush()
        return record, complete

    async def decline(self, db: AsyncSession, packet: SignaturePacket, record: SignatureRecord,
                      user: AppUser, reason: str) -> SignatureRecord:
        if record.status != SignatureStatus.PENDING:
            raise BusinessRuleError("Can only decline pending signatures", code="ERR_SIGN_NOT_PENDING")
        if not reason or not reason.strip():
            raise ValidationFailedError("A decline reason is required", field="decline_reason")
        self._check_can_act(user, record)

        record.status = SignatureStatus.DECLINED
        record.declined_at = datetime.utcnow()
        record.decline_reason = reason.strip()
        await db.flush()
        return record


signature_service = SignatureService()
