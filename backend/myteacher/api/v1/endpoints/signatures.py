"""
Signatures API

Endpoints:
- POST /plan-versions/{version_id}/signatures - Create the version's packet (manager only)
- GET /plan-versions/{version_id}/signatures - Packet with records and per-role summary
- POST /signature-packets/{packet_id}/records - Add a record to an OPEN packet (manager only)
- POST /signature-packets/{packet_id}/sign - Sign the packet record named in the body
- POST /signature-packets/{packet_id}/decline - Decline the packet record named in the body
- POST /signature-records/{record_id}/sign - Sign a record
- POST /signature-records/{record_id}/decline - Decline a PENDING record
- GET /signature-roles - Role labels and the electronic attestation text
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.database import get_db
from myteacher.core.exceptions import ResourceNotFoundError, SignaturePacketNotFoundError, VersionNotFoundError
from myteacher.models.plan import PlanInstance
from myteacher.models.plan_version import PlanVersion
from myteacher.models.signature import SignaturePacket, SignatureRecord
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded, require_plan_manager
from myteacher.schemas.signature import (
    DeclineRequest,
    PacketCreate,
    PacketDeclineRequest,
    PacketSignRequest,
    RoleSummary,
    SignaturePacketResponse,
    SignatureRecordResponse,
    SignerInput,
    SignRequest,
    SignResponse,
)
from myteacher.services import plan_service
from myteacher.services.audit_service import AuditLogger
from myteacher.services.signature_service import (
    ELECTRONIC_ATTESTATION,
    SIGNATURE_ROLE_LABELS,
    client_ip,
    roles_summary,
    signature_service,
)

router = APIRouter(tags=["Signatures"])


def packet_response(packet: SignaturePacket) -> SignaturePacketResponse:
    response = SignaturePacketResponse.model_validate(packet)
    response.roles_summary = [RoleSummary(**summary) for summary in roles_summary(packet)]
    return response


async def get_accessible_version(db: AsyncSession, user: AppUser, version_id: str) -> PlanVersion:
    version = await db.get(PlanVersion, version_id)
    if version is None:
        raise VersionNotFoundError(version_id)
    await plan_service.get_accessible_plan(db, user, version.plan_instance_id)
    return version


async def get_record_and_packet(db: AsyncSession, user: AppUser, record_id: str):
    record = await db.get(SignatureRecord, record_id)
    if record is None:
        raise ResourceNotFoundError("Signature record", record_id, code="ERR_SIGN_RECORD_NOT_FOUND")
    packet = await db.get(SignaturePacket, record.packet_id)
    await get_accessible_version(db, user, packet.plan_version_id)
    return record, packet


async def student_id_for_packet(db: AsyncSession, packet: SignaturePacket) -> str:
    version = await db.get(PlanVersion, packet.plan_version_id)
    plan = await db.get(PlanInstance, version.plan_instance_id)
    return plan.student_id


# ==================== Packets ====================

@router.post("/plan-versions/{version_id}/signatures", response_model=SignaturePacketResponse,
             status_code=status.HTTP_201_CREATED)
async def create_packet(
    version_id: str,
    data: PacketCreate,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    version = await get_accessible_version(db, current_user, version_id)
    packet = await signature_service.create_packet(
        db,
        version.id,
        current_user,
        [r.value for r in data.required_roles],
        signers=[s.model_dump() for s in data.signers] if data.signers else None,
        expires_at=data.expires_at,
    )
    await db.commit()
    return packet_response(packet)


@router.get("/plan-versions/{version_id}/signatures", response_model=SignaturePacketResponse)
async def get_packet(
    version_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    version = await get_accessible_version(db, current_user, version_id)
    packet = await signature_service.get_packet_for_version(db, version.id)
    if packet is None:
        raise SignaturePacketNotFoundError()
    return packet_response(packet)


@router.post("/signature-packets/{packet_id}/records", response_model=SignatureRecordResponse,
             status_code=status.HTTP_201_CREATED)
async def add_record(
    packet_id: str,
    data: SignerInput,
    current_user: AppUser = Depends(require_plan_manager),
    db: AsyncSession = Depends(get_db),
):
    packet = await db.get(SignaturePacket, packet_id)
    if packet is None:
        raise SignaturePacketNotFoundError(packet_id)
    await get_accessible_version(db, current_user, packet.plan_version_id)
    record = await signature_service.add_record(db, packet, data.model_dump())
    await db.commit()
    return record


# ==================== Signing ====================

async def get_packet_record(db: AsyncSession, user: AppUser, packet_id: str, record_id: str):
    """Record named in a packet sign/decline body; it must belong to that packet"""
    packet = await db.get(SignaturePacket, packet_id)
    if packet is None:
        raise SignaturePacketNotFoundError(packet_id)
    await get_accessible_version(db, user, packet.plan_version_id)
    record = next((r for r in packet.records if r.id == record_id), None)
    if record is None:
        raise ResourceNotFoundError("Signature record", record_id, code="ERR_SIGN_RECORD_NOT_FOUND")
    return record, packet


async def sign_and_audit(
    db: AsyncSession,
    request: Request,
    user: AppUser,
    packet: SignaturePacket,
    record: SignatureRecord,
    data: SignRequest,
) -> SignResponse:
    ip_address = client_ip(request.headers, request.client.host if request.client else None)
    record, complete = await signature_service.sign(
        db, packet, record, user, data.method, data.signer_name, data.attestation, ip_address
    )
    await AuditLogger(db, user, request).signature_added(
        record.id, packet.id, await student_id_for_packet(db, packet), record.role.value
    )
    await db.commit()
    return SignResponse(record=SignatureRecordResponse.model_validate(record), packet_complete=complete)


@router.post("/signature-packets/{packet_id}/sign", response_model=SignResponse)
async def sign_packet_record(
    packet_id: str,
    data: PacketSignRequest,
    request: Request,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    record, packet = await get_packet_record(db, current_user, packet_id, data.signature_record_id)
    return await sign_and_audit(db, request, current_user, packet, record, data)


@router.post("/signature-packets/{packet_id}/decline", response_model=SignatureRecordResponse)
async def decline_packet_record(
    packet_id: str,
    data: PacketDeclineRequest,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    record, packet = await get_packet_record(db, current_user, packet_id, data.signature_record_id)
    await signature_service.decline(db, packet, record, current_user, data.decline_reason)
    await db.commit()
    return record


@router.post("/signature-records/{record_id}/sign", response_model=SignResponse)
async def sign_record(
    record_id: str,
    data: SignRequest,
    request: Request,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Managers or the record's own signer user may sign"""
    record, packet = await get_record_and_packet(db, current_user, record_id)
    return await sign_and_audit(db, request, current_user, packet, record, data)


@router.post("/signature-records/{record_id}/decline", response_model=SignatureRecordResponse)
async def decline_record(
    record_id: str,
    data: DeclineRequest,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    record, packet = await get_record_and_packet(db, current_user, record_id)
    await signature_service.decline(db, packet, record, current_user, data.decline_reason)
    await db.commit()
    return record


@router.get("/signature-roles")
async def list_signature_roles():
    return {
        "roles": [{"value": role.value, "label": label} for role, label in SIGNATURE_ROLE_LABELS.items()],
        "electronic_attestation": ELECTRONIC_ATTESTATION,
    }
