"""
Best-practice document ingestion

Extracts text from uploaded exemplar documents (.txt, .pdf, .docx), splits it
into overlapping chunks, tags each chunk with the plan section it most likely
describes and stores the chunks for retrieval during draft generation.
"""

import re
from datetime import datetime
from io import BytesIO
from typing import Dict, List, Optional, Tuple, Any

from docx import Document as DocxDocument
from pypdf import PdfReader
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.database import session_scope
from myteacher.core.exceptions import IngestionError, ResourceNotFoundError
from myteacher.core.logging_config import logger
from myteacher.models.best_practice import BestPracticeChunk, BestPracticeDocument, IngestionStatus
from myteacher.models.plan import PlanTypeCode
from myteacher.services.storage_service import file_extension, get_upload_storage

CHUNK_SIZE = 1500
CHUNK_OVERLAP = 200
OVERLAP_WORDS = CHUNK_OVERLAP // 7
BATCH_SIZE = 100

SECTION_PATTERNS: Dict[PlanTypeCode, List[Tuple[re.Pattern, str]]] = {
    PlanTypeCode.IEP: [
        (re.compile(r"present\s*level", re.I), "present_levels"),
        (re.compile(r"academic\s*(achievement|performance)", re.I), "present_levels_academic"),
        (re.compile(r"functional\s*performance", re.I), "present_levels_functional"),
        (re.compile(r"annual\s*goal", re.I), "goals"),
        (re.compile(r"reading\s*(goal|objective)", re.I), "goals_reading"),
        (re.compile(r"math\s*(goal|objective)", re.I), "goals_math"),
        (re.compile(r"writing\s*(goal|objective)", re.I), "goals_writing"),
        (re.compile(r"communication\s*(goal|objective)", re.I), "goals_communication"),
        (re.compile(r"social[\s-]*emotional", re.I), "goals_social_emotional"),
        (re.compile(r"behavior\s*(goal|objective)", re.I), "goals_behavior"),
        (re.compile(r"short[\s-]*term\s*objective", re.I), "objectives"),
        (re.compile(r"benchmark", re.I), "objectives"),
        (re.compile(r"accommodation", re.I), "accommodations"),
        (re.compile(r"modification", re.I), "modifications"),
        (re.compile(r"special\s*education\s*service", re.I), "services"),
        (re.compile(r"related\s*service", re.I), "services_related"),
        (re.compile(r"supplementary\s*aid", re.I), "supplementary_aids"),
        (re.compile(r"least\s*restrictive", re.I), "placement_lre"),
        (re.compile(r"educational\s*placement", re.I), "placement"),
        (re.compile(r"transition", re.I), "transition"),
        (re.compile(r"extended\s*school\s*year", re.I), "esy"),
        (re.compile(r"parent\s*concern", re.I), "parent_concerns"),
    ],
    PlanTypeCode.FIVE_OH_FOUR: [
        (re.compile(r"disability\s*description", re.I), "disability"),
        (re.compile(r"major\s*life\s*activit", re.I), "major_life_activities"),
        (re.compile(r"accommodation", re.I), "accommodations"),
        (re.compile(r"classroom\s*accommodation", re.I), "accommodations_classroom"),
        (re.compile(r"testing\s*accommodation", re.I), "accommodations_testing"),
        (re.compile(r"physical\s*accommodation", re.I), "accommodations_physical"),
        (re.compile(r"health\s*plan", re.I), "health_plan"),
        (re.compile(r"emergency", re.I), "emergency_plan"),
        (re.compile(r"medication", re.I), "medication"),
        (re.compile(r"review\s*date", re.I), "review"),
    ],
    PlanTypeCode.BEHAVIOR_PLAN: [
        (re.compile(r"target\s*behavior", re.I), "target_behavior"),
        (re.compile(r"problem\s*behavior", re.I), "target_behavior"),
        (re.compile(r"behavior\s*description", re.I), "target_behavior"),
        (re.compile(r"function\s*(of|analysis)", re.I), "function_analysis"),
        (re.compile(r"antecedent", re.I), "antecedents"),
        (re.compile(r"trigger", re.I), "antecedents"),
        (re.compile(r"consequence", re.I), "consequences"),
        (re.compile(r"replacement\s*behavior", re.I), "replacement_behavior"),
        (re.compile(r"alternative\s*behavior", re.I), "replacement_behavior"),
        (re.compile(r"prevention\s*strateg", re.I), "prevention_strategies"),
        (re.compile(r"teaching\s*strateg", re.I), "teaching_strategies"),
        (re.compile(r"response\s*(plan|strateg)", re.I), "response_strategies"),
        (re.compile(r"reinforcement", re.I), "reinforcement"),
        (re.compile(r"crisis", re.I), "crisis_plan"),
        (re.compile(r"de-?escalation", re.I), "deescalation"),
        (re.compile(r"data\s*collection", re.I), "data_collection"),
        (re.compile(r"progress\s*monitor", re.I), "progress_monitoring"),
    ],
}


def extract_text(content: bytes, filename: str) -> str:
    """Plain text from a .txt, .pdf or .docx upload"""
    ext = file_extension(filename)
    if ext == "txt":
        return content.decode("utf-8", errors="replace")
    if ext == "pdf":
        reader = PdfReader(BytesIO(content))
        return "\n\n".join(page.extract_text() or "" for page in reader.pages)
    if ext == "docx":
        document = DocxDocument(BytesIO(content))
        return "\n\n".join(p.text for p in document.paragraphs)
    raise IngestionError(f"Unsupported file type: .{ext}")


def split_into_chunks(text: str) -> List[str]:
    """
    Pack blank-line separated paragraphs into ~CHUNK_SIZE character chunks.

    Each new chunk starts with the last OVERLAP_WORDS words of the previous
    one so context carries across the boundary.
    """
    chunks: List[str] = []
    current = ""

    for paragraph in re.split(r"\n\n+", text):
        trimmed = paragraph.strip()
        if not trimmed:
            continue
        if current and len(current) + len(trimmed) > CHUNK_SIZE:
            chunks.append(current.strip())
            overlap = current.split()[-OVERLAP_WORDS:]
            current = " ".join(overlap) + "\n\n" + trimmed
        else:
            current += ("\n\n" if current else "") + trimmed

    if current.strip():
        chunks.append(current.strip())
    return chunks


def detect_section_tag(text: str, plan_type: Optional[PlanTypeCode]) -> Optional[str]:
    patterns = SECTION_PATTERNS.get(plan_type) or SECTION_PATTERNS[PlanTypeCode.IEP]
    for pattern, tag in patterns:
        if pattern.search(text):
            return tag
    return None


def section_tags_for(plan_type: Optional[PlanTypeCode]) -> List[str]:
    patterns = SECTION_PATTERNS.get(plan_type) or SECTION_PATTERNS[PlanTypeCode.IEP]
    return sorted({tag for _, tag in patterns})


class IngestionService:
    """Turns stored best-practice documents into tagged chunks"""

    async def ingest(self, db: AsyncSession, document: BestPracticeDocument) -> int:
        document.ingestion_status = IngestionStatus.PROCESSING
        document.ingestion_message = None
        await db.flush()

        try:
            storage = get_upload_storage()
            if not await storage.exists(document.storage_key):
                raise IngestionError(f"File not found: {document.file_name}", document.id)

            text = extract_text(await storage.read(document.storage_key), document.file_name)
            if not text.strip():
                raise IngestionError("No text content extracted from document", document.id)

            await db.execute(delete(BestPracticeChunk).where(BestPracticeChunk.document_id == document.id))

            chunks = split_into_chunks(text)
            records = [
                BestPracticeChunk(
                    document_id=document.id,
                    sequence=index,
                    text=chunk,
                    section_tag=detect_section_tag(chunk, document.plan_type),
                    plan_type=document.plan_type,
                    jurisdiction_id=document.jurisdiction_id,
                    grade_band=document.grade_band,
                )
                for index, chunk in enumerate(chunks)
            ]
            for start in range(0, len(records), BATCH_SIZE):
                db.add_all(records[start:start + BATCH_SIZE])
                await db.flush()

            document.ingestion_status = IngestionStatus.COMPLETE
            document.ingestion_message = f"Successfully extracted {len(chunks)} chunks"
            document.ingestion_at = datetime.utcnow()
            await db.flush()
            logger.info(f"[Ingestion] Document {document.id}: {len(chunks)} chunks created")
            return len(chunks)

        except Exception as e:
            message = e.message if isinstance(e, IngestionError) else str(e)
            document.ingestion_status = IngestionStatus.ERROR
            document.ingestion_message = message
            document.ingestion_at = datetime.utcnow()
            await db.flush()
            logger.error(f"[Ingestion] Document {document.id} failed: {message}")
            raise

    async def chunk_stats(self, db: AsyncSession, document_id: str) -> Dict[str, Any]:
        result = await db.execute(
            select(BestPracticeChunk.section_tag, func.count(BestPracticeChunk.id))
            .where(BestPracticeChunk.document_id == document_id)
            .group_by(BestPracticeChunk.section_tag)
        )
        by_section: Dict[str, int] = {}
        for tag, count in result.all():
            by_section[tag or "untagged"] = count
        return {"total_chunks": sum(by_section.values()), "by_section": by_section}

    async def list_chunks(self, db: AsyncSession, document_id: str) -> List[BestPracticeChunk]:
        result = await db.execute(
            select(BestPracticeChunk)
            .where(BestPracticeChunk.document_id == document_id)
            .order_by(BestPracticeChunk.sequence.asc())
        )
        return list(result.scalars().all())


ingestion_service = IngestionService()


async def ingest_document_background(document_id: str) -> None:
    """Background task: the ERROR status is committed, the failure only logged"""
    async with session_scope() as db:
        document = await db.get(BestPracticeDocument, document_id)
        if document is None:
            logger.warning(f"[Ingestion] Document {document_id} not found")
            return
        try:
            await ingestion_service.ingest(db, document)
        except Exception as e:
            logger.log_error_with_context(e, context=f"ingest_document_background({document_id})")


async def get_document(db: AsyncSession, document_id: str) -> BestPracticeDocument:
    document = await db.get(BestPracticeDocument, document_id)
    if document is None:
        raise ResourceNotFoundError("Best practice document", document_id)
    return document
