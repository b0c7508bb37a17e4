"""Student record ids: STU-000001, STU-000002, ..."""

import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.models.student import Student

RECORD_ID_PREFIX = "STU-"
RECORD_ID_DIGITS = 6
RECORD_ID_PATTERN = re.compile(r"^STU-(\d+)$")


def format_record_id(sequence: int) -> str:
    return f"{RECORD_ID_PREFIX}{sequence:0{RECORD_ID_DIGITS}d}"


def parse_record_id(record_id: Optional[str]) -> Optional[int]:
    match = RECORD_ID_PATTERN.match(record_id or "")
    return int(match.group(1)) if match else None


async def generate_student_record_id(db: AsyncSession) -> str:
    """Next id after the highest existing numeric record id"""
    result = await db.execute(
        select(Student.record_id).where(Student.record_id.like(f"{RECORD_ID_PREFIX}%"))
    )
    highest = 0
    for (record_id,) in result.all():
        value = parse_record_id(record_id)
        if value is not None and value > highest:
            highest = value
    return format_record_id(highest + 1)
