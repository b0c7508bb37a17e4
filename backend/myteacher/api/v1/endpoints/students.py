"""
Students API

Endpoints:
- GET /students - Caller's active students
- POST /students - Create a student assigned to the caller
- GET/PATCH/DELETE /students/{student_id} - Read, update, soft-delete
- GET/POST /students/{student_id}/status - Status snapshot and history
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import List

from myteacher.core.database import get_db
from myteacher.core.logging_config import logger
from myteacher.models.student import Student, StudentStatus
from myteacher.models.user import AppUser
from myteacher.modules.auth.dependencies import require_onboarded
from myteacher.schemas.student import (
    StudentCreate,
    StudentResponse,
    StudentStatusCreate,
    StudentStatusResponse,
    StudentStatusSummary,
    StudentUpdate,
)
from myteacher.services.plan_service import get_accessible_student
from myteacher.services.student_id_service import generate_student_record_id

router = APIRouter(prefix="/students", tags=["Students"])

STATUS_HISTORY_LIMIT = 20


@router.get("", response_model=List[StudentResponse])
async def list_students(
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Student)
        .where(Student.teacher_id == current_user.id, Student.is_active.is_(True))
        .order_by(Student.last_name, Student.first_name)
    )
    return result.scalars().all()


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    data: StudentCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    student = Student(
        record_id=await generate_student_record_id(db),
        teacher_id=current_user.id,
        jurisdiction_id=data.jurisdiction_id or current_user.jurisdiction_id,
        **data.model_dump(exclude={"jurisdiction_id"}),
    )
    db.add(student)
    await db.commit()
    logger.info(f"[Students] Student {student.record_id} created by {current_user.id}")
    return student


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    return await get_accessible_student(db, current_user, student_id)


@router.patch("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: str,
    data: StudentUpdate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    student = await get_accessible_student(db, current_user, student_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(student, key, value)
    await db.commit()
    return student


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete"""
    student = await get_accessible_student(db, current_user, student_id)
    student.is_active = False
    await db.commit()
    logger.info(f"[Students] Student {student.id} deactivated by {current_user.id}")


# ==================== Status ====================

@router.get("/{student_id}/status", response_model=StudentStatusSummary)
async def get_student_status(
    student_id: str,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    student = await get_accessible_student(db, current_user, student_id)
    result = await db.execute(
        select(StudentStatus)
        .where(StudentStatus.student_id == student.id)
        .order_by(StudentStatus.effective_date.desc(), StudentStatus.created_at.desc())
    )
    entries = result.scalars().all()

    current = {}
    for entry in entries:
        current.setdefault(entry.scope, entry)

    return StudentStatusSummary(
        current=[StudentStatusResponse.model_validate(e) for e in current.values()],
        history=[StudentStatusResponse.model_validate(e) for e in entries[:STATUS_HISTORY_LIMIT]],
    )


@router.post("/{student_id}/status", response_model=StudentStatusResponse, status_code=status.HTTP_201_CREATED)
async def record_student_status(
    student_id: str,
    data: StudentStatusCreate,
    current_user: AppUser = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db),
):
    student = await get_accessible_student(db, current_user, student_id)
    entry = StudentStatus(
        student_id=student.id,
        scope=data.scope,
        code=data.code,
        summary=data.summary,
        effective_date=data.effective_date or datetime.utcnow(),
        updated_by_id=current_user.id,
    )
    db.add(entry)
    await db.commit()
    return entry
