"""
Permission resolution for staff users.

Role defaults are combined with the optional UserPermission row:
ADMIN holds every permission, TEACHER and CASE_MANAGER can create and update
plans, and everything else must be granted explicitly.
"""
from datetime import datetime
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from myteacher.core.exceptions import ForbiddenError
from myteacher.models.user import AppUser, UserRole, StudentAccess
from myteacher.models.student import Student

PERMISSION_FLAGS = (
    "can_create_plans",
    "can_update_plans",
    "can_read_all",
    "can_manage_users",
    "can_manage_docs",
)


def effective_permissions(user: AppUser) -> Dict[str, bool]:
    if user.role == UserRole.ADMIN:
        return {flag: True for flag in PERMISSION_FLAGS}

    row = user.permission
    perms = {flag: bool(getattr(row, flag, False)) for flag in PERMISSION_FLAGS}
    if user.role in (UserRole.TEACHER, UserRole.CASE_MANAGER):
        perms["can_create_plans"] = True
        perms["can_update_plans"] = True
    return perms


def has_permission(user: AppUser, flag: str) -> bool:
    return effective_permissions(user).get(flag, False)


def require_permission(user: AppUser, flag: str) -> None:
    if not has_permission(user, flag):
        raise ForbiddenError(f"Missing permission: {flag}")


async def can_access_student(db: AsyncSession, user: AppUser, student: Student) -> bool:
    """ADMIN, assigned teacher, same-jurisdiction read-all, or an unexpired grant"""
    if user.role == UserRole.ADMIN:
        return True
    if student.teacher_id and str(student.teacher_id) == str(user.id):
        return True

    if has_permission(user, "can_read_all"):
        if user.jurisdiction_id and student.jurisdiction_id == user.jurisdiction_id:
            return True

    result = await db.execute(
        select(StudentAccess).where(
            StudentAccess.student_id == student.id,
            StudentAccess.user_id == user.id,
        )
    )
    grant = result.scalar_one_or_none()
    if grant and (grant.expires_at is None or grant.expires_at > datetime.utcnow()):
        return True
    return False
