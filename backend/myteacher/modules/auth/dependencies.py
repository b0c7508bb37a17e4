"""
FastAPI dependencies for the signed-in staff user and role gates.

Tokens arrive as `Authorization: Bearer <access token>`.
"""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from myteacher.core.database import get_db
from myteacher.core.exceptions import AuthenticationRequiredError, ForbiddenError, OnboardingRequiredError
from myteacher.core.logging_config import bind_context
from myteacher.core.security import ACCESS, decode_token
from myteacher.models.user import AppUser, UserRole

security = HTTPBearer(auto_error=False)

PLAN_MANAGER_ROLES = (UserRole.ADMIN, UserRole.CASE_MANAGER)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> AppUser:
    """Active user named by the access token"""
    if credentials is None:
        raise AuthenticationRequiredError("Not authenticated")

    payload = decode_token(credentials.credentials, expected_type=ACCESS)
    user = await db.get(AppUser, payload["sub"])
    if user is None:
        raise AuthenticationRequiredError("User not found")
    if not user.is_active:
        raise ForbiddenError("User account is inactive")

    bind_context(user_id=user.id)
    return user

async def require_onboarded(
    current_user: AppUser = Depends(get_current_user)
) -> AppUser:
    """Reject users that have not finished onboarding"""
    if not current_user.is_onboarded and current_user.role != UserRole.ADMIN:
        raise OnboardingRequiredError()
    return current_user


async def require_admin(
    current_user: AppUser = Depends(get_current_user)
) -> AppUser:
    """Get current admin user"""
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Admin access required")
    return current_user


async def require_plan_manager(
    current_user: AppUser = Depends(require_onboarded)
) -> AppUser:
    """ADMIN or CASE_MANAGER"""
    if current_user.role not in PLAN_MANAGER_ROLES:
        raise ForbiddenError("Only administrators and case managers can perform this action")
    return current_user
