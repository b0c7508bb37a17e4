from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, Dict
from datetime import datetime

from myteacher.models.user import UserRole


class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=100, pattern=r'^[A-Za-z0-9_.-]+$')
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str = Field(..., min_length=1, max_length=255)


class UserLogin(BaseModel):
    username: str = Field(..., min_length=1, description="Username or email")
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    display_name: str
    avatar_url: Optional[str] = None
    role: UserRole
    is_active: bool
    is_onboarded: bool
    state_code: Optional[str] = None
    district_name: Optional[str] = None
    school_name: Optional[str] = None
    jurisdiction_id: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None
    permissions: Dict[str, bool] = {}

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class OnboardingRequest(BaseModel):
    role: UserRole = UserRole.TEACHER
    state_code: str = Field(..., min_length=2, max_length=2)
    district_name: str = Field(..., min_length=1, max_length=255)
    school_name: Optional[str] = Field(None, max_length=255)

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError("Role must be TEACHER or CASE_MANAGER")
        return v

    @field_validator('state_code')
    @classmethod
    def upper_state(cls, v: str) -> str:
        return v.upper()


# ============================================
# OAuth Schemas
# ============================================

class OAuthUrlResponse(BaseModel):
    """Response containing OAuth authorization URL."""
    authorization_url: str
    state: Optional[str] = None


class OAuthCallbackRequest(BaseModel):
    """Request from OAuth callback with code."""
    code: str
    state: Optional[str] = None


class OAuthTokenResponse(LoginResponse):
    """Response after successful OAuth authentication."""
    is_new_user: bool = False
