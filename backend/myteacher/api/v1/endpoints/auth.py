from fastapi import APIRouter, Depends, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func
from datetime import datetime

from myteacher.core.database import get_db
from myteacher.core.exceptions import (
    AuthenticationRequiredError,
    ForbiddenError,
    MyTeacherError,
    ValidationFailedError,
)
from myteacher.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
    REFRESH,
    token_payload_for,
    generate_oauth_state,
)
from myteacher.core.logging_config import bind_context, logger
from myteacher.core.rate_limiter import limiter, auth_rate_limit
from myteacher.models.user import AppUser, Jurisdiction, UserRole
from myteacher.modules.auth.dependencies import get_current_user
from myteacher.modules.auth.permissions import effective_permissions
from myteacher.modules.oauth.google_provider import google_oauth
from myteacher.schemas.auth import (
    UserRegister,
    UserLogin,
    RefreshTokenRequest,
    AccessTokenResponse,
    LoginResponse,
    UserResponse,
    OnboardingRequest,
    OAuthCallbackRequest,
    OAuthUrlResponse,
    OAuthTokenResponse,
)

router = APIRouter()


def user_response(user: AppUser) -> UserResponse:
    response = UserResponse.model_validate(user)
    response.permissions = effective_permissions(user)
    return response


def issue_tokens(user: AppUser) -> dict:
    payload = token_payload_for(user)
    return {
        "access_token": create_access_token(payload),
        "refresh_token": create_refresh_token(payload),
        "token_type": "bearer",
    }


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a TEACHER account (rate limited: 3/min)"""
    client_ip = request.client.host if request.client else "unknown"

    result = await db.execute(
        select(AppUser).where(
            or_(
                func.lower(AppUser.username) == user_data.username.lower(),
                func.lower(AppUser.email) == user_data.email.lower(),
            )
        )
    )
    if result.scalars().first():
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Username or email already registered",
            client_ip=client_ip
        )
        raise ValidationFailedError("Username or email already registered")

    user = AppUser(
        username=user_data.username,
        email=user_data.email.lower(),
        password_hash=get_password_hash(user_data.password),
        display_name=user_data.display_name,
        role=UserRole.TEACHER,
        permission=None,
    )
    db.add(user)
    await db.commit()

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
    )
    return user_response(user)


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with username or email (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"
    identifier = credentials.username.strip().lower()

    result = await db.execute(
        select(AppUser).where(
            or_(func.lower(AppUser.username) == identifier, func.lower(AppUser.email) == identifier)
        )
    )
    user = result.scalars().first()

    if not user or not user.password_hash or not verify_password(credentials.password, user.password_hash):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=identifier,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise AuthenticationRequiredError("Incorrect username or password")

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=identifier,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise ForbiddenError("User account is inactive")

    user.last_login = datetime.utcnow()
    await db.commit()

    bind_context(user_id=user.id)
    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )
    return LoginResponse(**issue_tokens(user), user=user_response(user))


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_token(
    token_data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new access token"""
    payload = decode_token(token_data.refresh_token, expected_type=REFRESH)

    user = await db.get(AppUser, payload.get("sub"))
    if not user or not user.is_active:
        raise AuthenticationRequiredError("User not found or inactive")

    return AccessTokenResponse(access_token=create_access_token(token_payload_for(user)))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: AppUser = Depends(get_current_user)):
    """Get current user information"""
    return user_response(current_user)


@router.post("/onboarding", response_model=UserResponse)
async def complete_onboarding(
    data: OnboardingRequest,
    current_user: AppUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Set role and school details; links the matching jurisdiction when one exists"""
    current_user.role = data.role
    current_user.state_code = data.state_code
    current_user.district_name = data.district_name
    current_user.school_name = data.school_name
    current_user.is_onboarded = True

    result = await db.execute(
        select(Jurisdiction).where(
            Jurisdiction.state_code == data.state_code,
            func.lower(Jurisdiction.district_name) == data.district_name.lower(),
        )
    )
    jurisdiction = result.scalars().first()
    current_user.jurisdiction_id = jurisdiction.id if jurisdiction else None

    await db.commit()
    logger.info(f"[Auth] User {current_user.id} onboarded as {data.role.value}")
    return user_response(current_user)


@router.post("/logout")
async def logout(current_user: AppUser = Depends(get_current_user)):
    """Tokens are stateless; the client discards them"""
    logger.log_auth_event(event="logout", success=True, user_email=current_user.email)
    return {"success": True}


# ============================================
# Google OAuth
# ============================================

@router.get("/google/url", response_model=OAuthUrlResponse)
async def google_auth_url():
    """Get Google OAuth authorization URL"""
    if not google_oauth.is_configured:
        raise MyTeacherError(
            "Google OAuth is not configured",
            code="ERR_OAUTH_NOT_CONFIGURED",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    state = generate_oauth_state()
    return OAuthUrlResponse(authorization_url=google_oauth.get_authorization_url(state), state=state)


@router.post("/google/callback", response_model=OAuthTokenResponse)
@auth_rate_limit()
async def google_callback(
    request: Request,
    data: OAuthCallbackRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange the code; find the user by google id or email, or create a TEACHER"""
    client_ip = request.client.host if request.client else "unknown"
    if not google_oauth.is_configured:
        raise MyTeacherError(
            "Google OAuth is not configured",
            code="ERR_OAUTH_NOT_CONFIGURED",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    profile = await google_oauth.authenticate(data.code)
    if not profile or not profile.get("google_id"):
        logger.log_auth_event(event="google_login", success=False, reason="Code exchange failed", client_ip=client_ip)
        raise AuthenticationRequiredError("Google authentication failed")

    email = (profile.get("email") or "").lower() or None
    conditions = [AppUser.google_id == profile["google_id"]]
    if email:
        conditions.append(func.lower(AppUser.email) == email)
    result = await db.execute(select(AppUser).where(or_(*conditions)))
    user = result.scalars().first()

    is_new_user = user is None
    if is_new_user:
        user = AppUser(
            email=email,
            display_name=profile.get("display_name") or email or "Google user",
            avatar_url=profile.get("avatar_url"),
            google_id=profile["google_id"],
            role=UserRole.TEACHER,
            permission=None,
        )
        db.add(user)
    else:
        if not user.is_active:
            raise ForbiddenError("User account is inactive")
        user.google_id = user.google_id or profile["google_id"]
        user.avatar_url = user.avatar_url or profile.get("avatar_url")

    user.last_login = datetime.utcnow()
    await db.commit()

    logger.log_auth_event(
        event="google_login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        new_user=is_new_user,
    )
    return OAuthTokenResponse(**issue_tokens(user), user=user_response(user), is_new_user=is_new_user)
