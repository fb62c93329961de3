"""
services/auth/router.py
Email + password authentication for customers and administrators.
Implements: Register → Login → session cookie (7 days) → Logout (deny-list)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from config.settings import settings
from services.user.service import create_user, get_user_by_email
from shared.middleware.auth import (
    clear_session_cookie,
    get_current_user,
    require_admin,
    security,
    set_session_cookie,
)
from shared.models.models import User, UserRole
from shared.schemas.schemas import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    SessionResponse,
    UserResponse,
)
from shared.utils.exceptions import Unauthorized, ValidationError
from shared.utils.security import (
    Identity,
    create_session_token,
    get_token_remaining_ttl,
    resolve_session,
    verify_password,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ── Helpers ───────────────────────────────────────────────────

def _issue_session(user: User, response: Response, cookie_name: str) -> str:
    """Sign a session token for the user and set it as an httpOnly cookie."""
    token, _ = create_session_token(user_id=user.id, email=user.email, role=user.role)
    set_session_cookie(response, cookie_name, token)
    return token


async def _authenticate(db: AsyncSession, email: str, password: str) -> User:
    if not email or not password:
        raise ValidationError("Email and password are required")
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    return user


async def _revoke(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    cookie_name: str,
    redis,
) -> None:
    """Deny-list the token held in `cookie_name` (or the Bearer header) until it expires."""
    token = request.cookies.get(cookie_name) or (credentials.credentials if credentials else None)
    identity: Optional[Identity] = resolve_session(token)
    if identity and identity.jti:
        await RedisCache(redis).revoke_session(identity.jti, get_token_remaining_ttl(identity))


# ── Customer session ──────────────────────────────────────────

@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Create a customer account and sign the new user in."""
    user = await create_user(db, data, role=UserRole.CUSTOMER.value)
    token = _issue_session(user, response, settings.SESSION_COOKIE_NAME)
    return SessionResponse(user=UserResponse.model_validate(user), access_token=token)


@router.post("/login", response_model=SessionResponse)
async def login(
    data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    user = await _authenticate(db, data.email, data.password)
    token = _issue_session(user, response, settings.SESSION_COOKIE_NAME)
    return SessionResponse(user=UserResponse.model_validate(user), access_token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    redis=Depends(get_redis),
):
    """Revoke the session token and clear the cookie. Safe to call when signed out."""
    await _revoke(request, credentials, settings.SESSION_COOKIE_NAME, redis)
    clear_session_cookie(response, settings.SESSION_COOKIE_NAME)
    return MessageResponse(message="Logged out successfully")


@router.get("/user", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Returns the authenticated user's profile."""
    return UserResponse.model_validate(current_user)


# ── Admin session ─────────────────────────────────────────────

@router.post("/admin/login", response_model=SessionResponse)
async def admin_login(
    data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Sign in an administrator. Customer accounts are rejected."""
    user = await _authenticate(db, data.email, data.password)
    if user.role != UserRole.ADMIN.value:
        raise Unauthorized("Invalid credentials")
    token = _issue_session(user, response, settings.ADMIN_COOKIE_NAME)
    return SessionResponse(user=UserResponse.model_validate(user), access_token=token)


@router.post("/admin/logout", response_model=MessageResponse)
async def admin_logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    redis=Depends(get_redis),
):
    await _revoke(request, credentials, settings.ADMIN_COOKIE_NAME, redis)
    clear_session_cookie(response, settings.ADMIN_COOKIE_NAME)
    return MessageResponse(message="Logged out successfully")


@router.get("/admin/user", response_model=UserResponse)
async def get_admin_me(
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, identity.id)
    if user is None:
        raise Unauthorized("Not authenticated")
    return UserResponse.model_validate(user)
