"""
shared/middleware/auth.py
FastAPI dependency functions for authentication and authorization.
The session token is read from the customer cookie, the admin cookie or a
Bearer header, checked against the Redis deny-list and resolved to an Identity.
Admin routes only accept the admin cookie or Bearer; messaging prefers the
admin cookie when both sessions are present.
"""

from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from config.settings import settings
from shared.models.models import User, UserRole
from shared.utils.exceptions import Unauthorized
from shared.utils.security import Identity, require_role, resolve_session

security = HTTPBearer(auto_error=False)


CUSTOMER_FIRST = (settings.SESSION_COOKIE_NAME, settings.ADMIN_COOKIE_NAME)
ADMIN_FIRST = (settings.ADMIN_COOKIE_NAME, settings.SESSION_COOKIE_NAME)
ADMIN_ONLY = (settings.ADMIN_COOKIE_NAME,)


def _session_tokens(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    cookie_order: tuple[str, ...] = CUSTOMER_FIRST,
) -> list[str]:
    """Candidate tokens: the named cookies in order, then the Bearer header."""
    tokens = [request.cookies.get(name) for name in cookie_order]
    tokens.append(credentials.credentials if credentials else None)
    return [t for t in tokens if t]


async def _resolve_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession,
    redis,
    cookie_order: tuple[str, ...] = CUSTOMER_FIRST,
) -> Optional[Identity]:
    cache = RedisCache(redis)
    for token in _session_tokens(request, credentials, cookie_order):
        identity = resolve_session(token)
        if identity is None:
            continue
        if identity.jti and await cache.is_session_revoked(identity.jti):
            continue
        # Sessions outlive deleted accounts otherwise
        result = await db.execute(select(User.id).where(User.id == identity.id))
        if result.scalar_one_or_none() is None:
            continue
        return identity
    return None


async def get_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> Identity:
    identity = await _resolve_request(request, credentials, db, redis)
    if identity is None:
        raise Unauthorized("Not authenticated")
    return identity


async def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> Optional[Identity]:
    """Returns the caller if authenticated, None otherwise. For public endpoints."""
    return await _resolve_request(request, credentials, db, redis)


async def get_mailbox_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> Identity:
    """
    Like get_identity, but a valid admin session wins over a customer one, so an
    administrator also signed in on the customer site answers from the support inbox.
    """
    identity = await _resolve_request(request, credentials, db, redis, ADMIN_FIRST)
    if identity is None:
        raise Unauthorized("Not authenticated")
    return identity


async def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> Identity:
    """Admin routes read the admin cookie (or a Bearer token), never the customer cookie."""
    identity = await _resolve_request(request, credentials, db, redis, ADMIN_ONLY)
    if identity is None:
        raise Unauthorized("Not authenticated")
    return require_role(identity, UserRole.ADMIN.value)


async def get_current_user(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the full User row for the caller."""
    user = await db.get(User, identity.id)
    if user is None:
        raise Unauthorized("User not found")
    return user


# ── Cookies ───────────────────────────────────────────────────

def set_session_cookie(response: Response, name: str, token: str) -> None:
    response.set_cookie(
        key=name,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.session_max_age,
        path="/",
    )


def clear_session_cookie(response: Response, name: str) -> None:
    response.delete_cookie(key=name, path="/")
