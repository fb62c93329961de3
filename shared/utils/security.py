"""
shared/utils/security.py
Session token creation/verification, password hashing, and role checks.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from config.settings import settings
from shared.utils.exceptions import Forbidden

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_TOKEN_TYPE = "session"


@dataclass(frozen=True)
class Identity:
    """Resolved caller. Passed explicitly into every manager call."""
    id: uuid.UUID
    email: str
    role: str
    jti: str = ""
    expires_at: int = 0

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ── Session tokens ────────────────────────────────────────────

def create_session_token(user_id, email: str, role: str) -> tuple[str, str]:
    """
    Create a signed session token valid for SESSION_TOKEN_EXPIRE_DAYS.
    Returns (token, jti), jti is used for deny-listing on logout.
    """
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    expire = now + timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS)

    payload = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "jti": jti,
        "iat": now,
        "exp": expire,
        "type": SESSION_TOKEN_TYPE,
    }

    token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, jti


def verify_session_token(token: str) -> dict:
    """
    Decode and verify a session token.
    Raises JWTError on invalid/expired token.
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
    )
    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise JWTError("Invalid token type")
    return payload


def resolve_session(token: Optional[str]) -> Optional[Identity]:
    """Return the Identity a token carries, or None for missing/expired/tampered tokens."""
    if not token:
        return None
    try:
        payload = verify_session_token(token)
        return Identity(
            id=uuid.UUID(payload["sub"]),
            email=payload.get("email", ""),
            role=payload["role"],
            jti=payload.get("jti", ""),
            expires_at=int(payload.get("exp", 0)),
        )
    except (JWTError, KeyError, ValueError, TypeError):
        return None


def get_token_remaining_ttl(identity: Identity) -> int:
    """Returns seconds until token expiry. Used for the deny-list TTL."""
    remaining = identity.expires_at - datetime.now(timezone.utc).timestamp()
    return max(0, int(remaining))


def require_role(identity: Optional[Identity], role: str) -> Identity:
    if identity is None or identity.role != role:
        raise Forbidden(f"Required role: {role}")
    return identity


# ── Passwords ─────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format
        return False
