"""
services/user/service.py
Account creation and maintenance shared by registration and the admin user pages.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import unit_of_work
from shared.models.models import User, UserRole
from shared.schemas.schemas import RegisterRequest, UserUpdateRequest
from shared.utils.exceptions import ConflictError, NotFoundError, ValidationError
from shared.utils.security import hash_password
from shared.utils.validation import is_blank

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    data: RegisterRequest,
    role: str = UserRole.CUSTOMER.value,
) -> User:
    """Create an account with a bcrypt password hash. 409 on a duplicate email."""
    if any(is_blank(v) for v in (data.first_name, data.last_name, data.email, data.password)):
        raise ValidationError("All fields are required")

    async with unit_of_work(db):
        if await get_user_by_email(db, data.email) is not None:
            raise ConflictError("Email already in use")

        user = User(
            id=uuid.uuid4(),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            email=data.email.strip().lower(),
            phone_number=data.phone_number or "",
            password_hash=hash_password(data.password),
            role=role,
        )
        db.add(user)

    logger.info(f"User registered: {user.email} ({role})")
    return user


async def update_user(db: AsyncSession, user_id: uuid.UUID, data: UserUpdateRequest) -> User:
    """Update name, email and phone. Only fields present in the request change."""
    updates = data.model_dump(exclude_none=True)

    async with unit_of_work(db):
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        if "email" in updates:
            updates["email"] = updates["email"].strip().lower()
            existing = await get_user_by_email(db, updates["email"])
            if existing is not None and existing.id != user.id:
                raise ConflictError("Email already in use")

        for field, value in updates.items():
            setattr(user, field, value)

    return user


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Delete a user row. Owned bookings, reviews and messages are left as they are."""
    async with unit_of_work(db):
        exists = await db.scalar(select(User.id).where(User.id == user_id))
        if exists is None:
            raise NotFoundError("User not found")
        await db.execute(delete(User).where(User.id == user_id))

    logger.info(f"User {user_id} deleted")
