"""
services/user/router.py
User account administration. Users may read and edit their own profile;
everything else is admin only.
"""

from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.user import service
from shared.middleware.auth import get_identity, require_admin
from shared.models.models import User, UserRole
from shared.schemas.schemas import (
    SuccessResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)
from shared.utils.exceptions import NotFoundError
from shared.utils.security import Identity, require_role
from shared.utils.validation import clamp_enum

router = APIRouter(prefix="/users", tags=["Users"])

USER_ROLES = tuple(role.value for role in UserRole)


def _require_self_or_admin(identity: Identity, user_id: UUID) -> None:
    if identity.id != user_id:
        require_role(identity, UserRole.ADMIN.value)


@router.get("", response_model=Union[UserResponse, list[UserResponse]])
async def get_users(
    id: Optional[UUID] = Query(None),
    email: Optional[str] = Query(None),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    - ?id=    one user (the user themself or an admin)
    - ?email= look up by email (admin)
    - no args list every user (admin)
    """
    if id is not None:
        _require_self_or_admin(identity, id)
        user = await db.get(User, id)
        if user is None:
            raise NotFoundError("User not found")
        return UserResponse.model_validate(user)

    require_role(identity, UserRole.ADMIN.value)
    if email:
        user = await service.get_user_by_email(db, email)
        if user is None:
            raise NotFoundError("User not found")
        return UserResponse.model_validate(user)

    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return [UserResponse.model_validate(u) for u in result.scalars()]


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreateRequest,
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admin: create an account. Unknown roles fall back to customer."""
    role = clamp_enum(data.role, USER_ROLES, UserRole.CUSTOMER.value)
    user = await service.create_user(db, data, role=role)
    return SuccessResponse(id=str(user.id))


@router.put("", response_model=UserResponse)
async def update_user(
    data: UserUpdateRequest,
    id: UUID = Query(...),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """Update name, email or phone. Role is not editable here."""
    _require_self_or_admin(identity, id)
    user = await service.update_user(db, id, data)
    return UserResponse.model_validate(user)


@router.delete("", response_model=SuccessResponse)
async def delete_user(
    id: UUID = Query(...),
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await service.delete_user(db, id)
    return SuccessResponse()
