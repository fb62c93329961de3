"""
services/safari/router.py
Safari packages. Public reads, admin writes.
"""

from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db, unit_of_work
from shared.middleware.auth import require_admin
from shared.models.models import Safari
from shared.schemas.schemas import SafariResponse, SafariWriteRequest, SuccessResponse
from shared.utils.exceptions import NotFoundError
from shared.utils.security import Identity

router = APIRouter(prefix="/safaris", tags=["Safaris"])


@router.get("", response_model=Union[SafariResponse, list[SafariResponse]])
async def get_safaris(
    id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    if id is not None:
        safari = await db.get(Safari, id)
        if safari is None:
            raise NotFoundError("Safari not found")
        return SafariResponse.model_validate(safari)

    result = await db.execute(select(Safari).order_by(Safari.name))
    return [SafariResponse.model_validate(s) for s in result.scalars()]


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_safari(
    data: SafariWriteRequest,
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with unit_of_work(db):
        safari = Safari(**data.model_dump())
        safari.image_url = data.image_url or "/placeholder.svg"
        db.add(safari)
        await db.flush()

    return SuccessResponse(id=str(safari.id))


@router.put("", response_model=SuccessResponse)
async def update_safari(
    data: SafariWriteRequest,
    id: UUID = Query(...),
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with unit_of_work(db):
        safari = await db.get(Safari, id)
        if safari is None:
            raise NotFoundError("Safari not found")
        for field, value in data.model_dump().items():
            setattr(safari, field, value)
        safari.image_url = data.image_url or "/placeholder.svg"

    return SuccessResponse(id=str(id))


@router.delete("", response_model=SuccessResponse)
async def delete_safari(
    id: UUID = Query(...),
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with unit_of_work(db):
        await db.execute(delete(Safari).where(Safari.id == id))
    return SuccessResponse()
