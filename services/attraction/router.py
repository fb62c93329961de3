"""
services/attraction/router.py
Attraction catalog. Public reads, admin writes. rating / reviews are
maintained by the review manager and are never written here.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db, unit_of_work
from shared.middleware.auth import require_admin
from shared.models.models import Attraction
from shared.schemas.schemas import AttractionResponse, AttractionWriteRequest, SuccessResponse
from shared.utils.exceptions import NotFoundError
from shared.utils.security import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attractions", tags=["Attractions"])

PLACEHOLDER_IMAGE = "/placeholder.svg"
MAX_IMAGE_LENGTH = 255
SIMILAR_LIMIT = 3


def _image_or_placeholder(image: Optional[str]) -> str:
    """Inline data URLs and other oversized values do not fit the image column."""
    if not image or len(image) > MAX_IMAGE_LENGTH:
        return PLACEHOLDER_IMAGE
    return image


def _apply(attraction: Attraction, data: AttractionWriteRequest) -> None:
    for field, value in data.model_dump(exclude={"image"}).items():
        setattr(attraction, field, value)
    attraction.image = _image_or_placeholder(data.image)


@router.get("", response_model=Union[AttractionResponse, list[AttractionResponse]])
async def get_attractions(
    id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """All attractions ordered by name, or one with ?id=."""
    if id is not None:
        attraction = await db.get(Attraction, id)
        if attraction is None:
            raise NotFoundError("Attraction not found")
        return AttractionResponse.model_validate(attraction)

    result = await db.execute(select(Attraction).order_by(Attraction.name))
    return [AttractionResponse.model_validate(a) for a in result.scalars()]


@router.get("/similar", response_model=list[AttractionResponse])
async def get_similar_attractions(
    id: int = Query(...),
    location: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Up to three other attractions sharing the location or the category."""
    current = await db.get(Attraction, id)
    if current is None:
        raise NotFoundError("Attraction not found")

    result = await db.execute(
        select(Attraction)
        .where(
            Attraction.id != id,
            or_(
                Attraction.location == (location or current.location),
                Attraction.category == current.category,
            ),
        )
        .order_by(Attraction.rating.desc(), Attraction.name)
        .limit(SIMILAR_LIMIT)
    )
    return [AttractionResponse.model_validate(a) for a in result.scalars()]


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def create_attraction(
    data: AttractionWriteRequest,
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with unit_of_work(db):
        attraction = Attraction(rating=0.0, reviews=0)
        _apply(attraction, data)
        db.add(attraction)
        await db.flush()

    logger.info(f"Attraction {attraction.id} created by {identity.id}")
    return SuccessResponse(id=attraction.id)


@router.put("", response_model=SuccessResponse)
async def update_attraction(
    data: AttractionWriteRequest,
    id: int = Query(...),
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with unit_of_work(db):
        attraction = await db.get(Attraction, id)
        if attraction is None:
            raise NotFoundError("Attraction not found")
        _apply(attraction, data)

    return SuccessResponse(id=id)


@router.delete("", response_model=SuccessResponse)
async def delete_attraction(
    id: int = Query(...),
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    async with unit_of_work(db):
        await db.execute(delete(Attraction).where(Attraction.id == id))

    logger.info(f"Attraction {id} deleted by {identity.id}")
    return SuccessResponse()
