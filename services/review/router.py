"""
services/review/router.py
Attraction reviews.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.review import service
from shared.middleware.auth import get_identity
from shared.schemas.schemas import ReviewCreateRequest, ReviewResponse, SuccessResponse
from shared.utils.security import Identity

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def submit_review(
    data: ReviewCreateRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Submit or replace the caller's review of an attraction.
    A second review by the same user updates the first in place.
    """
    await service.submit_review(db, identity, data.attraction_id, data.rating, data.comment)
    return SuccessResponse()


@router.get("", response_model=list[ReviewResponse])
async def get_reviews(
    attraction_id: Optional[int] = Query(None, alias="attractionId"),
    db: AsyncSession = Depends(get_db),
):
    """Public: reviews for an attraction, newest first."""
    return await service.list_reviews(db, attraction_id)
