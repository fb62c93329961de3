"""
services/review/service.py
Review aggregation manager. One review per (user, attraction); the
attraction's rating / reviews aggregate is recomputed in the same
transaction as every review write.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import unit_of_work
from shared.models.models import Attraction, Review, User
from shared.schemas.schemas import ReviewResponse
from shared.utils.exceptions import NotFoundError, ValidationError
from shared.utils.security import Identity

logger = logging.getLogger(__name__)


def rating_aggregate_statement(attraction_id):
    """UPDATE attractions SET rating = AVG(...), reviews = COUNT(*) for one attraction."""
    avg_rating = (
        select(func.coalesce(func.avg(Review.rating), 0))
        .where(Review.attraction_id == attraction_id)
        .scalar_subquery()
    )
    review_count = (
        select(func.count(Review.id))
        .where(Review.attraction_id == attraction_id)
        .scalar_subquery()
    )
    return (
        update(Attraction)
        .where(Attraction.id == attraction_id)
        .values(rating=avg_rating, reviews=review_count)
        .execution_options(synchronize_session=False)
    )


async def recompute_attraction_rating(db: AsyncSession, attraction_id: int) -> None:
    await db.execute(rating_aggregate_statement(attraction_id))


async def submit_review(
    db: AsyncSession,
    identity: Identity,
    attraction_id: Optional[int],
    rating: Optional[float],
    comment: Optional[str] = None,
) -> bool:
    """
    Insert or update the caller's review of an attraction, then recompute
    the attraction aggregate. Returns True when a new review was created.
    """
    if not attraction_id or not rating:
        raise ValidationError("Attraction ID and rating are required")

    async with unit_of_work(db):
        # Serialises reviewers of the same attraction
        locked = await db.execute(
            select(Attraction.id).where(Attraction.id == attraction_id).with_for_update()
        )
        if locked.scalar_one_or_none() is None:
            raise NotFoundError("Attraction not found")

        result = await db.execute(
            select(Review).where(
                Review.user_id == identity.id,
                Review.attraction_id == attraction_id,
            )
        )
        review = result.scalars().first()
        created = review is None

        if created:
            db.add(Review(
                id=uuid.uuid4(),
                user_id=identity.id,
                attraction_id=attraction_id,
                rating=rating,
                comment=comment or "",
            ))
        else:
            review.rating = rating
            review.comment = comment or ""
            review.updated_at = datetime.now(timezone.utc)
        await db.flush()

        await recompute_attraction_rating(db, attraction_id)

    logger.info(
        f"Review {'created' if created else 'updated'} by {identity.id} "
        f"for attraction {attraction_id}; aggregate recomputed"
    )
    return created


async def list_reviews(db: AsyncSession, attraction_id: Optional[int]) -> list[ReviewResponse]:
    if not attraction_id:
        raise ValidationError("Attraction ID is required")

    result = await db.execute(
        select(Review, User.first_name, User.last_name)
        .outerjoin(User, Review.user_id == User.id)
        .where(Review.attraction_id == attraction_id)
        .order_by(Review.created_at.desc())
    )
    reviews = []
    for review, first_name, last_name in result.all():
        response = ReviewResponse.model_validate(review)
        response.first_name = first_name
        response.last_name = last_name
        reviews.append(response)
    return reviews
