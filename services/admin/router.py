"""
services/admin/router.py
Admin-only dashboard: booking, user and revenue totals, the latest
bookings and the most-booked attractions.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking.service import enrich_bookings
from shared.middleware.auth import require_admin
from shared.models.models import Attraction, Booking, BookingStatus, BookingType, User
from shared.schemas.schemas import AdminDashboardResponse, TopAttraction
from shared.utils.security import Identity

router = APIRouter(prefix="/admin", tags=["Admin"])

RECENT_BOOKINGS_LIMIT = 5
TOP_ATTRACTIONS_LIMIT = 5


@router.get("/dashboard", response_model=AdminDashboardResponse)
async def get_dashboard(
    identity: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Platform-wide metrics dashboard."""
    total_bookings = await db.scalar(select(func.count(Booking.id)))
    total_users = await db.scalar(select(func.count(User.id)))
    total_revenue = await db.scalar(select(func.sum(Booking.total_price_usd)))
    pending_bookings = await db.scalar(
        select(func.count(Booking.id)).where(Booking.status == BookingStatus.PENDING.value)
    )

    recent = await db.execute(
        select(Booking, User)
        .outerjoin(User, Booking.user_id == User.id)
        .order_by(Booking.created_at.desc())
        .limit(RECENT_BOOKINGS_LIMIT)
    )
    recent_bookings = await enrich_bookings(db, [tuple(row) for row in recent.all()])

    booking_count = func.count(Booking.id).label("bookings")
    top = await db.execute(
        select(Attraction.id, Attraction.name, booking_count)
        .join(
            Booking,
            (Booking.booking_type == BookingType.ATTRACTION.value)
            & (Booking.item_id == cast(Attraction.id, String)),
        )
        .group_by(Attraction.id, Attraction.name)
        .order_by(booking_count.desc(), Attraction.name)
        .limit(TOP_ATTRACTIONS_LIMIT)
    )

    return AdminDashboardResponse(
        total_bookings=total_bookings or 0,
        total_users=total_users or 0,
        total_revenue=float(total_revenue or 0),
        pending_bookings=pending_bookings or 0,
        recent_bookings=recent_bookings,
        top_attractions=[
            TopAttraction(id=row.id, name=row.name, bookings=row.bookings) for row in top.all()
        ],
    )
