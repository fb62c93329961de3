"""
services/booking/router.py
Booking endpoints. Customers create and read their own bookings;
administrators read every booking and update or delete any of them.
"""

from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking import service
from shared.middleware.auth import get_identity
from shared.schemas.schemas import (
    BookingCreatedResponse,
    BookingResponse,
    BookingWriteRequest,
    SuccessResponse,
)
from shared.utils.security import Identity

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingWriteRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a booking for the caller (admins may pass userId).
    Unrecognised status / paymentStatus values fall back to confirmed / unpaid.
    """
    booking_id = await service.create_booking(db, identity, data)
    return BookingCreatedResponse(id=booking_id)


@router.get("", response_model=Union[BookingResponse, list[BookingResponse]])
async def get_bookings(
    id: Optional[UUID] = Query(None),
    user_id: Optional[UUID] = Query(None, alias="userId"),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """Single booking with ?id=, otherwise a list scoped to the caller (or ?userId= for admins)."""
    if id is not None:
        return await service.get_booking(db, identity, id)
    return await service.list_bookings(db, identity, user_id)


@router.get("/user", response_model=list[BookingResponse])
async def get_my_bookings(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own bookings, newest first."""
    return await service.list_bookings(db, identity, identity.id)


@router.put("", response_model=SuccessResponse)
async def update_booking(
    data: BookingWriteRequest,
    id: UUID = Query(...),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """Admin: overwrite the full booking record."""
    await service.update_booking(db, identity, id, data)
    return SuccessResponse()


@router.delete("", response_model=SuccessResponse)
async def delete_booking(
    id: UUID = Query(...),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """Admin: delete a booking. Succeeds whether or not the id exists."""
    await service.delete_booking(db, identity, id)
    return SuccessResponse()
