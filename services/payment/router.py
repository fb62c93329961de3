"""
services/payment/router.py
Payment ledger endpoints. Payments are recorded against the caller's own
bookings and move the booking's payment state (see services.booking.service).
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking.service import list_payments, record_payment
from shared.middleware.auth import get_identity
from shared.schemas.schemas import PaymentCreateRequest, PaymentCreatedResponse, PaymentResponse
from shared.utils.security import Identity

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("", response_model=PaymentCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreateRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a deposit or final payment.
    - 400 when a field is missing or paymentType is not deposit / final
    - 404 when the booking does not exist or belongs to someone else
    """
    payment_id, message = await record_payment(
        db,
        identity,
        booking_id=data.booking_id,
        amount=data.amount,
        payment_type=data.payment_type,
        payment_method=data.payment_method,
    )
    return PaymentCreatedResponse(payment_id=payment_id, message=message)


@router.get("", response_model=list[PaymentResponse])
async def get_payments(
    booking_id: Optional[UUID] = Query(None, alias="bookingId"),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """The caller's payments, optionally for one booking, newest first."""
    return await list_payments(db, identity, booking_id)
