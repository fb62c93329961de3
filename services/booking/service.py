"""
services/booking/service.py
Booking lifecycle manager: booking CRUD with status clamping, and the
payment ledger that drives a booking's payment state.

Status model (not guarded, any write may set any value):
    status         pending | confirmed | cancelled
    payment_status unpaid | partially_paid (deposit only) | paid | refunded
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import unit_of_work
from shared.models.models import (
    Attraction,
    Booking,
    BookingType,
    Payment,
    PaymentStatus,
    PaymentType,
    Safari,
    User,
)
from shared.schemas.schemas import BookingResponse, BookingWriteRequest
from shared.utils.exceptions import Forbidden, NotFoundError, ValidationError
from shared.utils.security import Identity
from shared.utils.validation import clamp_booking_status, clamp_payment_status, is_blank

logger = logging.getLogger(__name__)

PAYMENT_MESSAGES = {
    PaymentType.DEPOSIT.value: "Deposit processed successfully",
    PaymentType.FINAL.value: "Final payment processed successfully",
}


# ── Helpers ───────────────────────────────────────────────────

def _resolve_owner(identity: Identity, requested: Optional[uuid.UUID]) -> uuid.UUID:
    """Customers act on their own records; admins may name any user."""
    if requested is None or requested == identity.id:
        return identity.id
    if not identity.is_admin:
        raise Forbidden("Cannot act on another user's bookings")
    return requested


def _apply_fields(booking: Booking, data: BookingWriteRequest) -> None:
    booking.booking_type = data.booking_type.strip()
    booking.item_id = data.item_id.strip()
    booking.travel_date = data.travel_date
    booking.adults = data.adults
    booking.children = data.children
    booking.accommodation_type = data.accommodation_type
    booking.special_requests = data.special_requests
    booking.total_price_usd = Decimal(str(data.total_price_usd))
    booking.total_price_kes = Decimal(str(data.total_price_kes))
    booking.deposit_amount = Decimal(str(data.deposit_amount))
    booking.deposit_paid = data.deposit_paid
    booking.status = clamp_booking_status(data.status)
    booking.payment_status = clamp_payment_status(data.payment_status)


def _require_target(data: BookingWriteRequest) -> None:
    if is_blank(data.booking_type) or is_blank(data.item_id):
        raise ValidationError("Booking type and item ID are required")


def _parse_ids(raw_ids: Iterable[str], parser) -> list:
    parsed = []
    for raw in raw_ids:
        try:
            parsed.append(parser(raw))
        except (TypeError, ValueError):
            continue
    return parsed


async def _item_names(db: AsyncSession, bookings: list[Booking]) -> dict[tuple[str, str], str]:
    """Resolve display names for the polymorphic item_id, one query per item type."""
    attraction_ids = {b.item_id for b in bookings if b.booking_type == BookingType.ATTRACTION.value}
    safari_ids = {b.item_id for b in bookings if b.booking_type == BookingType.SAFARI.value}
    names: dict[tuple[str, str], str] = {}

    ids = _parse_ids(attraction_ids, int)
    if ids:
        result = await db.execute(select(Attraction.id, Attraction.name).where(Attraction.id.in_(ids)))
        for item_id, name in result.all():
            names[(BookingType.ATTRACTION.value, str(item_id))] = name

    ids = _parse_ids(safari_ids, uuid.UUID)
    if ids:
        result = await db.execute(select(Safari.id, Safari.name).where(Safari.id.in_(ids)))
        for item_id, name in result.all():
            names[(BookingType.SAFARI.value, str(item_id))] = name

    return names


def _normalise_item_key(booking: Booking) -> tuple[str, str]:
    """Map stored item ids to the canonical text used as the name lookup key."""
    raw = booking.item_id
    try:
        if booking.booking_type == BookingType.ATTRACTION.value:
            raw = str(int(raw))
        elif booking.booking_type == BookingType.SAFARI.value:
            raw = str(uuid.UUID(raw))
    except (TypeError, ValueError):
        pass
    return booking.booking_type, raw


async def enrich_bookings(
    db: AsyncSession,
    rows: list[tuple[Booking, Optional[User]]],
) -> list[BookingResponse]:
    """Attach the item display name and the owner's contact fields to each booking."""
    names = await _item_names(db, [booking for booking, _ in rows])
    enriched = []
    for booking, owner in rows:
        response = BookingResponse.model_validate(booking)
        response.item_name = names.get(_normalise_item_key(booking))
        if owner is not None:
            response.first_name = owner.first_name
            response.last_name = owner.last_name
            response.email = owner.email
            response.phone_number = owner.phone_number
        enriched.append(response)
    return enriched


def _enriched_query():
    return (
        select(Booking, User)
        .outerjoin(User, Booking.user_id == User.id)
        .order_by(Booking.created_at.desc())
    )


# ── Bookings ──────────────────────────────────────────────────

async def create_booking(
    db: AsyncSession,
    identity: Identity,
    data: BookingWriteRequest,
) -> uuid.UUID:
    """
    Create a booking. booking_date is always stamped now. Unknown status /
    payment_status values are replaced by their defaults, never rejected.
    """
    _require_target(data)
    owner_id = _resolve_owner(identity, data.user_id)

    async with unit_of_work(db):
        if owner_id != identity.id and await db.get(User, owner_id) is None:
            raise NotFoundError("User not found")

        booking = Booking(
            id=uuid.uuid4(),
            user_id=owner_id,
            booking_date=datetime.now(timezone.utc),
        )
        _apply_fields(booking, data)
        db.add(booking)

    logger.info(
        f"Booking {booking.id} created for user {owner_id} "
        f"({booking.booking_type}:{booking.item_id}, status={booking.status})"
    )
    return booking.id


async def update_booking(
    db: AsyncSession,
    identity: Identity,
    booking_id: uuid.UUID,
    data: BookingWriteRequest,
) -> None:
    """Overwrite every field of a booking with the same clamping as create."""
    if not identity.is_admin:
        raise Forbidden("Only administrators can update bookings")
    _require_target(data)

    async with unit_of_work(db):
        result = await db.execute(
            select(Booking).where(Booking.id == booking_id).with_for_update()
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking not found")
        if data.user_id is not None:
            if await db.get(User, data.user_id) is None:
                raise NotFoundError("User not found")
            booking.user_id = data.user_id
        _apply_fields(booking, data)

    logger.info(f"Booking {booking_id} updated (status={booking.status}, payment={booking.payment_status})")


async def delete_booking(db: AsyncSession, identity: Identity, booking_id: uuid.UUID) -> None:
    """Delete a booking. A missing id affects zero rows and is not an error."""
    if not identity.is_admin:
        raise Forbidden("Only administrators can delete bookings")

    async with unit_of_work(db):
        await db.execute(delete(Payment).where(Payment.booking_id == booking_id))
        result = await db.execute(delete(Booking).where(Booking.id == booking_id))

    logger.info(f"Booking {booking_id} delete affected {result.rowcount} row(s)")


async def get_booking(db: AsyncSession, identity: Identity, booking_id: uuid.UUID) -> BookingResponse:
    result = await db.execute(_enriched_query().where(Booking.id == booking_id))
    row = result.first()
    if row is None:
        raise NotFoundError("Booking not found")
    booking, owner = row
    if booking.user_id != identity.id and not identity.is_admin:
        raise Forbidden("Not authorized to view this booking")
    return (await enrich_bookings(db, [(booking, owner)]))[0]


async def list_bookings(
    db: AsyncSession,
    identity: Identity,
    user_id: Optional[uuid.UUID] = None,
) -> list[BookingResponse]:
    """
    Customers see their own bookings. Admins see every booking, or one
    user's bookings when user_id is given. Newest first.
    """
    query = _enriched_query()
    if identity.is_admin:
        if user_id is not None:
            query = query.where(Booking.user_id == user_id)
    else:
        query = query.where(Booking.user_id == _resolve_owner(identity, user_id))

    result = await db.execute(query)
    return await enrich_bookings(db, [tuple(row) for row in result.all()])


# ── Payments ──────────────────────────────────────────────────

async def record_payment(
    db: AsyncSession,
    identity: Identity,
    booking_id: Optional[uuid.UUID],
    amount,
    payment_type: Optional[str],
    payment_method: Optional[str],
) -> tuple[uuid.UUID, str]:
    """
    Append a completed payment and move the booking's payment state:
    deposit -> deposit_paid and partially_paid, final -> paid.
    Both writes commit together or not at all.
    """
    if booking_id is None or not amount or is_blank(payment_type) or is_blank(payment_method):
        raise ValidationError("Booking ID, amount, payment type and payment method are required")
    if amount < 0:
        raise ValidationError("Amount must be positive")
    if payment_type not in PAYMENT_MESSAGES:
        raise ValidationError("Invalid payment type")

    async with unit_of_work(db):
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id, Booking.user_id == identity.id)
            .with_for_update()
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking not found")

        payment = Payment(
            id=uuid.uuid4(),
            booking_id=booking.id,
            user_id=identity.id,
            amount=Decimal(str(amount)),
            payment_type=payment_type,
            payment_method=payment_method.strip(),
            status="completed",
        )
        db.add(payment)

        if payment_type == PaymentType.DEPOSIT.value:
            booking.deposit_paid = True
            booking.payment_status = PaymentStatus.PARTIALLY_PAID.value
        else:
            booking.payment_status = PaymentStatus.PAID.value

    logger.info(
        f"Payment {payment.id} recorded: {payment_type} of {amount} "
        f"on booking {booking_id} via {payment.payment_method}"
    )
    return payment.id, PAYMENT_MESSAGES[payment_type]


async def list_payments(
    db: AsyncSession,
    identity: Identity,
    booking_id: Optional[uuid.UUID] = None,
) -> list[Payment]:
    query = select(Payment).where(Payment.user_id == identity.id)
    if booking_id is not None:
        query = query.where(Payment.booking_id == booking_id)
    result = await db.execute(query.order_by(Payment.created_at.desc()))
    return list(result.scalars())
