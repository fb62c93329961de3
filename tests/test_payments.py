"""
tests/test_payments.py
Tests for recording deposit / final payments and their effect on the booking.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Booking, Payment, User
from tests.conftest import auth_headers


async def _refreshed(db: AsyncSession, booking: Booking) -> Booking:
    await db.refresh(booking)
    return booking


def _payment(booking: Booking, payment_type: str, amount=100) -> dict:
    return {
        "bookingId": str(booking.id),
        "amount": amount,
        "paymentType": payment_type,
        "paymentMethod": "mpesa",
    }


@pytest.mark.asyncio
async def test_deposit_marks_booking_partially_paid(
    client: AsyncClient,
    user: User,
    booking: Booking,
    db: AsyncSession,
):
    response = await client.post("/payments", headers=auth_headers(user), json=_payment(booking, "deposit"))
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Deposit processed successfully"
    assert uuid.UUID(data["paymentId"])

    booking = await _refreshed(db, booking)
    assert booking.deposit_paid is True
    assert booking.payment_status == "partially_paid"

    payment = (await db.execute(select(Payment))).scalar_one()
    assert payment.status == "completed"
    assert payment.payment_type == "deposit"
    assert payment.user_id == user.id


@pytest.mark.asyncio
async def test_final_payment_marks_booking_paid(
    client: AsyncClient,
    user: User,
    booking: Booking,
    db: AsyncSession,
):
    response = await client.post("/payments", headers=auth_headers(user), json=_payment(booking, "final", 140))
    assert response.status_code == 201
    assert response.json()["message"] == "Final payment processed successfully"

    booking = await _refreshed(db, booking)
    assert booking.payment_status == "paid"


@pytest.mark.asyncio
async def test_payment_applies_regardless_of_prior_state(
    client: AsyncClient,
    user: User,
    booking: Booking,
    db: AsyncSession,
):
    """A deposit after the final payment still moves the booking to partially_paid."""
    headers = auth_headers(user)
    await client.post("/payments", headers=headers, json=_payment(booking, "final"))
    await client.post("/payments", headers=headers, json=_payment(booking, "deposit"))

    booking = await _refreshed(db, booking)
    assert booking.payment_status == "partially_paid"
    assert await db.scalar(select(func.count(Payment.id))) == 2


@pytest.mark.asyncio
async def test_payment_on_someone_elses_booking_is_404(
    client: AsyncClient,
    other_user: User,
    booking: Booking,
    db: AsyncSession,
):
    response = await client.post(
        "/payments", headers=auth_headers(other_user), json=_payment(booking, "deposit")
    )
    assert response.status_code == 404
    assert await db.scalar(select(func.count(Payment.id))) == 0

    booking = await _refreshed(db, booking)
    assert booking.payment_status == "unpaid"


@pytest.mark.asyncio
async def test_payment_on_unknown_booking_is_404(client: AsyncClient, user: User):
    payload = {"bookingId": str(uuid.uuid4()), "amount": 10, "paymentType": "deposit", "paymentMethod": "card"}
    response = await client.post("/payments", headers=auth_headers(user), json=payload)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_payment_type_rejected(
    client: AsyncClient,
    user: User,
    booking: Booking,
    db: AsyncSession,
):
    response = await client.post("/payments", headers=auth_headers(user), json=_payment(booking, "refund"))
    assert response.status_code == 400
    assert await db.scalar(select(func.count(Payment.id))) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5])
async def test_non_positive_amount_rejected(
    client: AsyncClient,
    user: User,
    booking: Booking,
    db: AsyncSession,
    amount,
):
    response = await client.post("/payments", headers=auth_headers(user), json=_payment(booking, "deposit", amount))
    assert response.status_code == 400
    assert await db.scalar(select(func.count(Payment.id))) == 0


@pytest.mark.asyncio
async def test_missing_fields_rejected(client: AsyncClient, user: User, booking: Booking):
    payload = _payment(booking, "deposit")
    payload.pop("paymentMethod")
    response = await client.post("/payments", headers=auth_headers(user), json=payload)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_payments_scoped_to_caller(
    client: AsyncClient,
    user: User,
    other_user: User,
    booking: Booking,
):
    headers = auth_headers(user)
    await client.post("/payments", headers=headers, json=_payment(booking, "deposit"))
    await client.post("/payments", headers=headers, json=_payment(booking, "final"))

    response = await client.get("/payments", headers=headers, params={"bookingId": str(booking.id)})
    assert response.status_code == 200
    payments = response.json()
    assert [p["payment_type"] for p in payments] == ["final", "deposit"]

    response = await client.get("/payments", headers=auth_headers(other_user))
    assert response.json() == []
