"""
tests/test_admin.py
Tests for the admin dashboard.
"""

import uuid
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Attraction, Booking, User
from tests.conftest import auth_headers


async def _book(db: AsyncSession, user: User, item_id: str, booking_type="attraction", **fields) -> Booking:
    booking = Booking(
        id=uuid.uuid4(),
        user_id=user.id,
        booking_type=booking_type,
        item_id=item_id,
        booking_date=datetime.now(timezone.utc),
        travel_date="2026-11-01",
        total_price_usd=fields.pop("total_price_usd", 100),
        total_price_kes=13000,
        **fields,
    )
    db.add(booking)
    await db.commit()
    return booking


@pytest.mark.asyncio
async def test_dashboard_requires_admin(client: AsyncClient, user: User):
    assert (await client.get("/admin/dashboard")).status_code == 401
    assert (await client.get("/admin/dashboard", headers=auth_headers(user))).status_code == 403


@pytest.mark.asyncio
async def test_dashboard_empty(client: AsyncClient, admin_user: User):
    response = await client.get("/admin/dashboard", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total_bookings"] == 0
    assert data["total_users"] == 1
    assert data["total_revenue"] == 0
    assert data["recent_bookings"] == []
    assert data["top_attractions"] == []


@pytest.mark.asyncio
async def test_dashboard_totals_and_rankings(
    client: AsyncClient,
    admin_user: User,
    user: User,
    other_user: User,
    attraction: Attraction,
    db: AsyncSession,
):
    nakuru = Attraction(name="Lake Nakuru", location="Nakuru", rating=0.0, reviews=0)
    db.add(nakuru)
    await db.commit()

    await _book(db, user, str(attraction.id), total_price_usd=200, status="pending")
    await _book(db, other_user, str(attraction.id), total_price_usd=150)
    await _book(db, other_user, str(nakuru.id), total_price_usd=50, status="pending")
    await _book(db, user, str(uuid.uuid4()), booking_type="safari", total_price_usd=1000)

    response = await client.get("/admin/dashboard", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()

    assert data["total_bookings"] == 4
    assert data["total_users"] == 3
    assert data["total_revenue"] == pytest.approx(1400)
    assert data["pending_bookings"] == 2

    assert len(data["recent_bookings"]) == 4
    assert data["recent_bookings"][0]["booking_type"] == "safari"
    assert data["recent_bookings"][-1]["item_name"] == attraction.name
    assert data["recent_bookings"][-1]["email"] == user.email

    assert data["top_attractions"] == [
        {"id": attraction.id, "name": attraction.name, "bookings": 2},
        {"id": nakuru.id, "name": "Lake Nakuru", "bookings": 1},
    ]


@pytest.mark.asyncio
async def test_recent_bookings_capped_at_five(
    client: AsyncClient,
    admin_user: User,
    user: User,
    attraction: Attraction,
    db: AsyncSession,
):
    for _ in range(7):
        await _book(db, user, str(attraction.id))

    data = (await client.get("/admin/dashboard", headers=auth_headers(admin_user))).json()
    assert data["total_bookings"] == 7
    assert len(data["recent_bookings"]) == 5
