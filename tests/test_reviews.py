"""
tests/test_reviews.py
Tests for review upserts and the attraction rating aggregate.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Attraction, Review, User
from tests.conftest import auth_headers


async def _aggregate(db: AsyncSession, attraction: Attraction) -> tuple[float, int]:
    await db.refresh(attraction)
    return attraction.rating, attraction.reviews


@pytest.mark.asyncio
async def test_submit_review_updates_aggregate(
    client: AsyncClient,
    user: User,
    attraction: Attraction,
    db: AsyncSession,
):
    response = await client.post(
        "/reviews",
        headers=auth_headers(user),
        json={"attractionId": attraction.id, "rating": 4, "comment": "Saw the big five"},
    )
    assert response.status_code == 201
    assert response.json()["success"] is True
    assert await _aggregate(db, attraction) == (4.0, 1)


@pytest.mark.asyncio
async def test_second_review_by_same_user_replaces_first(
    client: AsyncClient,
    user: User,
    attraction: Attraction,
    db: AsyncSession,
):
    headers = auth_headers(user)
    await client.post("/reviews", headers=headers, json={"attractionId": attraction.id, "rating": 2})
    await client.post(
        "/reviews", headers=headers, json={"attractionId": attraction.id, "rating": 5, "comment": "Better"}
    )

    assert await db.scalar(select(func.count(Review.id))) == 1
    assert await _aggregate(db, attraction) == (5.0, 1)


@pytest.mark.asyncio
async def test_rating_is_mean_across_users(
    client: AsyncClient,
    user: User,
    other_user: User,
    attraction: Attraction,
    db: AsyncSession,
):
    await client.post("/reviews", headers=auth_headers(user), json={"attractionId": attraction.id, "rating": 5})
    await client.post(
        "/reviews", headers=auth_headers(other_user), json={"attractionId": attraction.id, "rating": 2}
    )

    rating, count = await _aggregate(db, attraction)
    assert count == 2
    assert rating == pytest.approx(3.5)


@pytest.mark.asyncio
async def test_out_of_range_rating_is_stored(
    client: AsyncClient,
    user: User,
    attraction: Attraction,
    db: AsyncSession,
):
    """Ratings are not range-checked; a 9 lands in the aggregate as-is."""
    response = await client.post(
        "/reviews", headers=auth_headers(user), json={"attractionId": attraction.id, "rating": 9}
    )
    assert response.status_code == 201
    assert await _aggregate(db, attraction) == (9.0, 1)


@pytest.mark.asyncio
async def test_review_unknown_attraction_is_404(client: AsyncClient, user: User, db: AsyncSession):
    response = await client.post("/reviews", headers=auth_headers(user), json={"attractionId": 999, "rating": 4})
    assert response.status_code == 404
    assert await db.scalar(select(func.count(Review.id))) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("with_attraction, rating", [(False, 4), (True, 0), (True, None)])
async def test_review_requires_attraction_and_rating(
    client: AsyncClient,
    user: User,
    attraction: Attraction,
    with_attraction: bool,
    rating,
):
    payload = {"rating": rating}
    if with_attraction:
        payload["attractionId"] = attraction.id
    response = await client.post("/reviews", headers=auth_headers(user), json=payload)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_review_requires_auth(client: AsyncClient, attraction: Attraction):
    response = await client.post("/reviews", json={"attractionId": attraction.id, "rating": 4})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_reviews_newest_first_with_names(
    client: AsyncClient,
    user: User,
    other_user: User,
    attraction: Attraction,
):
    await client.post("/reviews", headers=auth_headers(user), json={"attractionId": attraction.id, "rating": 5})
    await client.post(
        "/reviews", headers=auth_headers(other_user), json={"attractionId": attraction.id, "rating": 3}
    )

    response = await client.get("/reviews", params={"attractionId": attraction.id})
    assert response.status_code == 200
    reviews = response.json()
    assert [r["first_name"] for r in reviews] == ["Otieno", "Wanjiku"]
    assert reviews[0]["comment"] == ""


@pytest.mark.asyncio
async def test_list_reviews_requires_attraction_id(client: AsyncClient):
    response = await client.get("/reviews")
    assert response.status_code == 400
