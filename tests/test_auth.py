"""
tests/test_auth.py
Tests for registration, login, session resolution from cookies / Bearer,
logout revocation and the separate admin session.
"""

import time
import uuid

import pytest
from httpx import AsyncClient
from jose import jwt

from config.settings import settings
from shared.models.models import User
from shared.utils.security import (
    create_session_token,
    hash_password,
    resolve_session,
    verify_password,
)
from tests.conftest import TEST_PASSWORD, auth_headers


def _cookie(name: str, token: str) -> dict:
    return {"Cookie": f"{name}={token}"}


# ── Passwords / tokens ─────────────────────────────────────────────────────────

def test_password_hash_roundtrip():
    hashed = hash_password("safari-2026")
    assert hashed != "safari-2026"
    assert verify_password("safari-2026", hashed)
    assert not verify_password("wrong", hashed)


@pytest.mark.parametrize("stored", ["", "plain-text-legacy", None])
def test_verify_password_rejects_unusable_hashes(stored):
    assert verify_password("anything", stored) is False


def test_session_token_resolves_to_identity():
    user_id = uuid.uuid4()
    token, jti = create_session_token(user_id=user_id, email="x@example.com", role="customer")

    identity = resolve_session(token)
    assert identity.id == user_id
    assert identity.role == "customer"
    assert identity.jti == jti
    assert not identity.is_admin
    # Seven-day lifetime
    assert identity.expires_at - time.time() == pytest.approx(7 * 24 * 3600, abs=60)


def test_resolve_session_rejects_bad_tokens():
    assert resolve_session(None) is None
    assert resolve_session("not-a-jwt") is None

    forged = jwt.encode(
        {"sub": str(uuid.uuid4()), "email": "x@example.com", "role": "admin", "type": "session"},
        "some-other-secret",
        algorithm="HS256",
    )
    assert resolve_session(forged) is None

    expired = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "customer", "type": "session", "exp": int(time.time()) - 10},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
    assert resolve_session(expired) is None


# ── Customer session ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_register_creates_customer_and_session(client: AsyncClient):
    response = await client.post(
        "/auth/register",
        json={
            "first_name": "Achieng",
            "last_name": "Odhiambo",
            "email": "Achieng@Example.com",
            "password": "lake-victoria",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["user"]["email"] == "achieng@example.com"
    assert data["user"]["role"] == "customer"
    assert "password_hash" not in data["user"]
    assert settings.SESSION_COOKIE_NAME in response.headers.get("set-cookie", "")

    me = await client.get("/auth/user", headers=_cookie(settings.SESSION_COOKIE_NAME, data["access_token"]))
    assert me.status_code == 200
    assert me.json()["first_name"] == "Achieng"


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts(client: AsyncClient, user: User):
    response = await client.post(
        "/auth/register",
        json={"first_name": "A", "last_name": "B", "email": user.email.upper(), "password": "pw-123456"},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_requires_all_fields(client: AsyncClient):
    response = await client.post(
        "/auth/register", json={"first_name": "A", "email": "a@example.com", "password": "pw"}
    )
    assert response.status_code == 400
    assert "request_id" in response.json()


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, user: User):
    response = await client.post("/auth/login", json={"email": user.email, "password": TEST_PASSWORD})
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == str(user.id)
    assert data["access_token"]


@pytest.mark.asyncio
@pytest.mark.parametrize("email, password", [
    ("wanjiku@example.com", "wrong-password"),
    ("nobody@example.com", TEST_PASSWORD),
])
async def test_login_rejects_bad_credentials(client: AsyncClient, user: User, email, password):
    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_unauthenticated_request_rejected(client: AsyncClient):
    response = await client.get("/auth/user")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_token(client: AsyncClient, user: User):
    headers = auth_headers(user)
    assert (await client.get("/auth/user", headers=headers)).status_code == 200

    response = await client.post("/auth/logout", headers=headers)
    assert response.status_code == 200

    assert (await client.get("/auth/user", headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_logout_when_signed_out_is_ok(client: AsyncClient):
    response = await client.post("/auth/logout")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_session_for_deleted_user_is_rejected(client: AsyncClient):
    ghost = User(id=uuid.uuid4(), first_name="G", last_name="H", email="ghost@example.com", role="customer")
    response = await client.get("/auth/user", headers=auth_headers(ghost))
    assert response.status_code == 401


# ── Admin session ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_admin_login_sets_admin_cookie(client: AsyncClient, admin_user: User):
    response = await client.post("/auth/admin/login", json={"email": admin_user.email, "password": TEST_PASSWORD})
    assert response.status_code == 200
    assert settings.ADMIN_COOKIE_NAME in response.headers.get("set-cookie", "")

    token = response.json()["access_token"]
    me = await client.get("/auth/admin/user", headers=_cookie(settings.ADMIN_COOKIE_NAME, token))
    assert me.status_code == 200
    assert me.json()["role"] == "admin"


@pytest.mark.asyncio
async def test_admin_login_rejects_customer(client: AsyncClient, user: User):
    response = await client.post("/auth/admin/login", json={"email": user.email, "password": TEST_PASSWORD})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_endpoints_forbid_customers(client: AsyncClient, user: User):
    response = await client.get("/auth/admin/user", headers=auth_headers(user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_logout_revokes_admin_token(client: AsyncClient, admin_user: User):
    headers = auth_headers(admin_user)
    await client.post("/auth/admin/logout", headers=headers)
    response = await client.get("/auth/admin/user", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_customer_cookie_does_not_open_admin_routes(client: AsyncClient, admin_user: User):
    token, _ = create_session_token(user_id=admin_user.id, email=admin_user.email, role=admin_user.role)
    response = await client.get("/admin/dashboard", headers=_cookie(settings.SESSION_COOKIE_NAME, token))
    assert response.status_code == 401

    response = await client.get("/admin/dashboard", headers=_cookie(settings.ADMIN_COOKIE_NAME, token))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_customer_and_admin_cookies_together(client: AsyncClient, user: User, admin_user: User):
    customer_token, _ = create_session_token(user_id=user.id, email=user.email, role=user.role)
    admin_token, _ = create_session_token(user_id=admin_user.id, email=admin_user.email, role=admin_user.role)
    both = {
        "Cookie": f"{settings.SESSION_COOKIE_NAME}={customer_token}; {settings.ADMIN_COOKIE_NAME}={admin_token}"
    }

    await client.post("/messages", headers=auth_headers(user), json={"recipientId": "admin", "content": "Jambo"})

    # Admin routes use the admin session
    assert (await client.get("/admin/dashboard", headers=both)).status_code == 200
    assert (await client.get("/auth/admin/user", headers=both)).json()["id"] == str(admin_user.id)

    # Messaging answers from the support inbox
    chats = (await client.get("/messages/users", headers=both)).json()
    assert [c["id"] for c in chats] == [str(user.id)]

    # Customer routes still see the customer
    me = await client.get("/auth/user", headers=both)
    assert me.json()["id"] == str(user.id)


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
