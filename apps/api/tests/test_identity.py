import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from models.user import User
from services.errors import ValidationError
from services.identity import ensure_user_exists, placeholder_email
from services.session_token import create_identity_token, decode_identity_token


@pytest.mark.asyncio
async def test_ensure_user_exists_is_idempotent(session_maker):
    async with session_maker() as db:
        first = await ensure_user_exists(db, "ext-123")
        second = await ensure_user_exists(db, "ext-123")
        total = (await db.execute(select(func.count(User.id)).where(User.external_id == "ext-123"))).scalar()

    assert first.id == second.id
    assert total == 1
    assert first.email == placeholder_email("ext-123")
    assert first.name == "New User"
    assert first.role == "USER"


@pytest.mark.asyncio
async def test_ensure_user_exists_uses_claims_and_admin_list(session_maker, admin_identity):
    async with session_maker() as db:
        user = await ensure_user_exists(db, "ext-claims", email="ada@example.com", name="Ada")
        admin = await ensure_user_exists(db, admin_identity)

    assert user.email == "ada@example.com"
    assert user.name == "Ada"
    assert admin.role == "ADMIN"
    assert admin.is_admin


@pytest.mark.asyncio
async def test_ensure_user_exists_falls_back_when_email_is_taken(session_maker):
    async with session_maker() as db:
        await ensure_user_exists(db, "ext-a", email="shared@example.com")
        other = await ensure_user_exists(db, "ext-b", email="shared@example.com")

    assert other.email == placeholder_email("ext-b")


@pytest.mark.asyncio
async def test_ensure_user_exists_rejects_empty_id(session_maker):
    async with session_maker() as db:
        with pytest.raises(ValidationError):
            await ensure_user_exists(db, "   ")


def test_identity_token_round_trip():
    token = create_identity_token("ext-42", email="x@example.com")["token"]
    claims = decode_identity_token(token)
    assert claims["sub"] == "ext-42"
    assert claims["email"] == "x@example.com"

    with pytest.raises(ValueError):
        decode_identity_token(token + "tampered")


@pytest.mark.asyncio
async def test_auth_me_provisions_user_once(client, auth_headers):
    headers = auth_headers("ext-me", email="me@example.com", name="Me")

    first = await client.get("/auth/me", headers=headers)
    second = await client.get("/auth/me", headers=headers)

    assert first.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["external_id"] == "ext-me"
    assert first.json()["role"] == "USER"


@pytest.mark.asyncio
async def test_missing_or_invalid_identity_is_401(client):
    missing = await client.get("/auth/me")
    assert missing.status_code == 401
    assert "detail" in missing.json()

    invalid = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert invalid.status_code == 401
