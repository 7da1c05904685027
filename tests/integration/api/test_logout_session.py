import pytest
from httpx import AsyncClient

from src.domain.entities import AuditAction
from tests.fixtures.api_helpers import audit_events, bearer, sign_in


@pytest.mark.asyncio
async def test_logout_ends_the_session(client: AsyncClient, db_session, wallet):
    tokens = await sign_in(client, wallet)

    response = await client.post("/logout", headers=bearer(tokens))

    assert response.status_code == 200
    assert response.json() == {"success": True}

    after = await client.get("/session", headers=bearer(tokens))
    assert after.status_code == 401

    refresh = await client.post(
        "/token",
        json={
            "grant_type": "refresh_token",
            "refresh_token": tokens["refresh_token"],
            "client_id": "demo-client",
        },
    )
    assert refresh.status_code == 401

    events = await audit_events(db_session, AuditAction.LOGOUT.value)
    assert len(events) == 1
    assert events[0].address == wallet.address


@pytest.mark.asyncio
async def test_logout_is_idempotent(client: AsyncClient, db_session, wallet):
    tokens = await sign_in(client, wallet)

    first = await client.post("/logout", headers=bearer(tokens))
    second = await client.post("/logout", headers=bearer(tokens))

    assert first.status_code == 200
    assert second.status_code == 200
    assert len(await audit_events(db_session, AuditAction.LOGOUT.value)) == 1


@pytest.mark.asyncio
async def test_logout_requires_bearer_token(client: AsyncClient):
    response = await client.post("/logout")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client: AsyncClient):
    response = await client.get("/session", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_new_sign_in_supersedes_previous_session(client: AsyncClient, wallet):
    first = await sign_in(client, wallet)
    second = await sign_in(client, wallet)

    assert first["session_id"] != second["session_id"]
    assert (await client.get("/session", headers=bearer(first))).status_code == 401
    assert (await client.get("/session", headers=bearer(second))).status_code == 200
