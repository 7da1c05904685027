import pytest
from httpx import AsyncClient
from unittest.mock import AsyncMock
from uuid import uuid4

from src.app.services.rate_limit_store import IRateLimitStore, RateLimitStoreUnavailable
from src.app.services.rate_limiter import STORE_UNAVAILABLE_RETRY_AFTER
from src.domain.entities import AuditAction
from tests.fixtures.api_helpers import audit_events


def bogus_verify_payload() -> dict:
    return {
        "challenge_id": str(uuid4()),
        "code_verifier": "v" * 43,
        "state": "s" * 32,
        "signature": "0x" + "00" * 64,
        "address": "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY",
        "message": "not issued",
    }


@pytest.mark.asyncio
async def test_verify_budget_is_enforced(client: AsyncClient, db_session):
    statuses = [
        (await client.post("/verify", json=bogus_verify_payload())).status_code for _ in range(3)
    ]
    limited = await client.post("/verify", json=bogus_verify_payload())

    assert statuses == [404, 404, 404]
    assert limited.status_code == 429
    retry_after = limited.json()["error"]["retry_after"]
    assert limited.json()["error"]["code"] == "RATE_LIMITED"
    assert 0 < retry_after <= 120
    assert limited.headers["Retry-After"] == str(retry_after)

    events = await audit_events(db_session, AuditAction.RATE_LIMIT_EXCEEDED.value)
    assert len(events) == 1
    assert events[0].type == "SECURITY_EVENT"
    assert events[0].details["endpoint"] == "verify"


@pytest.mark.asyncio
async def test_endpoint_budgets_are_independent(client: AsyncClient):
    for _ in range(3):
        await client.get("/challenge", params={"client_id": "demo-client"})
    blocked = await client.get("/challenge", params={"client_id": "demo-client"})

    verify = await client.post("/verify", json=bogus_verify_payload())

    assert blocked.status_code == 429
    assert verify.status_code == 404


@pytest.mark.asyncio
async def test_unavailable_counter_store_rejects_requests(app, client: AsyncClient):
    store = AsyncMock(spec=IRateLimitStore)
    store.hit_fixed_window.side_effect = RateLimitStoreUnavailable("Connection refused")
    app.state.container.rate_limiter.store = store

    response = await client.get("/challenge", params={"client_id": "demo-client"})

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "RATE_LIMITED"
    assert response.json()["error"]["retry_after"] == STORE_UNAVAILABLE_RETRY_AFTER


@pytest.mark.asyncio
async def test_token_endpoint_uses_token_budget(client: AsyncClient, db_session):
    body = {"grant_type": "refresh_token", "refresh_token": "not-a-jwt", "client_id": "demo-client"}

    statuses = [(await client.post("/token", json=body)).status_code for _ in range(2)]
    limited = await client.post("/token", json=body)

    assert statuses == [401, 401]
    assert limited.status_code == 429

    events = await audit_events(db_session, AuditAction.RATE_LIMIT_EXCEEDED.value)
    assert events[0].details["endpoint"] == "token"
