from datetime import datetime, timedelta

import bcrypt
import pytest

from src.adapter.services.client_registry import ConfigClientRegistry
from src.adapter.services.token_denylist import InMemoryTokenDenylist
from src.domain.errors import ConfigurationError

NOW = datetime(2025, 1, 15, 12, 0, 0)


@pytest.mark.asyncio
async def test_registry_resolves_public_and_confidential_clients():
    stored_hash = bcrypt.hashpw(b"Prehashed-Credential-77", bcrypt.gensalt(4)).decode()
    registry = ConfigClientRegistry(
        [
            {"client_id": "demo-client", "redirect_url": "http://localhost:3001/callback"},
            {
                "client_id": "partner",
                "redirect_url": "https://partner.example/cb",
                "client_secret_hash": stored_hash,
            },
        ]
    )

    public = await registry.resolve_client("demo-client")
    partner = await registry.resolve_client("partner")

    assert await registry.resolve_client("missing") is None
    assert registry.verify_client_secret(public, None) is True
    assert registry.verify_client_secret(partner, "Prehashed-Credential-77") is True
    assert registry.verify_client_secret(partner, "wrong") is False
    assert registry.verify_client_secret(partner, None) is False


@pytest.mark.parametrize(
    "clients",
    [
        [{"client_id": "a", "redirect_url": "x"}, {"client_id": "a", "redirect_url": "y"}],
        [{"client_id": "", "redirect_url": "x"}],
        [{"client_id": "a"}],
    ],
)
def test_registry_rejects_bad_entries(clients):
    with pytest.raises(ConfigurationError):
        ConfigClientRegistry(clients)


@pytest.mark.asyncio
async def test_denylist_holds_entries_until_token_expiry():
    denylist = InMemoryTokenDenylist()
    await denylist.add("jti-1", NOW + timedelta(minutes=15), NOW)

    assert await denylist.contains("jti-1", NOW + timedelta(minutes=14))
    assert not await denylist.contains("jti-1", NOW + timedelta(minutes=15))


@pytest.mark.asyncio
async def test_denylist_ignores_already_expired_tokens():
    denylist = InMemoryTokenDenylist()
    await denylist.add("jti-1", NOW - timedelta(seconds=1), NOW)

    assert not await denylist.contains("jti-1", NOW)


@pytest.mark.asyncio
async def test_denylist_prune():
    denylist = InMemoryTokenDenylist()
    await denylist.add("short", NOW + timedelta(minutes=1), NOW)
    await denylist.add("long", NOW + timedelta(days=7), NOW)

    assert await denylist.prune(NOW + timedelta(hours=1)) == 1
    assert await denylist.contains("long", NOW + timedelta(hours=1))
