from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from config import ApplicationConfig
from src.container import build_container
from src.domain.errors import ConfigurationError
from tests.fixtures.clock import FrozenClock


class UnitConfig(ApplicationConfig):
    DB_URI = "sqlite+aiosqlite:///:memory:"
    CACHE_BACKEND = "memory"
    JWT_ACCESS_SECRET = "Zq8vN3kLp2Wx7RmB4tYh9cJd6FgS1aUe"
    JWT_REFRESH_SECRET = "Hb5Qw9Er2Ty7Ui4Op1As8Df3Gh6Jk0Lz"
    CLEANUP_INTERVAL_SECONDS = 0


@pytest.mark.asyncio
async def test_container_wires_shared_collaborators():
    container = build_container(UnitConfig, clock=FrozenClock())

    assert container.redis is None
    assert container.token_service.denylist is container.token_denylist
    assert container.maintenance.enabled is False
    assert await container.client_registry.resolve_client("demo-client") is not None
    await container.close()


@pytest.mark.parametrize(
    "overrides",
    [
        {"JWT_ACCESS_SECRET": None},
        {"JWT_REFRESH_SECRET": "short"},
        {"CACHE_BACKEND": "memcached"},
        {"RATE_LIMITS": {"verify": {"window_seconds": 0, "max_requests": 3}}},
    ],
)
def test_unusable_configuration_fails_startup(overrides):
    config = type("BrokenConfig", (UnitConfig,), overrides)

    with pytest.raises(ConfigurationError):
        build_container(config)


@pytest.mark.asyncio
async def test_redis_client_is_built_with_bounded_timeouts():
    config = type("RedisConfig", (UnitConfig,), {"CACHE_BACKEND": "redis", "CACHE_TIMEOUT_SECONDS": 1.5})

    container = build_container(config, clock=FrozenClock())

    connection_kwargs = container.redis.connection_pool.connection_kwargs
    assert connection_kwargs["socket_timeout"] == 1.5
    assert connection_kwargs["socket_connect_timeout"] == 1.5
    assert container.rate_limiter.timeout_seconds == 1.5
    assert container.brute_force_guard.timeout_seconds == 1.5
    await container.close()


@pytest.mark.asyncio
async def test_sqlite_engine_waits_a_bounded_time_for_locks(monkeypatch):
    engine_factory = MagicMock(wraps=create_async_engine)
    monkeypatch.setattr("src.container.create_async_engine", engine_factory)
    config = type("LockConfig", (UnitConfig,), {"DB_TIMEOUT_SECONDS": 3.0})

    container = build_container(config, clock=FrozenClock())

    assert engine_factory.call_args.kwargs["connect_args"] == {"timeout": 3.0}
    await container.close()
