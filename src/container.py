"""
Composition root.

Every long-lived collaborator is built once here at startup and shared through
app.state; request-scoped services are built per request around a unit of work.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.client_registry import ConfigClientRegistry
from src.adapter.services.rate_limit_store import InMemoryRateLimitStore, RedisRateLimitStore
from src.adapter.services.token_denylist import InMemoryTokenDenylist, RedisTokenDenylist
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.audit_service import AuditService
from src.app.services.challenge_service import ChallengeService, ChallengeSettings
from src.app.services.client_registry import IClientRegistry
from src.app.services.maintenance_scheduler import MaintenanceScheduler
from src.app.services.nonce_store import NonceStore
from src.app.services.rate_limit_store import IRateLimitStore
from src.app.services.rate_limiter import BruteForceGuard, RateLimiter, build_limits
from src.app.services.session_service import SessionService
from src.app.services.signature_verifier import SignatureVerifier
from src.app.services.token_denylist import ITokenDenylist
from src.app.services.token_service import TokenService
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.maintenance import MaintenanceReport, RunMaintenanceUseCase
from src.domain.base import Clock, utcnow
from src.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

CACHE_BACKENDS = ("memory", "redis")


@dataclass
class Container:
    config: Any
    engine: AsyncEngine
    session_factory: sessionmaker
    redis: Optional[aioredis.Redis]
    clock: Clock
    client_registry: IClientRegistry
    nonce_store: NonceStore
    signature_verifier: SignatureVerifier
    token_denylist: ITokenDenylist
    token_service: TokenService
    rate_limit_store: IRateLimitStore
    rate_limiter: RateLimiter
    brute_force_guard: BruteForceGuard
    audit_service: AuditService
    challenge_settings: ChallengeSettings
    maintenance: Optional[MaintenanceScheduler] = None

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[UnitOfWork]:
        async with self.session_factory() as session:
            yield SqlAlchemyUnitOfWork(session)

    def challenge_service(self, uow: UnitOfWork) -> ChallengeService:
        return ChallengeService(
            uow, self.client_registry, self.nonce_store, self.challenge_settings, clock=self.clock
        )

    def session_service(self, uow: UnitOfWork) -> SessionService:
        return SessionService(uow, self.token_service, clock=self.clock)

    def maintenance_use_case(self, uow: UnitOfWork) -> RunMaintenanceUseCase:
        return RunMaintenanceUseCase(
            self.challenge_service(uow),
            self.session_service(uow),
            self.audit_service,
            self.rate_limit_store,
            self.token_denylist,
            audit_retention_days=self.config.AUDIT_RETENTION_DAYS,
        )

    async def run_maintenance(self) -> MaintenanceReport:
        async with self.unit_of_work() as uow:
            result = await self.maintenance_use_case(uow).execute()
        return result.value

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()
        if self.redis is not None:
            await self.redis.aclose()


def build_container(config, clock: Clock = utcnow) -> Container:
    """
    Construct all shared collaborators from configuration.

    Raises:
        ConfigurationError: missing or weak secrets, unknown cache backend, bad limits
    """
    if config.CACHE_BACKEND not in CACHE_BACKENDS:
        raise ConfigurationError(f"CACHE_BACKEND must be one of {CACHE_BACKENDS}")

    connect_args = {}
    if config.DB_URI.startswith("sqlite"):
        connect_args["timeout"] = config.DB_TIMEOUT_SECONDS
    engine = create_async_engine(
        config.DB_URI, echo=False, future=True, connect_args=connect_args
    )
    session_factory = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    redis_client = None
    if config.CACHE_BACKEND == "redis":
        redis_client = aioredis.from_url(
            config.REDIS_URL,
            socket_timeout=config.CACHE_TIMEOUT_SECONDS,
            socket_connect_timeout=config.CACHE_TIMEOUT_SECONDS,
        )
        rate_limit_store = RedisRateLimitStore(redis_client)
        token_denylist = RedisTokenDenylist(redis_client)
    else:
        rate_limit_store = InMemoryRateLimitStore()
        token_denylist = InMemoryTokenDenylist()

    token_service = TokenService(
        config.JWT_ACCESS_SECRET,
        config.JWT_REFRESH_SECRET,
        token_denylist,
        issuer=config.JWT_ISSUER,
        access_ttl_seconds=config.ACCESS_TOKEN_TTL_SECONDS,
        refresh_ttl_seconds=config.REFRESH_TOKEN_TTL_SECONDS,
        clock=clock,
    )

    container = Container(
        config=config,
        engine=engine,
        session_factory=session_factory,
        redis=redis_client,
        clock=clock,
        client_registry=ConfigClientRegistry(config.CLIENTS),
        nonce_store=NonceStore(),
        signature_verifier=SignatureVerifier(ss58_prefix=config.SS58_PREFIX),
        token_denylist=token_denylist,
        token_service=token_service,
        rate_limit_store=rate_limit_store,
        rate_limiter=RateLimiter(
            rate_limit_store,
            build_limits(config.ENVIRONMENT, config.RATE_LIMITS),
            timeout_seconds=config.CACHE_TIMEOUT_SECONDS,
        ),
        brute_force_guard=BruteForceGuard(
            rate_limit_store,
            max_attempts=config.BRUTE_FORCE_MAX_ATTEMPTS,
            window_seconds=config.BRUTE_FORCE_WINDOW_SECONDS,
            timeout_seconds=config.CACHE_TIMEOUT_SECONDS,
        ),
        audit_service=None,
        challenge_settings=ChallengeSettings(
            ttl_seconds=config.CHALLENGE_TTL_SECONDS,
            domain=config.SIWE_DOMAIN,
            uri=config.SIWE_URI,
            statement=config.SIWE_STATEMENT,
            version=config.SIWE_VERSION,
            chain_id=config.SIWE_CHAIN_ID,
            resources=config.SIWE_RESOURCES,
        ),
    )
    container.audit_service = AuditService(container.unit_of_work, clock=clock)
    container.maintenance = MaintenanceScheduler(
        container.run_maintenance, config.CLEANUP_INTERVAL_SECONDS
    )

    logger.info(
        f"Container built: environment={config.ENVIRONMENT} cache_backend={config.CACHE_BACKEND}"
    )
    return container
