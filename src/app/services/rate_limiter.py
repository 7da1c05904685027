"""
Rate Limiter and Brute-Force Guard

Per-client, per-endpoint fixed windows plus a per-IP rolling attempt counter.
Both share an IRateLimitStore so deployments with several workers can point
them at Redis.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import BaseModel

from src.app.services.rate_limit_store import IRateLimitStore, RateLimitStoreUnavailable
from src.domain.entities import EndpointClass
from src.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

EpochClock = Callable[[], float]

# Seconds a client waits when the counter store cannot answer
STORE_UNAVAILABLE_RETRY_AFTER = 5


@dataclass(frozen=True)
class RateLimitRule:
    window_seconds: int
    max_requests: int


DEFAULT_LIMITS: Dict[str, Dict[EndpointClass, RateLimitRule]] = {
    "development": {
        EndpointClass.challenge: RateLimitRule(window_seconds=120, max_requests=3),
        EndpointClass.verify: RateLimitRule(window_seconds=120, max_requests=3),
        EndpointClass.token: RateLimitRule(window_seconds=30, max_requests=2),
        EndpointClass.refresh: RateLimitRule(window_seconds=30, max_requests=2),
        EndpointClass.logout: RateLimitRule(window_seconds=30, max_requests=5),
        EndpointClass.api: RateLimitRule(window_seconds=30, max_requests=30),
    },
    "production": {
        EndpointClass.challenge: RateLimitRule(window_seconds=300, max_requests=2),
        EndpointClass.verify: RateLimitRule(window_seconds=300, max_requests=2),
        EndpointClass.token: RateLimitRule(window_seconds=60, max_requests=1),
        EndpointClass.refresh: RateLimitRule(window_seconds=60, max_requests=1),
        EndpointClass.logout: RateLimitRule(window_seconds=60, max_requests=3),
        EndpointClass.api: RateLimitRule(window_seconds=60, max_requests=20),
    },
}


def build_limits(
    environment: str, overrides: Optional[Mapping[str, Mapping[str, Any]]] = None
) -> Dict[EndpointClass, RateLimitRule]:
    """
    Limits for an environment with per-class overrides applied.

    Unknown environments get the production table. Overrides look like
    {"verify": {"window_seconds": 60, "max_requests": 5}}.
    """
    limits = dict(DEFAULT_LIMITS.get(environment, DEFAULT_LIMITS["production"]))
    for name, override in (overrides or {}).items():
        try:
            endpoint = EndpointClass(name)
        except ValueError:
            raise ConfigurationError(f"Unknown rate-limit class '{name}'")

        base = limits[endpoint]
        rule = RateLimitRule(
            window_seconds=int(override.get("window_seconds", base.window_seconds)),
            max_requests=int(override.get("max_requests", base.max_requests)),
        )
        if rule.window_seconds <= 0 or rule.max_requests <= 0:
            raise ConfigurationError(f"Rate limit for '{name}' must be positive")
        limits[endpoint] = rule
    return limits


class RateLimitDecision(BaseModel):
    limited: bool
    retry_after_seconds: int = 0
    remaining: int
    limit: int


async def _bounded(call, timeout_seconds: Optional[float]):
    try:
        return await asyncio.wait_for(call, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise RateLimitStoreUnavailable(f"no answer within {timeout_seconds}s")


def _unavailable(limit: int) -> RateLimitDecision:
    return RateLimitDecision(
        limited=True, retry_after_seconds=STORE_UNAVAILABLE_RETRY_AFTER, remaining=0, limit=limit
    )


class RateLimiter:
    """
    Fixed-window limiter keyed by "{client_identifier}:{endpoint}".

    A window opens on the first request and lasts window_seconds; once
    max_requests have been counted, further requests are rejected until it
    closes, with retry_after_seconds = ceil(reset_at - now). A store that
    fails or does not answer within timeout_seconds limits the request.
    """

    def __init__(
        self,
        store: IRateLimitStore,
        limits: Mapping[EndpointClass, RateLimitRule],
        clock: EpochClock = time.time,
        timeout_seconds: Optional[float] = None,
    ):
        self.store = store
        self.limits = dict(limits)
        self.clock = clock
        self.timeout_seconds = timeout_seconds

    def rule_for(self, endpoint: EndpointClass) -> RateLimitRule:
        return self.limits.get(endpoint) or self.limits[EndpointClass.api]

    async def record(self, endpoint: EndpointClass, client_identifier: str) -> RateLimitDecision:
        rule = self.rule_for(endpoint)
        now = self.clock()
        key = f"{client_identifier}:{endpoint.value}"

        try:
            allowed, count, reset_at = await _bounded(
                self.store.hit_fixed_window(key, rule.window_seconds, rule.max_requests, now),
                self.timeout_seconds,
            )
        except RateLimitStoreUnavailable as e:
            logger.error(f"Rate-limit store unavailable, rejecting {key}: {e}")
            return _unavailable(rule.max_requests)

        if allowed:
            return RateLimitDecision(
                limited=False, remaining=max(rule.max_requests - count, 0), limit=rule.max_requests
            )

        retry_after = min(max(math.ceil(reset_at - now), 1), rule.window_seconds)
        logger.warning(f"Rate limit exceeded: key={key} retry_after={retry_after}s")
        return RateLimitDecision(
            limited=True, retry_after_seconds=retry_after, remaining=0, limit=rule.max_requests
        )


class BruteForceGuard:
    """
    Rolling-window attempt counter per IP across the authentication endpoints.

    Once max_attempts fall within the window, further attempts are flagged
    (and not counted) until the oldest one ages out. Store failures and
    timeouts flag the attempt.
    """

    def __init__(
        self,
        store: IRateLimitStore,
        max_attempts: int = 100,
        window_seconds: int = 3600,
        clock: EpochClock = time.time,
        timeout_seconds: Optional[float] = None,
    ):
        if max_attempts < 1 or window_seconds < 1:
            raise ConfigurationError("Brute-force threshold and window must be positive")
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock
        self.timeout_seconds = timeout_seconds

    async def record(self, ip_address: str) -> RateLimitDecision:
        now = self.clock()
        key = f"{ip_address}:brute_force"
        try:
            allowed, attempts, oldest_at = await _bounded(
                self.store.hit_rolling_window(key, self.window_seconds, self.max_attempts, now),
                self.timeout_seconds,
            )
        except RateLimitStoreUnavailable as e:
            logger.error(f"Rate-limit store unavailable, rejecting {key}: {e}")
            return _unavailable(self.max_attempts)

        if allowed:
            return RateLimitDecision(
                limited=False, remaining=self.max_attempts - attempts, limit=self.max_attempts
            )

        retry_after = max(math.ceil(oldest_at + self.window_seconds - now), 1)
        logger.warning(f"Brute force threshold reached for {ip_address}: {attempts} attempts")
        return RateLimitDecision(
            limited=True, retry_after_seconds=retry_after, remaining=0, limit=self.max_attempts
        )
