"""
Challenge Service

Issues SIWE-style challenges with a PKCE pair and enforces their single use.
"""

import base64
import hashlib
import hmac
import logging
import re
import secrets
from datetime import timedelta
from typing import Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from libs.result import Error, Result, Return
from src.app.services.client_registry import IClientRegistry
from src.app.services.nonce_store import NonceStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import Clock, to_iso_z, utcnow
from src.domain.entities import Challenge
from src.domain.errors import ErrorCode
from src.domain.siwe import ADDRESS_PLACEHOLDER, SiweMessage

logger = logging.getLogger(__name__)

CODE_CHALLENGE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")
MIN_STATE_LENGTH = 16
MAX_STATE_LENGTH = 255
MAX_ADDRESS_LENGTH = 128


def generate_code_verifier() -> str:
    """43-character base64url verifier from 32 random bytes"""
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).rstrip(b"=").decode()


def derive_code_challenge(code_verifier: str) -> str:
    """BASE64URL(SHA256(code_verifier)) without padding (PKCE S256)"""
    digest = hashlib.sha256(code_verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def code_verifier_matches(code_verifier: str, code_challenge: str) -> bool:
    return hmac.compare_digest(derive_code_challenge(code_verifier), code_challenge)


class ChallengeSettings(BaseModel):
    ttl_seconds: int = 300
    domain: str
    uri: str
    statement: str
    version: str = "1"
    chain_id: str
    resources: List[str] = Field(default_factory=list)


class RedirectParams(BaseModel):
    """Optional client-supplied parts of the authorization request"""

    redirect_uri: Optional[str] = None
    state: Optional[str] = None
    code_challenge: Optional[str] = None


class ChallengeService:
    """
    Creates and consumes authentication challenges.

    Business Rules:
    - client_id must resolve in the client registry
    - Challenges expire after settings.ttl_seconds
    - Consumption is a conditional update; concurrent callers see exactly one success
    - Expiry is evaluated at read time; cleanup_expired_challenges is only housekeeping
    """

    def __init__(
        self,
        uow: UnitOfWork,
        client_registry: IClientRegistry,
        nonce_store: NonceStore,
        settings: ChallengeSettings,
        clock: Clock = utcnow,
    ):
        self.uow = uow
        self.client_registry = client_registry
        self.nonce_store = nonce_store
        self.settings = settings
        self.clock = clock

    async def create_challenge(
        self,
        client_id: Optional[str],
        address: Optional[str] = None,
        redirect_params: Optional[RedirectParams] = None,
    ) -> Result[Challenge]:
        if not client_id:
            return Return.err(Error(ErrorCode.VALIDATION_ERROR, "client_id is required"))

        client = await self.client_registry.resolve_client(client_id)
        if client is None:
            return Return.err(Error(ErrorCode.VALIDATION_ERROR, "Unknown client_id"))

        if address is not None and not 0 < len(address) <= MAX_ADDRESS_LENGTH:
            return Return.err(Error(ErrorCode.VALIDATION_ERROR, "Invalid address"))

        params = redirect_params or RedirectParams()
        if params.redirect_uri is not None and params.redirect_uri != client.redirect_url:
            return Return.err(
                Error(ErrorCode.VALIDATION_ERROR, "redirect_uri is not registered for this client")
            )
        if params.state is not None and not MIN_STATE_LENGTH <= len(params.state) <= MAX_STATE_LENGTH:
            return Return.err(
                Error(ErrorCode.VALIDATION_ERROR, f"state must be {MIN_STATE_LENGTH}-{MAX_STATE_LENGTH} characters")
            )
        if params.code_challenge is not None and not CODE_CHALLENGE_PATTERN.match(params.code_challenge):
            return Return.err(
                Error(ErrorCode.VALIDATION_ERROR, "code_challenge must be a base64url SHA-256 digest")
            )

        # Server-generated PKCE pair unless the client keeps its own verifier
        code_verifier = None
        code_challenge = params.code_challenge
        if code_challenge is None:
            code_verifier = generate_code_verifier()
            code_challenge = derive_code_challenge(code_verifier)

        now = self.clock()
        expires_at = now + timedelta(seconds=self.settings.ttl_seconds)
        nonce = self.nonce_store.issue()

        message = SiweMessage(
            domain=self.settings.domain,
            address=address or ADDRESS_PLACEHOLDER,
            statement=self.settings.statement,
            uri=self.settings.uri,
            version=self.settings.version,
            chain_id=self.settings.chain_id,
            nonce=nonce,
            issued_at=to_iso_z(now),
            expiration_time=to_iso_z(expires_at),
            request_id=secrets.token_hex(16),
            resources=self.settings.resources,
        ).to_text()

        challenge = Challenge(
            client_id=client_id,
            address=address,
            message=message,
            nonce=nonce,
            code_verifier=code_verifier,
            code_challenge=code_challenge,
            state=params.state or secrets.token_hex(16),
            redirect_uri=params.redirect_uri,
            created_at=now,
            expires_at=expires_at,
            used=False,
        )

        async with self.uow:
            await self.uow.challenges.create(challenge)
            await self.uow.commit()

        logger.info(f"Challenge issued: id={challenge.id} client_id={client_id}")
        return Return.ok(challenge)

    async def get_challenge(self, challenge_id: Union[str, UUID]) -> Result[Challenge]:
        """Look up a challenge that is still usable, without consuming it"""
        parsed_id = _parse_id(challenge_id)
        if parsed_id is None:
            return Return.err(Error(ErrorCode.NOT_FOUND, "Challenge not found"))

        async with self.uow:
            challenge = await self.uow.challenges.get_by_id(parsed_id)

        return self._check_usable(challenge)

    async def consume_challenge(self, challenge_id: Union[str, UUID]) -> Result[Challenge]:
        """
        Mark a challenge used, exactly once.

        Returns:
            Result with the consumed Challenge, or NOT_FOUND / EXPIRED / REPLAY_DETECTED
        """
        parsed_id = _parse_id(challenge_id)
        if parsed_id is None:
            return Return.err(Error(ErrorCode.NOT_FOUND, "Challenge not found"))

        async with self.uow:
            challenge = await self.uow.challenges.get_by_id(parsed_id)
            checked = self._check_usable(challenge)
            if checked.is_err():
                return checked

            # Only the caller whose conditional update matches wins the race
            if not await self.uow.challenges.mark_used(parsed_id):
                logger.warning(f"Concurrent consumption lost for challenge {parsed_id}")
                return Return.err(Error(ErrorCode.REPLAY_DETECTED, "Challenge already used"))

            await self.uow.commit()

        challenge.used = True
        return Return.ok(challenge)

    async def cleanup_expired_challenges(self) -> int:
        async with self.uow:
            deleted = await self.uow.challenges.delete_expired(self.clock())
            await self.uow.commit()
        if deleted:
            logger.info(f"Cleaned up {deleted} expired challenge(s)")
        return deleted

    async def get_challenge_stats(self) -> Dict[str, int]:
        async with self.uow:
            return await self.uow.challenges.count_by_state(self.clock())

    def _check_usable(self, challenge: Optional[Challenge]) -> Result[Challenge]:
        if challenge is None:
            return Return.err(Error(ErrorCode.NOT_FOUND, "Challenge not found"))
        if challenge.is_expired(self.clock()):
            return Return.err(Error(ErrorCode.EXPIRED, "Challenge has expired"))
        if challenge.used:
            return Return.err(Error(ErrorCode.REPLAY_DETECTED, "Challenge already used"))
        return Return.ok(challenge)


def _parse_id(challenge_id: Union[str, UUID]) -> Optional[UUID]:
    if isinstance(challenge_id, UUID):
        return challenge_id
    try:
        return UUID(str(challenge_id))
    except ValueError:
        return None
