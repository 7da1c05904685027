"""
Token Service

Mints and verifies the access/refresh JWT pair bound to a session.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from libs.result import Error, Result, Return
from src.app.services.token_denylist import ITokenDenylist
from src.domain.base import Clock, from_epoch, to_epoch, utcnow
from src.domain.entities import Session, TokenType
from src.domain.errors import ConfigurationError, ErrorCode

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32
WEAK_SECRET_MARKERS = ("secret", "password", "changeme", "default", "example", "test")
REPEATED_CHARACTER_RUN = re.compile(r"(.)\1{5,}")
SEQUENCE_RUN_LENGTH = 6


class TokenPayload(BaseModel):
    """Verified JWT claims"""

    model_config = ConfigDict(populate_by_name=True)

    sub: str
    address: str
    client_id: str
    type: TokenType
    jti: str
    fingerprint: str
    session_id: str = Field(alias="sessionId")
    iat: int
    exp: int
    aud: str
    iss: str

    @property
    def expires_at(self) -> datetime:
        return from_epoch(self.exp)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    access_token_id: str
    refresh_token_id: str
    access_token_expires_at: datetime
    refresh_token_expires_at: datetime


def _has_ascending_sequence(value: str, length: int = SEQUENCE_RUN_LENGTH) -> bool:
    lowered = value.lower()
    run = 1
    for previous, current in zip(lowered, lowered[1:]):
        if current.isalnum() and ord(current) == ord(previous) + 1:
            run += 1
            if run >= length:
                return True
        else:
            run = 1
    return False


def validate_secret(name: str, secret: Optional[str]) -> None:
    """Raise ConfigurationError unless secret is long and not guessable"""
    if not secret:
        raise ConfigurationError(f"{name} is not set")
    if len(secret) < MIN_SECRET_LENGTH:
        raise ConfigurationError(f"{name} must be at least {MIN_SECRET_LENGTH} characters")

    lowered = secret.lower()
    for marker in WEAK_SECRET_MARKERS:
        if marker in lowered:
            raise ConfigurationError(f"{name} contains the weak pattern '{marker}'")
    if REPEATED_CHARACTER_RUN.search(secret):
        raise ConfigurationError(f"{name} contains a run of repeated characters")
    if _has_ascending_sequence(secret):
        raise ConfigurationError(f"{name} contains a sequential character run")


class TokenService:
    """
    HS256 access/refresh tokens.

    Business Rules:
    - Access and refresh tokens are signed with different secrets
    - Both carry the session id and fingerprint; aud is the client_id
    - Every token has a unique jti so it can be denylisted individually
    - An expired but otherwise genuine token verifies as EXPIRED, everything else as INVALID_TOKEN
    """

    def __init__(
        self,
        access_secret: Optional[str],
        refresh_secret: Optional[str],
        denylist: ITokenDenylist,
        issuer: str = "wallet-auth",
        access_ttl_seconds: int = 900,
        refresh_ttl_seconds: int = 604800,
        clock: Clock = utcnow,
    ):
        validate_secret("JWT_ACCESS_SECRET", access_secret)
        validate_secret("JWT_REFRESH_SECRET", refresh_secret)
        if access_secret == refresh_secret:
            raise ConfigurationError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        if access_ttl_seconds <= 0 or refresh_ttl_seconds <= 0:
            raise ConfigurationError("Token lifetimes must be positive")

        self._secrets = {TokenType.access: access_secret, TokenType.refresh: refresh_secret}
        self.denylist = denylist
        self.issuer = issuer
        self.access_ttl_seconds = access_ttl_seconds
        self.refresh_ttl_seconds = refresh_ttl_seconds
        self.clock = clock

    def generate_token_pair(self, session: Session) -> TokenPair:
        now = self.clock()
        access_expires_at = now + timedelta(seconds=self.access_ttl_seconds)
        refresh_expires_at = now + timedelta(seconds=self.refresh_ttl_seconds)
        access_token_id = uuid4().hex
        refresh_token_id = uuid4().hex

        return TokenPair(
            access_token=self._encode(session, TokenType.access, access_token_id, now, access_expires_at),
            refresh_token=self._encode(session, TokenType.refresh, refresh_token_id, now, refresh_expires_at),
            access_token_id=access_token_id,
            refresh_token_id=refresh_token_id,
            access_token_expires_at=access_expires_at,
            refresh_token_expires_at=refresh_expires_at,
        )

    def verify_access_token(self, token: str) -> Result[TokenPayload]:
        return self._decode(token, TokenType.access)

    def verify_refresh_token(self, token: str) -> Result[TokenPayload]:
        return self._decode(token, TokenType.refresh)

    async def blacklist_token(self, jti: str, expires_at: datetime) -> None:
        await self.denylist.add(jti, expires_at, self.clock())

    async def is_token_blacklisted(self, jti: str) -> bool:
        return await self.denylist.contains(jti, self.clock())

    def _encode(
        self,
        session: Session,
        token_type: TokenType,
        jti: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> str:
        claims = {
            "sub": session.address,
            "address": session.address,
            "client_id": session.client_id,
            "type": token_type.value,
            "jti": jti,
            "fingerprint": session.fingerprint,
            "sessionId": str(session.id),
            "iat": to_epoch(issued_at),
            "exp": to_epoch(expires_at),
            "aud": session.client_id,
            "iss": self.issuer,
        }
        return jwt.encode(claims, self._secrets[token_type], algorithm=ALGORITHM)

    def _decode(self, token: str, token_type: TokenType) -> Result[TokenPayload]:
        invalid = Return.err(Error(ErrorCode.INVALID_TOKEN, "Invalid token"))
        if not token:
            return invalid

        # Expiry is checked below against the injected clock
        try:
            claims = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                options={"verify_aud": False, "verify_exp": False},
            )
        except ExpiredSignatureError:
            return Return.err(Error(ErrorCode.EXPIRED, "Token has expired"))
        except JWTError as e:
            logger.debug(f"Rejected {token_type.value} token: {e}")
            return invalid

        try:
            payload = TokenPayload.model_validate(claims)
        except ValidationError:
            return invalid

        if payload.type != token_type:
            return invalid
        if payload.aud != payload.client_id:
            return invalid
        if payload.exp <= to_epoch(self.clock()):
            return Return.err(Error(ErrorCode.EXPIRED, "Token has expired"))

        return Return.ok(payload)
