"""
Session Entity

Server-side record of a wallet session and the token ids it currently honours.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class Session(SQLModel, table=True):
    """
    Session entity - created on a successful verify.

    Business Rules:
    - One active session per (address, client_id)
    - fingerprint is embedded in both tokens; tokens for another fingerprint are rejected
    - access_token_id / refresh_token_id are the jti claims currently honoured
    - Refresh rotates both ids; an older refresh jti is treated as token reuse
    - is_active=false is terminal (logout, reuse detection, revocation, expiry)
    """

    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    address: str = Field(max_length=128, index=True)
    client_id: str = Field(max_length=255, index=True)

    access_token_id: str = Field(max_length=64)
    refresh_token_id: str = Field(max_length=64)
    fingerprint: str = Field(max_length=64)

    is_active: bool = Field(default=True)
    revocation_reason: Optional[str] = Field(default=None, max_length=64)

    # Timestamps
    access_token_expires_at: datetime = Field(sa_column=Column(DateTime))
    refresh_token_expires_at: datetime = Field(sa_column=Column(DateTime))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_used_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_session_address_client", "address", "client_id"),
        Index("idx_session_active", "is_active"),
        Index("idx_session_refresh_expires_at", "refresh_token_expires_at"),
    )
