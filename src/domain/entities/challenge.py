"""
Challenge Entity

Time-boxed, single-use authentication prompt for a wallet address.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel, Text

from src.domain.base import utcnow


class Challenge(SQLModel, table=True):
    """
    Challenge entity - a signed-message prompt bound to a client and nonce.

    Business Rules:
    - Expires after CHALLENGE_TTL_SECONDS (5 minutes by default)
    - used flips false -> true exactly once (conditional update)
    - A used or expired challenge is never accepted by verification
    - code_verifier is only kept when the server generated the PKCE pair
    """

    __tablename__ = "challenges"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    client_id: str = Field(max_length=255, index=True)
    address: Optional[str] = Field(default=None, max_length=128)

    message: str = Field(sa_column=Column(Text, nullable=False))
    nonce: str = Field(max_length=128)
    code_verifier: Optional[str] = Field(default=None, max_length=128)
    code_challenge: str = Field(max_length=128)
    state: str = Field(max_length=255)
    redirect_uri: Optional[str] = Field(default=None, max_length=2048)

    used: bool = Field(default=False)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_challenge_expires_at", "expires_at"),
        Index("idx_challenge_used", "used"),
    )

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
