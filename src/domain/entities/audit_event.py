"""
AuditEvent Entity

Append-only log of security-relevant actions.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable record of an authentication/security event.

    Business Rules:
    - Append-only (never updated; deleted only by retention cleanup)
    - Retained for AUDIT_RETENTION_DAYS (90 by default)
    - address is empty for events that precede a known wallet
    - request_id correlates the event with logs and the error response
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    type: str = Field(max_length=50)  # e.g. "AUTH_ATTEMPT", "SECURITY_EVENT"
    client_id: str = Field(max_length=255, default="unknown")
    address: Optional[str] = Field(default=None, max_length=128)

    action: str = Field(max_length=100)  # e.g. "CHALLENGE_ISSUED"
    status: str = Field(max_length=20)  # success | failure
    details: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    ip_address: str = Field(default="unknown", max_length=64)
    user_agent: str = Field(default="unknown", max_length=512)
    request_id: Optional[str] = Field(default=None, max_length=64)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_client_action", "client_id", "action"),
        Index("idx_audit_address", "address"),
    )
