"""
Wallet Auth Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    AuditAction,
    AuditEventType,
    AuditStatus,
    EndpointClass,
    TokenType,
)

# Export all entities
from .challenge import Challenge
from .session import Session
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "AuditAction",
    "AuditEventType",
    "AuditStatus",
    "EndpointClass",
    "TokenType",
    # Entities
    "Challenge",
    "Session",
    "AuditEvent",
]
