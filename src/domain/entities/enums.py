"""
Wallet Auth Domain Enums

All enumeration types used across domain entities and services.
"""

from enum import Enum


class TokenType(str, Enum):
    """JWT `type` claim"""

    access = "access"
    refresh = "refresh"


class AuditEventType(str, Enum):
    """Audit event category"""

    AUTH_ATTEMPT = "AUTH_ATTEMPT"
    TOKEN = "TOKEN"
    SESSION = "SESSION"
    SECURITY_EVENT = "SECURITY_EVENT"


class AuditAction(str, Enum):
    """Audit event action"""

    CHALLENGE_ISSUED = "CHALLENGE_ISSUED"
    CHALLENGE_FAILED = "CHALLENGE_FAILED"
    VERIFY_SUCCESS = "VERIFY_SUCCESS"
    VERIFY_FAILED = "VERIFY_FAILED"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"
    REFRESH_TOKEN_REUSE = "REFRESH_TOKEN_REUSE"
    LOGOUT = "LOGOUT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    BRUTE_FORCE_DETECTED = "BRUTE_FORCE_DETECTED"


class AuditStatus(str, Enum):
    """Outcome recorded on an audit event"""

    success = "success"
    failure = "failure"


class EndpointClass(str, Enum):
    """Rate-limited endpoint classes, each with its own window and budget"""

    challenge = "challenge"
    verify = "verify"
    token = "token"
    refresh = "refresh"
    logout = "logout"
    api = "api"
